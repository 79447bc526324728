# tubely

A small WSGI server for a video-sharing site. It keeps users, refresh
tokens and video metadata in SQLite, serves a static web app and an
assets directory, answers JSON requests for single videos, and comes with
helpers that use `ffprobe` and `ffmpeg` to inspect and prepare MP4 files.

## Installation

```
pip install .
```

The helpers in `tubely.media` need `ffprobe` and `ffmpeg` on your `PATH`.

## Configuration

`tubely.server.Config.from_env` reads the settings from the environment
(the `tubely` command also loads a `.env` file from the current directory
first). Every variable below must be set and non-empty, or a `ValueError`
is raised:

| Variable        | Field                | Use                                                   |
|-----------------|----------------------|-------------------------------------------------------|
| `DB_PATH`       | `db_path`            | Path of the SQLite database file                      |
| `JWT_SECRET`    | `jwt_secret`         | Read and kept; no served endpoint uses it             |
| `PLATFORM`      | `platform`           | `dev` enables `POST /admin/reset`                     |
| `FILEPATH_ROOT` | `filepath_root`      | Directory served under `/app/`                        |
| `ASSETS_ROOT`   | `assets_root`        | Directory served under `/assets/`                     |
| `S3_BUCKET`     | `s3_bucket`          | Read and kept; no served endpoint uses it             |
| `S3_REGION`     | `s3_region`          | Read and kept; no served endpoint uses it             |
| `S3_CF_DISTRO`  | `s3_cf_distribution` | Read and kept; no served endpoint uses it             |
| `PORT`          | `port`               | Port to listen on                                     |

Example `.env`:

```
DB_PATH=tubely.db
JWT_SECRET=secret
PLATFORM=dev
FILEPATH_ROOT=./app
ASSETS_ROOT=./assets
S3_BUCKET=placeholder
S3_REGION=us-east-1
S3_CF_DISTRO=http://localhost:8091
PORT=8091
```

## Running

```
tubely
```

The command opens the database (creating its tables if needed), creates
the assets directory if it is missing, and serves on all interfaces at
the given port, logging `Serving on: http://localhost:<PORT>/app/`. A
missing setting, an unusable database, an assets directory that cannot be
created or a non-numeric port stops it with a message.

## Endpoints

- `GET /app/...` – files from `FILEPATH_ROOT`. A directory is answered
  with its `index.html`, or with a plain HTML listing if there is none; a
  directory path without a trailing slash is redirected to one.
- `GET /assets/...` – files from `ASSETS_ROOT`, served the same way; every
  response on this path, errors included, carries `Cache-Control: no-store`.
- `GET /api/videos/<videoID>` – one video's metadata as JSON. An id that
  is not a UUID gives `400 {"error": "Invalid video ID"}`; an unknown id
  gives `404 {"error": "Couldn't get video"}`.
- `POST /admin/reset` – deletes every row from every table and answers
  `Database reset to initial state`. Unless `PLATFORM` is `dev` it answers
  `403 Reset is only allowed in dev environment.`

JSON bodies are compact, UUIDs are strings and timestamps are RFC 3339
(`Z` for UTC).

## Using it as a library

```python
from tubely.database import Database
from tubely.server import Config, create_app

config = Config.from_env()
config.ensure_assets_dir()
with Database(config.db_path) as db:
    app = create_app(config, db)   # a WSGI application (TubelyApp)
```

`tubely.database.Database` is a SQLite store usable on its own. It holds
`User`, `RefreshToken` and `Video` records and offers `create_user`,
`get_user`, `get_user_by_email`, `get_user_by_refresh_token`, `get_users`,
`delete_user`, `create_refresh_token`, `get_refresh_token`,
`revoke_refresh_token`, `delete_refresh_token`, `create_video`,
`get_video`, `get_videos` (newest first), `update_video`, `delete_video`
and `reset`. Lookups return `None` when nothing matches.

`tubely.media` offers:

- `aspect_ratio_label(width, height)` – `"16:9"`, `"9:16"` or `"other"`.
- `get_video_aspect_ratio(path)` – runs `ffprobe` and labels the first stream.
- `process_video_for_fast_start(path)` – runs `ffmpeg` to write
  `<path>.processing` with the index moved to the front, and returns that path.

Both raise `MediaToolError` when the tool fails or its output is unusable.

`tubely.responses` builds the server's JSON replies: `json_response`,
`error_response` and `to_jsonable`.

## What it does not do

The HTTP server offers only the endpoints listed above. It has no
endpoints for signing up, logging in, refreshing or revoking tokens, and
none for creating, listing or deleting videos or uploading thumbnails and
video files; it checks no bearer tokens, and it does not publish files to
any object store. The storage methods for users, tokens and videos exist
in `Database`, but the server does not expose them.