"""HTTP application serving video metadata and static files."""

from __future__ import annotations

import argparse
import html
import logging
import os
import sqlite3
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import quote

from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException, NotFound
from werkzeug.routing import Map, Rule
from werkzeug.security import safe_join
from werkzeug.serving import run_simple
from werkzeug.utils import redirect, send_file
from werkzeug.wrappers import Request, Response

from .database import Database
from .responses import error_response, json_response

logger = logging.getLogger(__name__)

_TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

_SETTINGS = (
    ("db_path", "DB_PATH", "DB_URL must be set"),
    ("jwt_secret", "JWT_SECRET", "JWT_SECRET environment variable is not set"),
    ("platform", "PLATFORM", "PLATFORM environment variable is not set"),
    ("filepath_root", "FILEPATH_ROOT", "FILEPATH_ROOT environment variable is not set"),
    ("assets_root", "ASSETS_ROOT", "ASSETS_ROOT environment variable is not set"),
    ("s3_bucket", "S3_BUCKET", "S3_BUCKET environment variable is not set"),
    ("s3_region", "S3_REGION", "S3_REGION environment variable is not set"),
    ("s3_cf_distribution", "S3_CF_DISTRO", "S3_CF_DISTRO environment variable is not set"),
    ("port", "PORT", "PORT environment variable is not set"),
)


@dataclass
class Config:
    """Settings the server runs with."""

    db_path: str
    jwt_secret: str
    platform: str
    filepath_root: str
    assets_root: str
    s3_bucket: str
    s3_region: str
    s3_cf_distribution: str
    port: str

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Read every setting from the environment; raise ValueError if one is empty."""
        if environ is None:
            environ = os.environ
        values = {}
        for field_name, variable, message in _SETTINGS:
            value = environ.get(variable, "")
            if not value:
                raise ValueError(message)
            values[field_name] = value
        return cls(**values)

    def ensure_assets_dir(self) -> None:
        """Create the assets directory if it does not exist."""
        path = Path(self.assets_root)
        if not path.exists():
            path.mkdir(mode=0o755)


class TubelyApp:
    """WSGI application routing API calls and static files."""

    def __init__(self, config: Config, db: Database):
        self.config = config
        self.db = db
        self._url_map = Map(
            [
                Rule("/app/", endpoint="app", defaults={"path": ""}),
                Rule("/app/<path:path>", endpoint="app"),
                Rule("/assets/", endpoint="assets", defaults={"path": ""}),
                Rule("/assets/<path:path>", endpoint="assets"),
                Rule("/api/videos/<video_id>", endpoint="video_get", methods=["GET"]),
                Rule("/admin/reset", endpoint="reset", methods=["POST"]),
            ]
        )

    def __call__(self, environ, start_response):
        request = Request(environ)
        adapter = self._url_map.bind_to_environ(environ)
        try:
            endpoint, values = adapter.match()
            response = self._dispatch(endpoint, request, values)
        except HTTPException as exc:
            response = exc.get_response(environ)
        return response(environ, start_response)

    def _dispatch(self, endpoint: str, request: Request, values: dict) -> Response:
        if endpoint == "app":
            return self._serve_files(request, self.config.filepath_root, values["path"])
        if endpoint == "assets":
            try:
                response = self._serve_files(
                    request, self.config.assets_root, values["path"]
                )
            except HTTPException as exc:
                response = exc.get_response(request.environ)
            response.headers["Cache-Control"] = "no-store"
            return response
        if endpoint == "video_get":
            return self.handle_video_get(request, values["video_id"])
        if endpoint == "reset":
            return self.handle_reset(request)
        raise NotFound()

    def _serve_files(self, request: Request, root: str, path: str) -> Response:
        base = os.path.abspath(root)
        target = safe_join(base, path) if path else base
        if target is None:
            raise NotFound()
        if os.path.isdir(target):
            if not request.path.endswith("/"):
                return redirect(request.path + "/", code=301)
            index = os.path.join(target, "index.html")
            if os.path.isfile(index):
                return send_file(index, request.environ)
            return self._directory_listing(target)
        if os.path.isfile(target):
            return send_file(target, request.environ)
        raise NotFound()

    @staticmethod
    def _directory_listing(directory: str) -> Response:
        with os.scandir(directory) as entries:
            names = sorted(
                entry.name + ("/" if entry.is_dir() else "") for entry in entries
            )
        lines = [
            "<!doctype html>",
            '<meta name="viewport" content="width=device-width">',
            "<pre>",
        ]
        lines.extend(
            f'<a href="{html.escape(quote(name))}">{html.escape(name)}</a>'
            for name in names
        )
        lines.append("</pre>")
        return Response("\n".join(lines) + "\n", content_type="text/html; charset=utf-8")

    def handle_video_get(self, request: Request, video_id: str) -> Response:
        """Return one video's metadata as JSON."""
        try:
            parsed = uuid.UUID(video_id)
        except ValueError as exc:
            return error_response(400, "Invalid video ID", exc)
        try:
            video = self.db.get_video(parsed)
        except sqlite3.Error as exc:
            return error_response(404, "Couldn't get video", exc)
        if video is None:
            return error_response(404, "Couldn't get video", None)
        return json_response(200, video)

    def handle_reset(self, request: Request) -> Response:
        """Empty the database; allowed only on the dev platform."""
        if self.config.platform != "dev":
            return Response(
                "Reset is only allowed in dev environment.",
                status=403,
                content_type=_TEXT_CONTENT_TYPE,
            )
        try:
            self.db.reset()
        except sqlite3.Error as exc:
            return error_response(500, "Couldn't reset database", exc)
        return Response(
            "Database reset to initial state", status=200, content_type=_TEXT_CONTENT_TYPE
        )


def create_app(config: Config, db: Database) -> TubelyApp:
    """Build the WSGI application."""
    return TubelyApp(config, db)


def main(argv=None) -> int:
    """Load settings, open the database and serve until interrupted."""
    parser = argparse.ArgumentParser(prog="tubely", description="Serve the Tubely API.")
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    load_dotenv(".env")

    try:
        config = Config.from_env()
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    try:
        db = Database(config.db_path)
    except sqlite3.Error as exc:
        raise SystemExit(f"Couldn't connect to database: {exc}") from exc
    try:
        config.ensure_assets_dir()
    except OSError as exc:
        db.close()
        raise SystemExit(f"Couldn't create assets directory: {exc}") from exc
    try:
        port = int(config.port)
    except ValueError as exc:
        db.close()
        raise SystemExit(f"invalid port: {config.port}") from exc

    logger.info("Serving on: http://localhost:%s/app/", config.port)
    with db:
        run_simple("0.0.0.0", port, create_app(config, db), threaded=True)
    return 0