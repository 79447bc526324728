"""SQLite-backed storage for users, refresh tokens and videos."""

from __future__ import annotations

import sqlite3
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        password TEXT NOT NULL,
        email TEXT UNIQUE NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS refresh_tokens (
        token TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        revoked_at TIMESTAMP,
        user_id TEXT NOT NULL,
        expires_at TIMESTAMP NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS videos (
        id TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        title TEXT NOT NULL,
        description TEXT,
        thumbnail_url TEXT,
        video_url TEXT TEXT,
        user_id INTEGER,
        FOREIGN KEY(user_id) REFERENCES users(id)
    )
    """,
)

_VIDEO_COLUMNS = (
    "id, created_at, updated_at, title, description, thumbnail_url, video_url, user_id"
)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat(sep=" ")


@dataclass
class User:
    """A registered user."""

    id: uuid.UUID
    email: str
    password: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class RefreshToken:
    """A refresh token issued to a user."""

    token: str
    user_id: uuid.UUID
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
    revoked_at: Optional[datetime] = None


@dataclass
class Video:
    """Metadata of an uploaded video."""

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    thumbnail_url: Optional[str]
    video_url: Optional[str]
    title: str
    description: str
    user_id: uuid.UUID


class Database:
    """A connection to the application's SQLite database."""

    def __init__(self, path):
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False, isolation_level=None
        )
        self._conn.row_factory = sqlite3.Row
        try:
            self._migrate()
        except Exception:
            self._conn.close()
            raise

    def _migrate(self) -> None:
        for statement in _SCHEMA:
            self._execute(statement)

    def _execute(self, query: str, params: tuple = ()) -> None:
        with self._lock:
            self._conn.execute(query, params)

    def _fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(query, params).fetchone()

    def _fetchall(self, query: str, params: tuple = ()) -> list:
        with self._lock:
            return self._conn.execute(query, params).fetchall()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def reset(self) -> None:
        """Delete every row from every table."""
        for table in ("refresh_tokens", "users", "videos"):
            self._execute(f"DELETE FROM {table}")

    # Refresh tokens

    def create_refresh_token(
        self, token: str, user_id: uuid.UUID, expires_at: datetime
    ) -> Optional[RefreshToken]:
        """Store a refresh token and return it as saved."""
        self._execute(
            """
            INSERT INTO refresh_tokens (token, created_at, updated_at, user_id, expires_at)
            VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?)
            """,
            (token, str(user_id), _format_timestamp(expires_at)),
        )
        return self.get_refresh_token(token)

    def revoke_refresh_token(self, token: str) -> None:
        """Mark a refresh token as revoked now."""
        self._execute(
            "UPDATE refresh_tokens SET revoked_at = CURRENT_TIMESTAMP WHERE token = ?",
            (token,),
        )

    def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        """Return the refresh token, or None if it is unknown."""
        row = self._fetchone(
            """
            SELECT token, created_at, updated_at, user_id, expires_at, revoked_at
            FROM refresh_tokens WHERE token = ?
            """,
            (token,),
        )
        if row is None:
            return None
        return RefreshToken(
            token=row["token"],
            user_id=uuid.UUID(row["user_id"]),
            expires_at=_parse_timestamp(row["expires_at"]),
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
            revoked_at=_parse_timestamp(row["revoked_at"]),
        )

    def delete_refresh_token(self, token: str) -> None:
        """Remove a refresh token."""
        self._execute("DELETE FROM refresh_tokens WHERE token = ?", (token,))

    # Users

    @staticmethod
    def _user_from_row(row: sqlite3.Row) -> User:
        return User(
            id=uuid.UUID(row["id"]),
            email=row["email"],
            password=row["password"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    def get_users(self) -> list[User]:
        """Return every user with only id and email filled in."""
        rows = self._fetchall("SELECT id, email FROM users")
        return [User(id=uuid.UUID(row["id"]), email=row["email"]) for row in rows]

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Return the user with this email, or None."""
        row = self._fetchone(
            "SELECT id, created_at, updated_at, email, password FROM users WHERE email = ?",
            (email,),
        )
        return None if row is None else self._user_from_row(row)

    def get_user_by_refresh_token(self, token: str) -> Optional[User]:
        """Return the owner of a refresh token, or None."""
        row = self._fetchone(
            """
            SELECT u.id, u.email, u.created_at, u.updated_at, u.password
            FROM users u
            JOIN refresh_tokens rt ON u.id = rt.user_id
            WHERE rt.token = ?
            """,
            (token,),
        )
        return None if row is None else self._user_from_row(row)

    def create_user(self, email: str, password: str) -> Optional[User]:
        """Insert a user with a fresh id and return it."""
        user_id = uuid.uuid4()
        self._execute(
            """
            INSERT INTO users (id, created_at, updated_at, email, password)
            VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?)
            """,
            (str(user_id), email, password),
        )
        return self.get_user(user_id)

    def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        """Return the user with this id, or None."""
        row = self._fetchone(
            "SELECT id, created_at, updated_at, email, password FROM users WHERE id = ?",
            (str(user_id),),
        )
        return None if row is None else self._user_from_row(row)

    def delete_user(self, user_id: uuid.UUID) -> None:
        """Remove a user."""
        self._execute("DELETE FROM users WHERE id = ?", (str(user_id),))

    # Videos

    @staticmethod
    def _video_from_row(row: sqlite3.Row) -> Video:
        return Video(
            id=uuid.UUID(row["id"]),
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
            thumbnail_url=row["thumbnail_url"],
            video_url=row["video_url"],
            title=row["title"],
            description=row["description"] or "",
            user_id=uuid.UUID(str(row["user_id"])),
        )

    def get_videos(self, user_id: uuid.UUID) -> list[Video]:
        """Return a user's videos, newest first."""
        rows = self._fetchall(
            f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE user_id = ? ORDER BY created_at DESC",
            (str(user_id),),
        )
        return [self._video_from_row(row) for row in rows]

    def create_video(
        self, title: str, description: str, user_id: uuid.UUID
    ) -> Optional[Video]:
        """Insert a video with a fresh id and return it."""
        video_id = uuid.uuid4()
        self._execute(
            """
            INSERT INTO videos (id, created_at, updated_at, title, description, user_id)
            VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?, ?)
            """,
            (str(video_id), title, description, str(user_id)),
        )
        return self.get_video(video_id)

    def get_video(self, video_id: uuid.UUID) -> Optional[Video]:
        """Return the video with this id, or None."""
        row = self._fetchone(
            f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE id = ?", (str(video_id),)
        )
        return None if row is None else self._video_from_row(row)

    def update_video(self, video: Video) -> None:
        """Save a video's title, description, URLs and owner."""
        self._execute(
            """
            UPDATE videos
            SET title = ?, description = ?, thumbnail_url = ?, video_url = ?, user_id = ?
            WHERE id = ?
            """,
            (
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                str(video.user_id),
                str(video.id),
            ),
        )

    def delete_video(self, video_id: uuid.UUID) -> None:
        """Remove a video."""
        self._execute("DELETE FROM videos WHERE id = ?", (str(video_id),))