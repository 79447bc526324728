import dataclasses
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from tubely.database import Database


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "tubely.db")
    yield database
    database.close()


@pytest.fixture
def user(db):
    password = "password"
    return db.create_user("alice@example.com", password)


def test_create_user_round_trip(db, user):
    assert user.email == "alice@example.com"
    assert user.password == "password"
    fetched = db.get_user(user.id)
    assert fetched == user


def test_created_at_is_recent_utc(user):
    now = datetime.now(timezone.utc)
    assert user.created_at.tzinfo is not None
    assert abs(now - user.created_at) < timedelta(minutes=5)
    assert user.created_at == user.updated_at


def test_get_user_by_email(db, user):
    assert db.get_user_by_email("alice@example.com") == user
    assert db.get_user_by_email("nobody@example.com") is None


def test_get_missing_user_returns_none(db):
    assert db.get_user(uuid.uuid4()) is None


def test_duplicate_email_rejected(db, user):
    password = "password"
    with pytest.raises(sqlite3.IntegrityError):
        db.create_user("alice@example.com", password)


def test_get_users_lists_ids_and_emails(db, user):
    password = "password"
    other = db.create_user("bob@example.com", password)
    users = db.get_users()
    assert {(u.id, u.email) for u in users} == {
        (user.id, user.email),
        (other.id, other.email),
    }
    assert all(u.password == "" and u.created_at is None for u in users)


def test_delete_user(db, user):
    db.delete_user(user.id)
    assert db.get_user(user.id) is None
    assert db.get_users() == []


def test_refresh_token_round_trip(db, user):
    expires = datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    rt = db.create_refresh_token("token", user.id, expires)
    assert rt.token == "token"
    assert rt.user_id == user.id
    assert rt.expires_at == expires
    assert rt.revoked_at is None
    assert db.get_refresh_token("token") == rt


def test_revoke_refresh_token(db, user):
    db.create_refresh_token("token", user.id, datetime.now(timezone.utc))
    db.revoke_refresh_token("token")
    rt = db.get_refresh_token("token")
    assert rt.revoked_at is not None
    assert abs(datetime.now(timezone.utc) - rt.revoked_at) < timedelta(minutes=5)


def test_delete_refresh_token(db, user):
    db.create_refresh_token("token", user.id, datetime.now(timezone.utc))
    db.delete_refresh_token("token")
    assert db.get_refresh_token("token") is None


def test_get_user_by_refresh_token(db, user):
    db.create_refresh_token("token", user.id, datetime.now(timezone.utc))
    assert db.get_user_by_refresh_token("token") == user
    assert db.get_user_by_refresh_token("placeholder") is None


def test_video_create_and_get(db, user):
    video = db.create_video("Clip", "A short clip", user.id)
    assert video.title == "Clip"
    assert video.description == "A short clip"
    assert video.user_id == user.id
    assert video.thumbnail_url is None
    assert video.video_url is None
    assert db.get_video(video.id) == video


def test_get_missing_video_returns_none(db):
    assert db.get_video(uuid.uuid4()) is None


def test_update_video(db, user):
    video = db.create_video("Clip", "A short clip", user.id)
    changed = dataclasses.replace(
        video,
        title="Renamed",
        thumbnail_url="http://localhost:8091/assets/thumb.png",
        video_url="https://cdn.example.com/landscape/abc.mp4",
    )
    db.update_video(changed)
    stored = db.get_video(video.id)
    assert stored.title == "Renamed"
    assert stored.thumbnail_url == "http://localhost:8091/assets/thumb.png"
    assert stored.video_url == "https://cdn.example.com/landscape/abc.mp4"
    assert stored.created_at == video.created_at


def test_get_videos_filters_by_user(db, user):
    password = "password"
    other = db.create_user("bob@example.com", password)
    first = db.create_video("One", "", user.id)
    second = db.create_video("Two", "", user.id)
    db.create_video("Three", "", other.id)
    videos = db.get_videos(user.id)
    assert {v.id for v in videos} == {first.id, second.id}
    created = [v.created_at for v in videos]
    assert created == sorted(created, reverse=True)


def test_delete_video(db, user):
    video = db.create_video("Clip", "", user.id)
    db.delete_video(video.id)
    assert db.get_video(video.id) is None


def test_reset_clears_everything(db, user):
    db.create_refresh_token("token", user.id, datetime.now(timezone.utc))
    video = db.create_video("Clip", "", user.id)
    db.reset()
    assert db.get_users() == []
    assert db.get_refresh_token("token") is None
    assert db.get_video(video.id) is None


def test_data_persists_across_connections(tmp_path):
    path = tmp_path / "persist.db"
    password = "password"
    with Database(path) as first:
        created = first.create_user("carol@example.com", password)
    with Database(path) as second:
        assert second.get_user(created.id) == created


def test_context_manager_closes_connection(tmp_path):
    with Database(tmp_path / "closed.db") as database:
        pass
    with pytest.raises(sqlite3.ProgrammingError):
        database.get_users()