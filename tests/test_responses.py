import json
import logging
import uuid
from datetime import datetime, timedelta, timezone

from tubely.database import Video
from tubely.responses import error_response, json_response, to_jsonable


def _video():
    moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    return Video(
        id=uuid.uuid4(),
        created_at=moment,
        updated_at=moment,
        thumbnail_url=None,
        video_url="https://cdn.example.com/landscape/clip.mp4",
        title="Clip",
        description="A clip",
        user_id=uuid.uuid4(),
    )


def test_json_response_round_trip():
    payload = {"a": [1, 2], "b": "text"}
    response = json_response(201, payload)
    assert response.status_code == 201
    assert response.headers["Content-Type"] == "application/json"
    assert json.loads(response.get_data()) == payload


def test_json_response_is_compact():
    response = json_response(200, {"a": 1, "b": [1, 2]})
    assert b" " not in response.get_data()


def test_json_response_escapes_html_characters():
    payload = {"t": "<a&b>"}
    data = response_data = json_response(200, payload).get_data()
    assert b"<" not in response_data and b"&" not in data
    assert b"\\u003c" in data
    assert json.loads(data) == payload


def test_json_response_unencodable_gives_empty_500():
    response = json_response(200, {"x": object()})
    assert response.status_code == 500
    assert response.get_data() == b""


def test_json_response_nan_gives_500():
    assert json_response(200, {"x": float("nan")}).status_code == 500


def test_error_response_body():
    response = error_response(404, "Couldn't get video", None)
    assert response.status_code == 404
    assert json.loads(response.get_data()) == {"error": "Couldn't get video"}


def test_error_response_logs_server_errors(caplog):
    caplog.set_level(logging.INFO, logger="tubely.responses")
    error_response(500, "Couldn't reset database", RuntimeError("disk gone"))
    assert "Responding with 5XX error: Couldn't reset database" in caplog.text
    assert "disk gone" in caplog.text


def test_error_response_client_error_not_logged_as_5xx(caplog):
    caplog.set_level(logging.INFO, logger="tubely.responses")
    error_response(400, "Invalid video ID", None)
    assert "5XX" not in caplog.text


def test_to_jsonable_uuid():
    value = uuid.uuid4()
    assert to_jsonable(value) == str(value)


def test_to_jsonable_utc_datetime():
    value = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert to_jsonable(value) == "2024-01-02T03:04:05Z"


def test_to_jsonable_fraction_trims_zeros():
    value = datetime(2024, 1, 2, 3, 4, 5, 500000, tzinfo=timezone.utc)
    assert to_jsonable(value) == "2024-01-02T03:04:05.5Z"


def test_to_jsonable_offset_datetime():
    zone = timezone(timedelta(hours=5, minutes=30))
    value = datetime(2024, 1, 2, 3, 4, 5, tzinfo=zone)
    assert to_jsonable(value).endswith("+05:30")


def test_to_jsonable_video_fields_and_order():
    video = _video()
    result = to_jsonable(video)
    assert list(result) == [
        "id",
        "created_at",
        "updated_at",
        "thumbnail_url",
        "video_url",
        "title",
        "description",
        "user_id",
    ]
    assert result["id"] == str(video.id)
    assert result["user_id"] == str(video.user_id)
    assert result["thumbnail_url"] is None


def test_to_jsonable_nested_list():
    videos = [_video(), _video()]
    result = to_jsonable(videos)
    assert [item["id"] for item in result] == [str(v.id) for v in videos]