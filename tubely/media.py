"""Helpers that inspect and rewrite video files with ffprobe and ffmpeg."""

from __future__ import annotations

import json
import subprocess
from typing import Sequence


class MediaToolError(RuntimeError):
    """Raised when ffprobe or ffmpeg fails or gives unusable output."""


def aspect_ratio_label(width: int, height: int) -> str:
    """Classify a frame size as "16:9", "9:16" or "other"."""
    if height == 0:
        return "other"
    ratio = width / height
    if 1.7 < ratio < 1.8:
        return "16:9"
    if 0.5 < ratio < 0.6:
        return "9:16"
    return "other"


def _run(command: Sequence[str], *, capture: bool) -> bytes:
    try:
        completed = subprocess.run(
            list(command),
            check=True,
            stdout=subprocess.PIPE if capture else subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except subprocess.CalledProcessError as exc:
        raise MediaToolError(
            f"{command[0]} exited with status {exc.returncode}"
        ) from exc
    except OSError as exc:
        raise MediaToolError(f"could not run {command[0]}: {exc}") from exc
    return completed.stdout or b""


def get_video_aspect_ratio(file_path: str) -> str:
    """Return the aspect-ratio label of the first stream of a video file."""
    output = _run(
        [
            "ffprobe",
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            str(file_path),
        ],
        capture=True,
    )
    try:
        info = json.loads(output)
    except ValueError as exc:
        raise MediaToolError(f"ffprobe returned invalid JSON: {exc}") from exc
    streams = info.get("streams") if isinstance(info, dict) else None
    if not streams:
        raise MediaToolError("ffprobe reported no streams")
    first = streams[0]
    return aspect_ratio_label(int(first.get("width", 0)), int(first.get("height", 0)))


def process_video_for_fast_start(file_path: str) -> str:
    """Rewrite a video with its index at the front and return the new path."""
    new_path = f"{file_path}.processing"
    _run(
        [
            "ffmpeg",
            "-i",
            str(file_path),
            "-c",
            "copy",
            "-movflags",
            "faststart",
            "-f",
            "mp4",
            new_path,
        ],
        capture=False,
    )
    return new_path