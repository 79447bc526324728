"""A small WSGI server for video metadata and static files, with SQLite storage and ffmpeg helpers."""

__version__ = "0.1.0"