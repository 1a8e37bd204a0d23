# services/video.py
"""YouTube reference validation for message attachments."""
from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

VIDEO_ID_RE = re.compile(r"[A-Za-z0-9_-]{11}")


class VideoURLError(ValueError):
    pass


class InvalidVideoURL(VideoURLError):
    def __init__(self, msg: str = "invalid YouTube URL format"):
        super().__init__(msg)


class MissingVideoID(VideoURLError):
    def __init__(self, msg: str = "YouTube URL missing video ID"):
        super().__init__(msg)


class InvalidVideoID(VideoURLError):
    def __init__(self, msg: str = "invalid YouTube video ID format"):
        super().__init__(msg)


def is_valid_video_id(video_id: str) -> bool:
    return bool(VIDEO_ID_RE.fullmatch(video_id or ""))


def _id_from_parts(host: str, path: str, query: str) -> str:
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]

    if host == "youtu.be":
        vid = path.lstrip("/")
        if not vid:
            raise MissingVideoID()
        return vid

    if host in ("youtube.com", "m.youtube.com"):
        for prefix in ("/embed/", "/v/"):
            if path.startswith(prefix):
                vid = path[len(prefix):]
                if not vid:
                    raise MissingVideoID()
                return vid
        vid = (parse_qs(query).get("v") or [""])[0]
        if not vid:
            raise MissingVideoID()
        return vid

    raise InvalidVideoURL()


def extract_video_id(url: str | None) -> str:
    """Return the 11-char video id of a YouTube URL, or "" for an empty value.

    Accepts watch?v=, embed/, v/, youtu.be/ and the mobile host; anything
    after the id (timestamps, playlists) is ignored.
    """
    url = (url or "").strip()
    if not url:
        return ""
    try:
        parts = urlparse(url)
    except ValueError as exc:
        raise InvalidVideoURL() from exc
    vid = _id_from_parts(parts.netloc, parts.path, parts.query)
    if not is_valid_video_id(vid):
        raise InvalidVideoID()
    return vid


__all__ = [
    "VideoURLError",
    "InvalidVideoURL",
    "MissingVideoID",
    "InvalidVideoID",
    "is_valid_video_id",
    "extract_video_id",
]
