"""Formatting helpers for command line output and download filenames."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

_PLAYLIST_EXT_RE = re.compile(r"\.(m3u8|m3u)$", re.IGNORECASE)
_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9_-]")


def format_bandwidth(bandwidth: int) -> str:
    if bandwidth >= 1_000_000:
        return f"{bandwidth / 1_000_000:.1f} Mbps"
    if bandwidth >= 1_000:
        return f"{bandwidth / 1_000:.0f} Kbps"
    return f"{bandwidth} bps"


def build_download_filename(url: str, default: str = "video") -> str:
    """Derive ``<name>.mp4`` from the last path segment of a playlist URL."""

    try:
        path = urlsplit(url).path
    except ValueError:
        return f"{default}.mp4"
    base_name = path.rsplit("/", 1)[-1] or default
    clean_name = _UNSAFE_CHARS_RE.sub("_", _PLAYLIST_EXT_RE.sub("", base_name))
    return f"{clean_name or default}.mp4"
