"""Rewrite playlist references to absolute URLs for the preview proxy."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit

from ..utils.url_utils import resolve_url_or_keep

PLAYLIST_CONTENT_TYPE = "application/vnd.apple.mpegurl"
GENERIC_CONTENT_TYPES = {
    "application/octet-stream",
    "binary/octet-stream",
    "text/plain",
}
PLAYLIST_SUFFIXES = (".m3u8", ".m3u")

_URI_ATTRIBUTE_RE = re.compile(r'URI="([^"]+)"')


def rewrite_playlist(content: str, base_url: str) -> str:
    """Make every segment line and ``URI="..."`` attribute absolute.

    References that cannot be resolved are left as they were.
    """

    def _absolute_uri(match: re.Match) -> str:
        return f'URI="{resolve_url_or_keep(base_url, match.group(1))}"'

    rewritten = []
    for line in content.split("\n"):
        trimmed = line.strip()
        if 'URI="' in trimmed:
            rewritten.append(_URI_ATTRIBUTE_RE.sub(_absolute_uri, trimmed))
        elif not trimmed or trimmed.startswith("#"):
            rewritten.append(line)
        else:
            rewritten.append(resolve_url_or_keep(base_url, trimmed))
    return "\n".join(rewritten)


def _media_type(content_type: Optional[str]) -> str:
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def is_playlist_response(url: str, content_type: Optional[str]) -> bool:
    """Decide whether an upstream body is a playlist that needs rewriting.

    A specific content type wins; the URL suffix is only consulted when the
    type is missing or generic.
    """

    media_type = _media_type(content_type)
    if media_type and media_type not in GENERIC_CONTENT_TYPES:
        return "mpegurl" in media_type
    path = urlsplit(url).path.lower()
    return any(suffix in path for suffix in PLAYLIST_SUFFIXES)
