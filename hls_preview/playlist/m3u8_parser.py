"""Parse HLS playlist text into a :class:`PlaylistAnalysis`.

Pure functions, no I/O: the same parser serves the HTTP analysis endpoint and
the command line.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from ..models import PlaylistAnalysis, PlaylistKind, QualityVariant
from ..utils.errors import InvalidPlaylistError, UrlResolutionError
from ..utils.url_utils import playlist_base_url, resolve_url

PLAYLIST_MARKER = "#EXTM3U"
ENDLIST_TAG = "#EXT-X-ENDLIST"
KEY_TAG = "#EXT-X-KEY:"
STREAM_INF_TAG = "#EXT-X-STREAM-INF"

_RESOLUTION_RE = re.compile(r"\d+x\d+")
_LEADING_DIGITS_RE = re.compile(r"\d+")


def parse_attribute_list(text: str) -> Dict[str, str]:
    """Tokenize an HLS attribute list such as ``BANDWIDTH=1,CODECS="a,b"``.

    Commas inside double quotes do not split tokens. Names are upper-cased,
    surrounding quotes are stripped from values, and tokens without ``=``
    are ignored.
    """

    tokens: List[str] = []
    current: List[str] = []
    in_quotes = False
    for char in text:
        if char == '"':
            in_quotes = not in_quotes
        if char == "," and not in_quotes:
            tokens.append("".join(current))
            current = []
            continue
        current.append(char)
    tokens.append("".join(current))

    attributes: Dict[str, str] = {}
    for token in tokens:
        name, sep, value = token.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        value = value.strip()
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        attributes[name.upper()] = value
    return attributes


def _tag_attributes(line: str) -> Dict[str, str]:
    _, _, attrs = line.partition(":")
    return parse_attribute_list(attrs)


def detect_encryption(lines: List[str]) -> bool:
    """True as soon as any key tag declares a method other than NONE."""

    for line in lines:
        if not line.startswith(KEY_TAG):
            continue
        method = _tag_attributes(line).get("METHOD")
        if method and method.upper() != "NONE":
            return True
    return False


def _parse_bandwidth(value: Optional[str]) -> int:
    if not value:
        return 0
    match = _LEADING_DIGITS_RE.match(value)
    return int(match.group(0)) if match else 0


def _parse_resolution(value: Optional[str]) -> Optional[str]:
    if value and _RESOLUTION_RE.fullmatch(value):
        return value
    return None


def _next_uri(lines: List[str], start: int) -> Optional[str]:
    for candidate in lines[start:]:
        if not candidate.startswith("#"):
            return candidate
    return None


def _parse_variants(lines: List[str], source_url: str) -> List[QualityVariant]:
    variants: List[QualityVariant] = []
    for index, line in enumerate(lines):
        if not line.startswith(STREAM_INF_TAG):
            continue
        attributes = _tag_attributes(line)
        reference = _next_uri(lines, index + 1)
        if reference is None:
            logging.debug("Variant at line %s has no URI; skipping", index + 1)
            continue
        try:
            url = resolve_url(source_url, reference)
        except UrlResolutionError as exc:
            logging.debug("Dropping variant %r: %s", reference, exc)
            continue
        variants.append(
            QualityVariant(
                resolution=_parse_resolution(attributes.get("RESOLUTION")),
                bandwidth=_parse_bandwidth(attributes.get("BANDWIDTH")),
                url=url,
            )
        )
    # sorted() is stable, so equal bandwidths keep playlist order
    return sorted(variants, key=lambda variant: variant.bandwidth, reverse=True)


def parse_playlist(content: str, source_url: str) -> PlaylistAnalysis:
    if PLAYLIST_MARKER not in content:
        raise InvalidPlaylistError()

    lines = [line.strip() for line in content.splitlines()]
    lines = [line for line in lines if line]

    is_master = any(line.startswith(STREAM_INF_TAG) for line in lines)
    qualities: List[QualityVariant] = []
    if is_master:
        qualities = _parse_variants(lines, source_url)
        if not qualities:
            logging.warning("Master playlist %s declared no usable variants", source_url)

    if not qualities:
        qualities = [QualityVariant(resolution=None, bandwidth=0, url=source_url)]

    return PlaylistAnalysis(
        kind=PlaylistKind.MASTER if is_master else PlaylistKind.MEDIA,
        is_live=ENDLIST_TAG not in content,
        is_encrypted=detect_encryption(lines),
        base_url=playlist_base_url(source_url),
        qualities=qualities,
    )
