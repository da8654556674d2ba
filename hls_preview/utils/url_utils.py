"""Helpers for turning playlist references into absolute URLs."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urljoin, urlsplit

from .errors import ForbiddenSourceError, InvalidInputError, UrlResolutionError

ABSOLUTE_PREFIXES = ("http://", "https://")


def resolve_url(base_url: str, reference: str) -> str:
    """Resolve ``reference`` against the directory of ``base_url``.

    Absolute http(s) references come back untouched. Raises
    ``UrlResolutionError`` when the base is not a usable http(s) URL or the
    reference is empty.
    """

    if not reference:
        raise UrlResolutionError("Empty reference")
    if reference.startswith(ABSOLUTE_PREFIXES):
        return reference

    try:
        parts = urlsplit(base_url)
        parts.port  # raises on a malformed port
    except ValueError as exc:
        raise UrlResolutionError(f"Malformed base URL {base_url!r}: {exc}") from exc

    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise UrlResolutionError(f"Base URL {base_url!r} is not an absolute http(s) URL")

    directory = parts.path[: parts.path.rfind("/") + 1] or "/"
    return urljoin(f"{parts.scheme}://{parts.netloc}{directory}", reference)


def resolve_url_or_keep(base_url: str, reference: str) -> str:
    """Best-effort variant of :func:`resolve_url` that never raises."""

    try:
        return resolve_url(base_url, reference)
    except UrlResolutionError:
        return reference


def playlist_base_url(url: str) -> str:
    """Return ``url`` truncated after its last ``/``."""

    parts = urlsplit(url)
    if parts.scheme and parts.netloc:
        directory = parts.path[: parts.path.rfind("/") + 1] or "/"
        return f"{parts.scheme}://{parts.netloc}{directory}"
    return url[: url.rfind("/") + 1] or "/"


def is_http_url(url: str | None) -> bool:
    if not url:
        return False
    try:
        parts = urlsplit(url)
        parts.port
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def looks_like_m3u8_url(url: str) -> bool:
    return is_http_url(url) and ".m3u8" in urlsplit(url).path.lower()


def hostname_of(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def is_blocked_domain(url: str, blocked_domains: Iterable[str]) -> bool:
    """Substring match of the URL's hostname against the denylist."""

    hostname = hostname_of(url)
    if not hostname:
        return False
    return any(domain.lower() in hostname for domain in blocked_domains)


def validate_stream_url(url: str | None, blocked_domains: Iterable[str]) -> str:
    """Reject missing, malformed, or denylisted stream URLs before any I/O."""

    if not url:
        raise InvalidInputError("Please provide a valid .m3u8 URL")
    if not is_http_url(url):
        raise InvalidInputError("Please enter a valid .m3u8 URL")
    if is_blocked_domain(url, blocked_domains):
        raise ForbiddenSourceError()
    return url
