"""Utility helpers for URLs, HTTP, errors, and formatting."""

from .errors import (
    AccessDeniedError,
    ForbiddenSourceError,
    InvalidInputError,
    InvalidPlaylistError,
    StreamError,
    TransportError,
    UpstreamError,
    UpstreamTimeoutError,
    UrlResolutionError,
)
from .http_client import HttpClient, build_upstream_headers
from .stream_registry import StreamRegistry
from .url_utils import is_blocked_domain, resolve_url, resolve_url_or_keep, validate_stream_url

__all__ = [
    "AccessDeniedError",
    "ForbiddenSourceError",
    "InvalidInputError",
    "InvalidPlaylistError",
    "StreamError",
    "TransportError",
    "UpstreamError",
    "UpstreamTimeoutError",
    "UrlResolutionError",
    "HttpClient",
    "build_upstream_headers",
    "StreamRegistry",
    "is_blocked_domain",
    "resolve_url",
    "resolve_url_or_keep",
    "validate_stream_url",
]
