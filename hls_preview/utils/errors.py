"""Error taxonomy shared by the analysis, proxy, and download-link paths."""

from __future__ import annotations

from typing import Optional

from ..models import ErrorPayload


class UrlResolutionError(ValueError):
    """Raised when a reference cannot be turned into an absolute URL."""


class StreamError(Exception):
    """Base class for failures that are reported to the client."""

    kind = "error"
    title = "Error"
    status = 500
    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None) -> None:
        self.message = message or self.default_message
        if status is not None:
            self.status = status
        super().__init__(self.message)

    def to_payload(self) -> ErrorPayload:
        return ErrorPayload(error=self.title, kind=self.kind, message=self.message)


class InvalidInputError(StreamError):
    kind = "invalid_input"
    title = "Invalid URL"
    status = 400
    default_message = "Please enter a valid .m3u8 URL"


class ForbiddenSourceError(StreamError):
    kind = "forbidden"
    title = "Blocked domain"
    status = 403
    default_message = "This source is not supported"


class AccessDeniedError(StreamError):
    """Upstream answered 401/403; the stream probably needs session context."""

    kind = "access_denied"
    title = "Access denied"
    status = 403
    default_message = (
        "Stream requires browser session headers. Try opening the stream in your "
        "browser first, then paste the URL here."
    )


class UpstreamError(StreamError):
    kind = "upstream_error"
    title = "Fetch failed"
    status = 502
    default_message = "Unable to fetch stream"


class InvalidPlaylistError(StreamError):
    kind = "invalid_playlist"
    title = "Invalid playlist"
    status = 400
    default_message = "The URL does not contain a valid M3U8 playlist"


class UpstreamTimeoutError(StreamError):
    kind = "timeout"
    title = "Request timeout"
    status = 504
    default_message = "Stream took too long to respond"


class TransportError(StreamError):
    kind = "transport_error"
    title = "Network error"
    status = 502
    default_message = "Unable to fetch stream. Check the URL."
