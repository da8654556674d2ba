"""Preview proxy: rewrite playlists, stream segments through unbuffered."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Dict, Mapping, Optional, Union

import aiohttp

from ..playlist.rewriter import PLAYLIST_CONTENT_TYPE, is_playlist_response, rewrite_playlist
from ..utils.errors import AccessDeniedError, UpstreamError
from ..utils.http_client import HttpClient, read_text
from ..utils.stream_registry import StreamRegistry
from ..utils.url_utils import validate_stream_url

CHUNK_SIZE = 1 << 16
# Content-Length is never copied: it stalls players when the CDN streams chunked
FORWARDED_SEGMENT_HEADERS = ("Content-Range", "Accept-Ranges")


class PlaylistResult:
    """A fully buffered playlist whose references are now absolute."""

    content_type = PLAYLIST_CONTENT_TYPE
    status = 200

    def __init__(self, text: str) -> None:
        self.text = text


class SegmentResult:
    """An upstream body that is still arriving and must be relayed in order."""

    def __init__(self, response: aiohttp.ClientResponse, registry: StreamRegistry) -> None:
        self._response = response
        self._registry = registry
        self.status = 206 if response.status == 206 else 200
        self.content_type = response.headers.get("Content-Type") or "application/octet-stream"
        self.headers: Dict[str, str] = {}
        for name in FORWARDED_SEGMENT_HEADERS:
            value = response.headers.get(name)
            if value:
                self.headers[name] = value
        registry.track(response)

    async def iter_chunks(self, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
        async for chunk in self._response.content.iter_chunked(chunk_size):
            if chunk:
                yield chunk

    def close(self) -> None:
        """Abort the upstream connection; safe to call more than once."""

        self._registry.discard(self._response)
        self._response.close()


ProxyResult = Union[PlaylistResult, SegmentResult]


class ProxyAPI:
    """Opens upstream resources on behalf of the browser player."""

    def __init__(self, http_client: HttpClient, registry: StreamRegistry) -> None:
        self._client = http_client
        self._registry = registry

    async def open(
        self,
        url: Optional[str],
        inbound_headers: Optional[Mapping[str, str]] = None,
    ) -> ProxyResult:
        url = validate_stream_url(url, ())
        response = await self._client.open_stream(url, inbound_headers, include_range=True)

        if response.status in {401, 403}:
            response.close()
            logging.warning("Upstream denied proxy access to %s (status %s)", url, response.status)
            raise AccessDeniedError(
                "Stream requires browser session headers. The session may have expired.",
                status=response.status,
            )
        if response.status >= 400:
            response.close()
            logging.error("Proxy fetch of %s returned HTTP %s", url, response.status)
            raise UpstreamError(f"Unable to fetch resource (HTTP {response.status})")

        final_url = str(response.url)
        if not is_playlist_response(final_url, response.headers.get("Content-Type")):
            return SegmentResult(response, self._registry)

        content = await read_text(response, timeout=self._client.timeout)
        return PlaylistResult(rewrite_playlist(content, final_url))
