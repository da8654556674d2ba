"""Shared HTTP helpers for fetching playlists and media segments."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional

import aiohttp
import requests
from pydantic import BaseModel
from yarl import URL

from .errors import TransportError, UpstreamTimeoutError, UrlResolutionError
from .url_utils import resolve_url

REAL_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_BROWSER_HEADERS = {
    "User-Agent": REAL_USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    # segments are relayed byte-for-byte, so ask for them uncompressed
    "Accept-Encoding": "identity",
    "Connection": "keep-alive",
}

FORWARD_HEADERS = (
    "user-agent",
    "referer",
    "origin",
    "accept",
    "accept-language",
    "accept-encoding",
    "connection",
    "range",
    "cookie",
)

REDIRECT_STATUSES = {301, 302, 303, 307, 308}
DEFAULT_TIMEOUT = 15.0


class FetchedText(BaseModel):
    """Result of a blocking playlist fetch."""

    status: int
    url: str
    text: str


def _title_case(header: str) -> str:
    return "-".join(part.capitalize() for part in header.split("-"))


def build_upstream_headers(
    inbound: Optional[Mapping[str, str]] = None,
    include_range: bool = False,
) -> dict:
    """Browser-like defaults overlaid with allow-listed inbound headers."""

    headers = dict(DEFAULT_BROWSER_HEADERS)
    if not inbound:
        return headers
    lowered = {name.lower(): value for name, value in inbound.items()}
    for header in FORWARD_HEADERS:
        if header == "range" and not include_range:
            continue
        value = lowered.get(header)
        if value:
            headers[_title_case(header)] = value
    return headers


def _redirect_target(current_url: str, location: str) -> str:
    try:
        return resolve_url(current_url, location)
    except UrlResolutionError:
        return location


class HttpClient:
    """Fetches upstream playlists and segments with browser-like headers.

    The async half (aiohttp) backs the web service; the blocking half
    (requests) backs one-shot command line analysis.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, max_redirects: int = 10) -> None:
        self.timeout = timeout
        self.max_redirects = max_redirects
        self._session = requests.Session()

        self._async_session: Optional[aiohttp.ClientSession] = None
        self._async_lock: Optional[asyncio.Lock] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def fetch_text(self, url: str, inbound_headers: Optional[Mapping[str, str]] = None) -> FetchedText:
        """GET a playlist and return its decoded body, following redirects."""

        headers = build_upstream_headers(inbound_headers, include_range=False)
        current_url = url
        for _ in range(self.max_redirects + 1):
            try:
                prepared = self._session.prepare_request(requests.Request("GET", current_url, headers=headers))
                # requests requotes URLs; signed query strings must go out untouched
                prepared.url = current_url
                response = self._session.send(prepared, timeout=self.timeout, allow_redirects=False)
            except requests.Timeout as exc:
                logging.error("Timed out fetching %s: %s", current_url, exc)
                raise UpstreamTimeoutError() from exc
            except requests.RequestException as exc:
                logging.error("HTTP GET to %s failed: %s", current_url, exc)
                raise TransportError() from exc

            location = response.headers.get("location")
            if response.status_code in REDIRECT_STATUSES and location:
                response.close()
                current_url = _redirect_target(current_url, location)
                logging.debug("Following redirect to %s", current_url)
                continue

            if response.encoding is None:
                response.encoding = "utf-8"
            return FetchedText(status=response.status_code, url=current_url, text=response.text)

        raise TransportError(f"Too many redirects fetching {url}")

    async def open_stream(
        self,
        url: str,
        inbound_headers: Optional[Mapping[str, str]] = None,
        include_range: bool = False,
    ) -> aiohttp.ClientResponse:
        """Start a GET and return the response once headers have arrived.

        The body is left unread; the caller must ``close()`` (abort) or
        ``release()`` the returned response.
        """

        headers = build_upstream_headers(inbound_headers, include_range=include_range)
        session = await self._get_async_session()
        current_url = url
        for _ in range(self.max_redirects + 1):
            try:
                response = await session.get(
                    URL(current_url, encoded=True),
                    headers=headers,
                    allow_redirects=False,
                )
            except asyncio.TimeoutError as exc:
                logging.error("Timed out fetching %s", current_url)
                raise UpstreamTimeoutError() from exc
            except (aiohttp.ClientError, OSError, ValueError) as exc:
                logging.error("HTTP GET to %s failed: %s", current_url, exc)
                raise TransportError() from exc

            location = response.headers.get("Location")
            if response.status in REDIRECT_STATUSES and location:
                response.release()
                current_url = _redirect_target(current_url, location)
                logging.debug("Following redirect to %s", current_url)
                continue
            return response

        raise TransportError(f"Too many redirects fetching {url}")

    async def _get_async_session(self) -> aiohttp.ClientSession:
        current_loop = asyncio.get_running_loop()
        if self._async_session:
            if (
                self._async_session.closed
                or not self._loop
                or self._loop.is_closed()
                or self._loop is not current_loop
            ):
                await self._shutdown_async_session()

        if self._async_lock is None or self._loop is not current_loop:
            self._async_lock = asyncio.Lock()

        async with self._async_lock:
            if self._async_session and not self._async_session.closed:
                return self._async_session
            timeout = aiohttp.ClientTimeout(
                total=None,
                sock_connect=self.timeout,
                sock_read=self.timeout,
            )
            connector = aiohttp.TCPConnector(limit=0)
            self._async_session = aiohttp.ClientSession(
                timeout=timeout,
                connector=connector,
            )
            self._loop = current_loop
        return self._async_session

    async def _shutdown_async_session(self) -> None:
        if self._async_session:
            try:
                await self._async_session.close()
            except (aiohttp.ClientError, OSError) as exc:
                logging.debug("Ignoring error while closing client session: %s", exc)
        self._async_session = None
        self._loop = None

    async def aclose(self) -> None:
        await self._shutdown_async_session()
        self._session.close()

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


async def read_text(response: aiohttp.ClientResponse, timeout: Optional[float] = None) -> str:
    """Read a whole response body as text and release the connection.

    ``timeout`` bounds the whole read, not just the gap between packets.
    """

    try:
        return await asyncio.wait_for(response.text(errors="replace"), timeout)
    except asyncio.TimeoutError as exc:
        response.close()
        logging.error("Timed out reading %s", response.url)
        raise UpstreamTimeoutError() from exc
    except aiohttp.ClientError as exc:
        logging.error("Reading %s failed: %s", response.url, exc)
        raise TransportError() from exc
    finally:
        response.release()
