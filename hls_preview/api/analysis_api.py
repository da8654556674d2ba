"""Answer "what is this stream" for a playlist URL."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from ..models import PlaylistAnalysis
from ..playlist.m3u8_parser import parse_playlist
from ..utils.errors import AccessDeniedError, UpstreamError
from ..utils.http_client import HttpClient, read_text
from ..utils.url_utils import looks_like_m3u8_url, validate_stream_url


class AnalysisAPI:
    """Fetches a playlist once and classifies it. Nothing is cached."""

    def __init__(self, http_client: HttpClient, blocked_domains: Iterable[str]) -> None:
        self._client = http_client
        self._blocked_domains = list(blocked_domains)

    async def analyze(
        self,
        url: Optional[str],
        inbound_headers: Optional[Mapping[str, str]] = None,
    ) -> PlaylistAnalysis:
        url = self._check_target(url)
        response = await self._client.open_stream(url, inbound_headers, include_range=False)
        if response.status != 200:
            response.release()
            self._check_status(response.status, url)
        content = await read_text(response, timeout=self._client.timeout)
        return self._parse(content, url)

    def analyze_blocking(self, url: Optional[str]) -> PlaylistAnalysis:
        url = self._check_target(url)
        fetched = self._client.fetch_text(url)
        self._check_status(fetched.status, url)
        return self._parse(fetched.text, url)

    def _check_target(self, url: Optional[str]) -> str:
        url = validate_stream_url(url, self._blocked_domains)
        if not looks_like_m3u8_url(url):
            logging.debug("%s does not look like an .m3u8 URL; analysing anyway", url)
        return url

    @staticmethod
    def _check_status(status: int, url: str) -> None:
        if status in {401, 403}:
            logging.warning("Upstream denied access to %s (status %s)", url, status)
            raise AccessDeniedError(status=status)
        if status != 200:
            logging.error("Fetching %s returned HTTP %s", url, status)
            raise UpstreamError(f"Unable to fetch stream (HTTP {status})")

    @staticmethod
    def _parse(content: str, url: str) -> PlaylistAnalysis:
        analysis = parse_playlist(content, url)
        logging.info(
            "Analysed %s: %s playlist, live=%s, encrypted=%s, %s quality(ies)",
            url,
            analysis.kind.value,
            analysis.is_live,
            analysis.is_encrypted,
            len(analysis.qualities),
        )
        return analysis
