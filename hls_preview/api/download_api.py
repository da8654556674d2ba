"""Build redirect targets for the external HLS-to-MP4 worker."""

from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import quote

from ..models import DownloadLink
from ..utils.format_utils import build_download_filename
from ..utils.url_utils import validate_stream_url

# Same unescaped set as JavaScript's encodeURIComponent
_COMPONENT_SAFE = "!~*'()"


def encode_component(value: str) -> str:
    return quote(value, safe=_COMPONENT_SAFE)


class DownloadLinkAPI:
    """Composes ``<worker>/download?url=...&quality=...`` links."""

    def __init__(self, worker_base_url: str, blocked_domains: Iterable[str]) -> None:
        self._worker_base_url = worker_base_url.rstrip("/")
        self._blocked_domains = list(blocked_domains)

    def build(self, url: Optional[str], quality: Optional[str] = None) -> DownloadLink:
        url = validate_stream_url(url, self._blocked_domains)
        download_url = f"{self._worker_base_url}/download?url={encode_component(url)}"
        if quality:
            # the worker fetches the variant instead of the master playlist
            quality = validate_stream_url(quality, self._blocked_domains)
            download_url += f"&quality={encode_component(quality)}"
        return DownloadLink(
            download_url=download_url,
            filename=build_download_filename(quality or url),
        )
