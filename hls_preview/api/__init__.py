"""Service layer for stream analysis, preview proxying, and download links."""

from .analysis_api import AnalysisAPI
from .download_api import DownloadLinkAPI
from .proxy_api import PlaylistResult, ProxyAPI, SegmentResult

__all__ = ["AnalysisAPI", "DownloadLinkAPI", "ProxyAPI", "PlaylistResult", "SegmentResult"]
