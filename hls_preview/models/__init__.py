"""Data models for playlist analysis, service settings, and payloads."""

from .playlist_models import PlaylistAnalysis, PlaylistKind, QualityVariant
from .service_models import DEFAULT_BLOCKED_DOMAINS, DownloadLink, ErrorPayload, ServiceSettings

__all__ = [
    "PlaylistAnalysis",
    "PlaylistKind",
    "QualityVariant",
    "DEFAULT_BLOCKED_DOMAINS",
    "DownloadLink",
    "ErrorPayload",
    "ServiceSettings",
]
