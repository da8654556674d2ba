"""Models for service configuration and response payloads."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BLOCKED_DOMAINS: List[str] = [
    "netflix.com",
    "disneyplus.com",
    "hulu.com",
    "hbomax.com",
    "max.com",
    "primevideo.com",
    "amazon.com",
    "peacocktv.com",
    "paramountplus.com",
    "appletv.apple.com",
]


class ServiceSettings(BaseModel):
    """Runtime settings shared by the server and the command line."""

    host: str = "0.0.0.0"
    port: int = 3001
    worker_base_url: str = "https://your-worker.example.com"
    request_timeout: float = Field(default=15.0, gt=0)
    blocked_domains: List[str] = Field(default_factory=lambda: list(DEFAULT_BLOCKED_DOMAINS))


class ErrorPayload(BaseModel):
    """Structured error body returned instead of a traceback."""

    error: str
    kind: str
    message: str


class DownloadLink(BaseModel):
    """Redirect target for the external transcoding worker."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    download_url: str = Field(alias="downloadUrl")
    filename: str
