"""Pydantic models describing the outcome of analysing an HLS playlist."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlaylistKind(str, Enum):
    """Master playlists list variants; media playlists list segments."""

    MASTER = "master"
    MEDIA = "media"


class QualityVariant(BaseModel):
    """One rendition of the stream."""

    model_config = ConfigDict(frozen=True)

    resolution: Optional[str] = None
    bandwidth: int = Field(default=0, ge=0)
    url: str


class PlaylistAnalysis(BaseModel):
    """What a playlist URL turned out to be.

    Built once per analysis request and never mutated afterwards. Field
    aliases give the camelCase JSON shape consumed by the browser player.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: PlaylistKind = Field(alias="type")
    is_live: bool = Field(alias="isLive")
    is_encrypted: bool = Field(alias="isEncrypted")
    base_url: str = Field(alias="baseUrl")
    qualities: List[QualityVariant] = Field(min_length=1)

    @property
    def downloadable(self) -> bool:
        return not self.is_live and not self.is_encrypted

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
