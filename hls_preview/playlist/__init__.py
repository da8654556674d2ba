"""HLS playlist parsing and rewriting."""

from .m3u8_parser import parse_attribute_list, parse_playlist
from .rewriter import PLAYLIST_CONTENT_TYPE, is_playlist_response, rewrite_playlist

__all__ = [
    "parse_attribute_list",
    "parse_playlist",
    "PLAYLIST_CONTENT_TYPE",
    "is_playlist_response",
    "rewrite_playlist",
]
