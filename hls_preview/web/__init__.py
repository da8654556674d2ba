"""HTTP surface of the preview service."""

from .app import SERVICE_KEY, StreamService, create_app, run_server

__all__ = ["SERVICE_KEY", "StreamService", "create_app", "run_server"]
