"""aiohttp application exposing analyze, proxy, and download-link endpoints."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import aiohttp
from aiohttp import web

from ..api import AnalysisAPI, DownloadLinkAPI, PlaylistResult, ProxyAPI, SegmentResult
from ..models import ErrorPayload, ServiceSettings
from ..utils.errors import StreamError
from ..utils.http_client import HttpClient
from ..utils.stream_registry import StreamRegistry

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Range",
    "Access-Control-Expose-Headers": "Content-Range, Accept-Ranges",
}


def error_response(status: int, payload: ErrorPayload) -> web.Response:
    return web.json_response(payload.model_dump(), status=status)


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        return web.Response(status=204)
    try:
        return await handler(request)
    except StreamError as exc:
        logging.info("%s %s failed: %s (%s)", request.method, request.path, exc.kind, exc.message)
        return error_response(exc.status, exc.to_payload())
    except web.HTTPNotFound:
        return error_response(404, ErrorPayload(error="Not found", kind="not_found", message="Endpoint not found"))
    except web.HTTPMethodNotAllowed:
        return error_response(
            405,
            ErrorPayload(
                error="Method not allowed",
                kind="method_not_allowed",
                message="Only GET requests are supported",
            ),
        )
    except web.HTTPException:
        raise
    except Exception:
        logging.exception("Unhandled error serving %s %s", request.method, request.path)
        return error_response(
            500,
            ErrorPayload(error="Internal error", kind="internal_error", message="Unexpected server error"),
        )


async def add_cors_headers(request: web.Request, response: web.StreamResponse) -> None:
    # runs before headers hit the wire, so streamed responses get them too
    response.headers.update(CORS_HEADERS)


class StreamService:
    """Request handlers bound to one set of APIs."""

    def __init__(self, settings: ServiceSettings, http_client: HttpClient, registry: StreamRegistry) -> None:
        self.http_client = http_client
        self.registry = registry
        self.analysis_api = AnalysisAPI(http_client, settings.blocked_domains)
        self.proxy_api = ProxyAPI(http_client, registry)
        self.download_api = DownloadLinkAPI(settings.worker_base_url, settings.blocked_domains)

    async def handle_analyze(self, request: web.Request) -> web.Response:
        analysis = await self.analysis_api.analyze(request.query.get("url"), request.headers)
        return web.json_response(analysis.to_payload())

    async def handle_proxy(self, request: web.Request) -> web.StreamResponse:
        result = await self.proxy_api.open(request.query.get("url"), request.headers)
        if isinstance(result, PlaylistResult):
            return web.Response(
                text=result.text,
                status=result.status,
                headers={"Content-Type": result.content_type, "Cache-Control": "no-cache"},
            )
        return await self._relay_segment(request, result)

    async def _relay_segment(self, request: web.Request, segment: SegmentResult) -> web.StreamResponse:
        headers = {"Content-Type": segment.content_type, "Cache-Control": "no-cache"}
        headers.update(segment.headers)
        response = web.StreamResponse(status=segment.status, headers=headers)
        try:
            await response.prepare(request)
            async for chunk in segment.iter_chunks():
                await response.write(chunk)
            await response.write_eof()
        except ConnectionResetError:
            logging.info("Client disconnected; aborted upstream %s", request.query.get("url"))
        except (asyncio.TimeoutError, aiohttp.ClientError) as exc:
            # status line is already on the wire; just end the body
            logging.warning("Upstream stream %s ended early: %s", request.query.get("url"), exc)
        finally:
            segment.close()
        return response

    async def handle_download_url(self, request: web.Request) -> web.Response:
        link = self.download_api.build(request.query.get("url"), request.query.get("quality"))
        return web.json_response(link.model_dump(by_alias=True))

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "timestamp": int(time.time() * 1000)})

    async def on_shutdown(self, app: web.Application) -> None:
        self.registry.close_all()

    async def on_cleanup(self, app: web.Application) -> None:
        await self.http_client.aclose()


SERVICE_KEY = web.AppKey("service", StreamService)


def create_app(
    settings: Optional[ServiceSettings] = None,
    http_client: Optional[HttpClient] = None,
) -> web.Application:
    settings = settings or ServiceSettings()
    http_client = http_client or HttpClient(timeout=settings.request_timeout)
    service = StreamService(settings, http_client, StreamRegistry())

    app = web.Application(middlewares=[error_middleware])
    app[SERVICE_KEY] = service
    app.on_response_prepare.append(add_cors_headers)
    app.on_shutdown.append(service.on_shutdown)
    app.on_cleanup.append(service.on_cleanup)

    app.router.add_get("/analyze", service.handle_analyze, allow_head=False)
    app.router.add_get("/proxy", service.handle_proxy, allow_head=False)
    app.router.add_get("/download-url", service.handle_download_url, allow_head=False)
    app.router.add_get("/health", service.handle_health, allow_head=False)
    return app


def run_server(settings: ServiceSettings) -> None:
    logging.info("HLS preview server running on %s:%s", settings.host, settings.port)
    logging.info("Worker base URL: %s", settings.worker_base_url)
    web.run_app(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        handler_cancellation=True,
        print=None,
    )
    logging.info("Server closed")
