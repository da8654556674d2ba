import pytest
from aiohttp import web

MASTER = (
    "#EXTM3U\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=2000000,RESOLUTION=1280x720\n"
    "720p/playlist.m3u8\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=5000000,RESOLUTION=1920x1080\n"
    "1080p/playlist.m3u8\n"
)

MEDIA = (
    "#EXTM3U\n"
    "#EXT-X-TARGETDURATION:6\n"
    '#EXT-X-KEY:METHOD=NONE\n'
    '#EXT-X-MAP:URI="init.mp4"\n'
    "#EXTINF:6.0,\n"
    "seg0.ts\n"
    "#EXTINF:6.0,\n"
    "seg1.ts\n"
    "#EXT-X-ENDLIST\n"
)

SEGMENT = bytes(range(256)) * 64


async def _master(request):
    return web.Response(text=MASTER, content_type="application/vnd.apple.mpegurl")


async def _media(request):
    return web.Response(text=MEDIA, content_type="application/vnd.apple.mpegurl")


async def _segment(request):
    range_header = request.headers.get("Range")
    if range_header:
        start, _, end = range_header.replace("bytes=", "").partition("-")
        start = int(start)
        end = int(end) if end else len(SEGMENT) - 1
        return web.Response(
            status=206,
            body=SEGMENT[start : end + 1],
            content_type="video/mp2t",
            headers={
                "Content-Range": f"bytes {start}-{end}/{len(SEGMENT)}",
                "Accept-Ranges": "bytes",
            },
        )
    return web.Response(body=SEGMENT, content_type="video/mp2t", headers={"Accept-Ranges": "bytes"})


async def _denied(request):
    return web.Response(status=403, text="forbidden")


async def _missing(request):
    return web.Response(status=404, text="gone")


async def _not_a_playlist(request):
    return web.Response(text="<html></html>", content_type="text/html")


@pytest.fixture
async def upstream(aiohttp_server):
    """In-process CDN serving a small VOD stream."""

    app = web.Application()
    app.router.add_get("/video/master.m3u8", _master)
    app.router.add_get("/v/index.m3u8", _media)
    app.router.add_get("/v/seg0.ts", _segment)
    app.router.add_get("/denied.m3u8", _denied)
    app.router.add_get("/missing.ts", _missing)
    app.router.add_get("/page.m3u8", _not_a_playlist)
    return await aiohttp_server(app)
