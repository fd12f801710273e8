"""
Integration tests: aiohttp transport and resolver against a local HTTP server.
"""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from qrious.services.http_transport import AiohttpTransport
from qrious.services.redirect_interfaces import HttpMethod, TransportError
from qrious.services.redirect_resolver import RedirectResolver

pytestmark = pytest.mark.integration

META_PAGE = '<html><head><meta http-equiv="refresh" content="0; url=/end"></head></html>'
JS_PAGE = "<html><script>window.location.replace('/end')</script></html>"


def redirect_to(location, status=301):
    async def handler(request):
        return web.Response(status=status, headers={"Location": location})
    return handler


def html(body):
    async def handler(request):
        return web.Response(text=body, content_type="text/html")
    return handler


async def end(request):
    return web.Response(text="done")


async def slow(request):
    await asyncio.sleep(2)
    return web.Response(text="late")


def build_app():
    app = web.Application()
    app.router.add_get("/start", redirect_to("/middle"))
    app.router.add_get("/middle", redirect_to("/end", status=302))
    app.router.add_get("/end", end)
    app.router.add_get("/loop-a", redirect_to("/loop-b"))
    app.router.add_get("/loop-b", redirect_to("/loop-a"))
    app.router.add_get("/self", redirect_to("/self"))
    app.router.add_get("/meta", html(META_PAGE))
    app.router.add_get("/js", html(JS_PAGE))
    app.router.add_get("/big", html("x" * 10_000))
    app.router.add_get("/slow", slow)
    # GET only: aiohttp answers HEAD with 405
    app.router.add_route("GET", "/get-only", redirect_to("/end"))
    return app


@pytest.fixture
async def server():
    server = TestServer(build_app())
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
async def transport():
    transport = AiohttpTransport(max_body_bytes=1024)
    yield transport
    await transport.close()


def url(server, path):
    return str(server.make_url(path))


class TestAiohttpTransport:

    async def test_does_not_follow_redirects(self, server, transport):
        hop = await transport.fetch(url(server, "/start"), HttpMethod.HEAD, 2.0)

        assert hop.status_code == 301
        assert hop.location == "/middle"
        assert hop.body is None

    async def test_reads_html_body_on_get(self, server, transport):
        hop = await transport.fetch(url(server, "/meta"), HttpMethod.GET, 2.0)

        assert hop.is_html
        assert "http-equiv" in hop.body

    async def test_body_read_is_capped(self, server, transport):
        hop = await transport.fetch(url(server, "/big"), HttpMethod.GET, 2.0)
        assert len(hop.body) == 1024

    async def test_non_html_body_only_on_request(self, server, transport):
        hop = await transport.fetch(url(server, "/end"), HttpMethod.GET, 2.0)
        assert hop.body is None

        hop = await transport.fetch(url(server, "/end"), HttpMethod.GET, 2.0, read_body=True)
        assert hop.body == "done"

    async def test_timeout(self, server, transport):
        with pytest.raises(TransportError) as exc_info:
            await transport.fetch(url(server, "/slow"), HttpMethod.GET, 0.2)
        assert exc_info.value.timed_out

    async def test_connection_refused(self, transport):
        with pytest.raises(TransportError) as exc_info:
            await transport.fetch("http://127.0.0.1:1/", HttpMethod.HEAD, 2.0)
        assert not exc_info.value.timed_out


class TestResolverAgainstServer:

    @pytest.fixture
    def resolver(self, transport):
        return RedirectResolver(transport, max_depth=10, timeout_ms=1000)

    @pytest.fixture
    def shortener_resolver(self, transport):
        # Treat the local server as a shortener so every hop is a GET with body scanning
        return RedirectResolver(transport, max_depth=10, timeout_ms=1000, shortener_domains=["127.0.0.1"])

    async def test_http_chain(self, server, resolver):
        result = await resolver.resolve(url(server, "/start"))

        assert result.final_url == url(server, "/end")
        assert result.depth == 2
        assert [i.status_code for i in result.redirect_chain] == [301, 302, 200]

    async def test_cycle(self, server, resolver):
        result = await resolver.resolve(url(server, "/loop-a"))

        assert result.final_url == url(server, "/loop-b")
        assert result.depth == 1

    async def test_self_redirect(self, server, resolver):
        result = await resolver.resolve(url(server, "/self"))

        assert result.final_url == url(server, "/self")
        assert result.depth == 0

    async def test_head_rejected_falls_back_to_get(self, server, resolver):
        result = await resolver.resolve(url(server, "/get-only"))

        assert result.final_url == url(server, "/end")
        assert [(i.status_code, i.method) for i in result.redirect_chain] == [
            (301, "GET"), (200, "HEAD")
        ]
        assert result.depth == 1

    async def test_meta_refresh(self, server, shortener_resolver):
        result = await shortener_resolver.resolve(url(server, "/meta"))

        assert result.final_url == url(server, "/end")
        assert result.depth == 1

    async def test_javascript_redirect(self, server, shortener_resolver):
        result = await shortener_resolver.resolve(url(server, "/js"))
        assert result.final_url == url(server, "/end")

    async def test_unreachable_destination(self, server, transport):
        app_url = url(server, "/slow")
        resolver = RedirectResolver(transport, timeout_ms=200)

        result = await resolver.resolve(app_url)

        assert result.final_url == app_url
        assert result.redirect_chain == []
