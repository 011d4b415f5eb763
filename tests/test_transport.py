# MDM Client
# File: tests/test_transport.py
# Version: v1

"""HttpxTransport against a real local HTTP server."""

from __future__ import annotations

import asyncio
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Iterator, List

import httpx
import pytest

from mdm_client.cache import ConcurrencyTokenCache
from mdm_client.models import SourceSystem
from mdm_client.requester import MessageRequester
from mdm_client.response import Response
from mdm_client.service import EntityService
from mdm_client.transport import HttpxTransport


@pytest.fixture
def local_server(xml, monkeypatch) -> Iterator[str]:
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)

    body = xml.entity(12)

    class Handler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"

        def do_GET(self) -> None:
            self.send_response(200)
            self.send_header("Content-Type", "application/xml")
            self.send_header("Content-Length", str(len(body)))
            self.send_header("ETag", '"v1"')
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, *args) -> None:
            pass

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{httpd.server_address[1]}/api/sourcesystem"
    finally:
        httpd.shutdown()
        httpd.server_close()


def test_one_service_serves_threads_with_their_own_loops(local_server) -> None:
    tokens = ConcurrencyTokenCache()
    service = EntityService(
        local_server,
        MessageRequester(HttpxTransport()),
        SourceSystem,
        token_cache=tokens,
    )
    results: List[Response[SourceSystem]] = []

    def worker() -> None:
        results.append(asyncio.run(service.get(12)))

    for _ in range(2):
        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

    assert [r.is_valid for r in results] == [True, True]
    assert [r.message.mdm_key() for r in results] == [12, 12]
    assert tokens.get(12) == '"v1"'


# ---------------------------------------------------------------------------
# Injected transports
# ---------------------------------------------------------------------------


class _TrackingTransport(httpx.MockTransport):
    def __init__(self, handler) -> None:
        super().__init__(handler)
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_injected_transport_outlives_each_call() -> None:
    inner = _TrackingTransport(lambda request: httpx.Response(204))
    transport = HttpxTransport(transport=inner)

    for _ in range(2):
        raw = await transport.get("http://mdm.test/api/sourcesystem/1", {})
        assert raw.status_code == 204
        await raw.aclose()

    assert inner.closed is False

    await transport.aclose()
    assert inner.closed is True
