# MDM Client
# File: transport.py
# Version: v3

"""HTTP transport used by the requester.

The requester only needs three verbs and a response it can read and close,
described by ``HttpTransport`` / ``RawResponse``. ``HttpxTransport`` is the
default implementation on top of ``httpx.AsyncClient``; anything with the
same shape (a test double, a transport with retries or proxies) can be
passed to the requester instead.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Protocol

import httpx

from .config import MdmClientConfig


class RawResponse(Protocol):
    """What the requester reads from a transport response.

    ``headers`` must be case-insensitive, as ``httpx.Headers`` is.
    """

    status_code: int
    headers: Mapping[str, str]

    async def aread(self) -> bytes: ...

    async def aclose(self) -> None: ...


class HttpTransport(Protocol):
    async def get(self, uri: str, headers: Mapping[str, str]) -> RawResponse: ...

    async def post(
        self, uri: str, headers: Mapping[str, str], body: bytes
    ) -> RawResponse: ...

    async def delete(self, uri: str, headers: Mapping[str, str]) -> RawResponse: ...


class _BorrowedTransport(httpx.AsyncBaseTransport):
    """Lends a caller-supplied transport to a per-call client without closing it."""

    def __init__(self, inner: httpx.AsyncBaseTransport) -> None:
        self._inner = inner

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._inner.handle_async_request(request)

    async def aclose(self) -> None:
        pass


class _ClientResponse:
    """A streamed ``httpx.Response`` that also closes the client that sent it."""

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self.status_code = response.status_code
        self.headers = response.headers

    async def aread(self) -> bytes:
        return await self._response.aread()

    async def aclose(self) -> None:
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()


class HttpxTransport:
    """``HttpTransport`` backed by ``httpx.AsyncClient``.

    A fresh client is opened for every call, so one transport can be shared
    by threads that each run their own event loop. Responses are opened with
    ``stream=True``; the caller owns them and must ``aclose()`` each one,
    which also closes the client. Pass ``transport`` (e.g.
    ``httpx.MockTransport``) to swap out the network layer.
    """

    def __init__(
        self,
        config: Optional[MdmClientConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.timeout = config.timeout_seconds if config else 30.0
        self.verify = config.verify_tls if config else True
        self.transport = transport

        self.headers: Dict[str, str] = {}
        if config and config.authorization:
            self.headers["Authorization"] = config.authorization

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            verify=self.verify,
            headers=self.headers,
            transport=_BorrowedTransport(self.transport) if self.transport else None,
        )

    async def _send(
        self,
        method: str,
        uri: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
    ) -> _ClientResponse:
        client = self._client()
        try:
            request = client.build_request(
                method, uri, headers=dict(headers), content=body
            )
            response = await client.send(request, stream=True)
        except BaseException:
            await client.aclose()
            raise
        return _ClientResponse(client, response)

    async def get(self, uri: str, headers: Mapping[str, str]) -> _ClientResponse:
        return await self._send("GET", uri, headers)

    async def post(
        self, uri: str, headers: Mapping[str, str], body: bytes
    ) -> _ClientResponse:
        return await self._send("POST", uri, headers, body)

    async def delete(self, uri: str, headers: Mapping[str, str]) -> _ClientResponse:
        return await self._send("DELETE", uri, headers)

    async def aclose(self) -> None:
        if self.transport is not None:
            await self.transport.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
