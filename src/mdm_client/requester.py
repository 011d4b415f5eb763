# MDM Client
# File: requester.py
# Version: v7
"""Low-level requester for the MDM REST service.

Implements:

- request(): GET an entity (or entity list) and its concurrency token
- create() / update(): POST a contract, expecting 201 / 204 plus Location
- delete(): DELETE a resource
- search(): POST search criteria and decode the Atom feed of results

Every call returns a ``Response`` envelope. Transport failures, unreadable
payloads and server faults all end up in that envelope; nothing past the
HTTP boundary is raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlsplit

from .faults import FaultHandler, StandardFaultHandler
from .models import Contract, Fault, RequestInfo, decode_message
from .response import PagedResponse, Response, status_name, to_status
from .search import Search, read_feed
from .transport import HttpTransport, RawResponse

logger = logging.getLogger(__name__)


USER_NAME_HEADER = "UserName"
REQUEST_INFO_HEADER = "MdmRequestInfo"
IF_MATCH_HEADER = "If-Match"

XML_MEDIA_TYPE = "application/xml"
FEED_MEDIA_TYPES = "application/atom+xml, application/xml"

IdentityProvider = Callable[[], str]


def describe_exception(exc: BaseException) -> str:
    """Join the messages of an exception and everything that caused it."""
    messages: List[str] = []
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        messages.append(str(current) or type(current).__name__)
        current = current.__cause__ or current.__context__
    return " - ".join(messages)


def resolve_location(request_uri: str, location: Optional[str]) -> Optional[str]:
    """Make a Location header absolute against the request's scheme+authority.

    Headers that already name a host pass through untouched; a network-path
    reference (``//host/path``) only borrows the request's scheme.
    """
    if not location:
        return None

    parts = urlsplit(location)
    if parts.scheme and parts.netloc:
        return location

    base = urlsplit(request_uri)
    if parts.netloc:
        return f"{base.scheme}:{location}"
    return f"{base.scheme}://{base.netloc}/{location.lstrip('/')}"


@asynccontextmanager
async def _opened(pending: Awaitable[RawResponse]) -> AsyncIterator[RawResponse]:
    raw = await pending
    try:
        yield raw
    finally:
        await raw.aclose()


class MessageRequester:
    """Issues HTTP calls and normalizes their outcome into ``Response``.

    ``identity_provider`` returns the user name sent on every call.
    ``default_source_system`` fills in ``RequestInfo.source_system`` when the
    caller leaves it empty.
    """

    def __init__(
        self,
        transport: HttpTransport,
        fault_handler: Optional[FaultHandler] = None,
        identity_provider: Optional[IdentityProvider] = None,
        default_source_system: Optional[str] = None,
    ) -> None:
        self.transport = transport
        self.fault_handler = fault_handler or StandardFaultHandler()
        self.identity_provider = identity_provider or (lambda: "unknown")
        self.default_source_system = default_source_system

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def request(self, uri: str, message_type: Any) -> Response[Any]:
        """GET ``uri`` and deserialize the body as ``message_type``."""
        logger.debug("Start: MessageRequester.request %s", uri)
        response: Response[Any] = Response()

        async def action() -> None:
            headers = self._headers()
            async with _opened(self.transport.get(uri, headers)) as raw:
                await self._populate(response, raw, HTTPStatus.OK)
                if response.is_valid:
                    response.message = decode_message(message_type, await raw.aread())
                    response.concurrency_token = raw.headers.get("ETag")

        await self._invoke(response, uri, action)

        logger.debug("Finish: MessageRequester.request %s", uri)
        return response

    async def search(
        self,
        uri: str,
        search: Search,
        message_type: Any,
    ) -> PagedResponse[List[Any]]:
        """POST ``search`` and decode the Atom feed of results.

        A 404 means "nothing matched" and yields a valid, empty page.
        """
        logger.debug("Start: MessageRequester.search %s", uri)
        result: PagedResponse[List[Any]] = PagedResponse(message=[])

        async def action() -> None:
            headers = self._headers()
            headers["Content-Type"] = XML_MEDIA_TYPE
            headers["Accept"] = FEED_MEDIA_TYPES
            async with _opened(self.transport.post(uri, headers, search.to_xml())) as raw:
                result.status_code = to_status(raw.status_code)

                if self.fault_handler.handle(raw.status_code, HTTPStatus.OK):
                    logger.debug("MessageRequester.search: reading feed from response")
                    items, next_page = read_feed(await raw.aread(), message_type)
                    result.message = items
                    result.next_page = next_page
                elif raw.status_code == HTTPStatus.NOT_FOUND:
                    logger.debug("MessageRequester.search: no results")
                    result.message = []
                else:
                    result.fail(result.status_code, await self._read_fault(raw))

        await self._invoke(result, uri, action)

        logger.debug("Finish: MessageRequester.search %s", uri)
        return result

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        uri: str,
        message: Contract,
        request_info: Optional[RequestInfo] = None,
    ) -> Response[Any]:
        """POST a new contract; success is 201 with a Location."""
        return await self.post(uri, message, HTTPStatus.CREATED, request_info)

    async def update(
        self,
        uri: str,
        etag: str,
        message: Contract,
        request_info: Optional[RequestInfo] = None,
    ) -> Response[Any]:
        """POST a changed contract conditionally on ``etag``; success is 204."""
        return await self.post(
            uri, message, HTTPStatus.NO_CONTENT, request_info, etag=etag
        )

    async def post(
        self,
        uri: str,
        message: Contract,
        expected_status: int,
        request_info: Optional[RequestInfo] = None,
        etag: Optional[str] = None,
    ) -> Response[Any]:
        logger.debug("Start: MessageRequester.post %s", uri)
        info = self._request_info(request_info)
        response: Response[Any] = Response(request_id=info.request_id)

        async def action() -> None:
            headers = self._headers(info)
            headers["Content-Type"] = XML_MEDIA_TYPE
            if etag is not None:
                headers[IF_MATCH_HEADER] = etag
            async with _opened(self.transport.post(uri, headers, message.to_xml())) as raw:
                await self._populate(response, raw, expected_status)
                if response.is_valid:
                    response.location = resolve_location(uri, raw.headers.get("Location"))

        await self._invoke(response, uri, action)

        logger.debug("Finish: MessageRequester.post %s", uri)
        return response

    async def delete(
        self,
        uri: str,
        request_info: Optional[RequestInfo] = None,
    ) -> Response[Any]:
        logger.debug("Start: MessageRequester.delete %s", uri)
        info = self._request_info(request_info)
        response: Response[Any] = Response(request_id=info.request_id)

        async def action() -> None:
            async with _opened(self.transport.delete(uri, self._headers(info))) as raw:
                await self._populate(response, raw, HTTPStatus.OK)

        await self._invoke(response, uri, action)

        logger.debug("Finish: MessageRequester.delete %s", uri)
        return response

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _invoke(
        self,
        response: Response[Any],
        uri: str,
        action: Callable[[], Awaitable[None]],
    ) -> None:
        try:
            await action()
        except asyncio.CancelledError as exc:
            # Our own task being cancelled must still propagate.
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            self._transport_failure(response, uri, exc)
        except Exception as exc:
            self._transport_failure(response, uri, exc)

    def _transport_failure(
        self, response: Response[Any], uri: str, exc: BaseException
    ) -> None:
        message = describe_exception(exc)
        logger.error("MessageRequester: call to %s failed: %s", uri, message)
        response.fail(HTTPStatus.INTERNAL_SERVER_ERROR, Fault(message=message))

    async def _populate(
        self,
        response: Response[Any],
        raw: RawResponse,
        expected_status: int,
    ) -> None:
        response.status_code = to_status(raw.status_code)
        response.is_valid = self.fault_handler.handle(raw.status_code, expected_status)
        if not response.is_valid:
            response.fault = await self._read_fault(raw)

    async def _read_fault(self, raw: RawResponse) -> Fault:
        try:
            return Fault.from_xml(await raw.aread())
        except Exception as exc:
            logger.debug(
                "MessageRequester: no usable fault payload (HTTP %s): %s",
                raw.status_code,
                exc,
            )
            return Fault(message=status_name(raw.status_code))

    def _headers(self, request_info: Optional[RequestInfo] = None) -> Dict[str, str]:
        headers = {
            USER_NAME_HEADER: self.identity_provider(),
            "Accept": XML_MEDIA_TYPE,
        }
        if request_info is not None:
            headers[REQUEST_INFO_HEADER] = request_info.encode()
        return headers

    def _request_info(self, request_info: Optional[RequestInfo]) -> RequestInfo:
        return (request_info or RequestInfo()).populated(self.default_source_system)
