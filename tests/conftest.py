# MDM Client
# File: tests/conftest.py
# Version: v2

"""Shared fixtures: an in-process fake MDM server behind httpx.MockTransport.

Requests go through the real ``HttpxTransport`` / ``httpx.AsyncClient``
stack; only the network is replaced.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

import httpx
import pytest

from mdm_client.models import Fault, MdmId, SourceSystem
from mdm_client.requester import MessageRequester
from mdm_client.transport import HttpxTransport


BASE = "http://mdm.test/api/sourcesystem"
ATOM_NS = "http://www.w3.org/2005/Atom"

Reply = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeMdmServer:
    """Routes (method, path) to queued replies and records every request."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        content: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.add_reply(
            method,
            path,
            lambda request: httpx.Response(status, content=content, headers=headers),
        )

    def add_reply(self, method: str, path: str, reply: Reply) -> None:
        self.routes.setdefault((method, path), []).append(reply)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(599, content=b"no route")

        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return reply


def entity_xml(
    entity_id: int,
    name: str = "Endur",
    mappings: Iterable[Tuple[str, str]] = (),
) -> bytes:
    identifiers = [MdmId(system_name="Nexus", identifier=str(entity_id), is_mdm_id=True)]
    for index, (system, value) in enumerate(mappings, start=1):
        identifiers.append(
            MdmId(system_name=system, identifier=value, mapping_id=entity_id * 100 + index)
        )
    return SourceSystem(identifiers=identifiers, name=name).to_xml()


def feed_xml(entities: Iterable[bytes], next_page: Optional[str] = None) -> bytes:
    entries = "".join(
        f'<entry><id>urn:entry:{i}</id><content type="text/xml">{e.decode()}</content></entry>'
        for i, e in enumerate(entities)
    )
    link = f'<link rel="next-results" href="{next_page}"/>' if next_page else ""
    return (
        f'<feed xmlns="{ATOM_NS}"><title>Search Results</title>'
        f'<link rel="self" href="{BASE}/search"/>{link}{entries}</feed>'
    ).encode()


def fault_xml(message: str, reason: str = "") -> bytes:
    return Fault(message=message, reason=reason or None).to_xml()


@pytest.fixture
def xml() -> SimpleNamespace:
    return SimpleNamespace(entity=entity_xml, feed=feed_xml, fault=fault_xml)


@pytest.fixture
def server() -> FakeMdmServer:
    return FakeMdmServer()


@pytest.fixture
def requester(server: FakeMdmServer) -> MessageRequester:
    transport = HttpxTransport(transport=httpx.MockTransport(server))
    return MessageRequester(
        transport,
        identity_provider=lambda: "alice",
        default_source_system="Endur",
    )
