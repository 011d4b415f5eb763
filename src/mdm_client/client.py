# MDM Client
# File: client.py
# Version: v3
"""High-level entry point tying configuration, transport and services together.

Typical use::

    async with MdmClient(MdmClientConfig.from_env()) as client:
        systems = client.entity_service(SourceSystem)
        response = await systems.get(42)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Type

from .config import MdmClientConfig
from .faults import FaultHandler
from .models import MdmEntity
from .requester import MessageRequester
from .service import EntityService, T
from .transport import HttpTransport, HttpxTransport


@dataclass
class MdmClient:
    """Owns one requester and hands out one ``EntityService`` per entity type."""

    config: MdmClientConfig
    transport: Optional[HttpTransport] = None
    fault_handler: Optional[FaultHandler] = None

    requester: MessageRequester = field(init=False)
    _services: Dict[Type[MdmEntity], EntityService] = field(
        init=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        if self.transport is None:
            self.transport = HttpxTransport(self.config)
        self.requester = MessageRequester(
            self.transport,
            fault_handler=self.fault_handler,
            identity_provider=self.config.resolve_user_name,
            default_source_system=self.config.source_system_name,
        )

    def entity_service(self, contract_type: Type[T]) -> EntityService[T]:
        """Service for ``contract_type``; created on first use, then reused."""
        service = self._services.get(contract_type)
        if service is None:
            service = EntityService(
                self.config.entity_uri(contract_type.element_name),
                self.requester,
                contract_type,
                canonical_system=self.config.canonical_system,
            )
            self._services[contract_type] = service
        return service

    async def aclose(self) -> None:
        aclose = getattr(self.transport, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> "MdmClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
