# MDM Client
# File: service.py
# Version: v7
"""Per-entity-type service on top of ``MessageRequester``.

Composes the requester's primitives into the workflows callers actually
need (create then fetch, update then re-fetch, mapping maintenance and
cross-system identifier resolution) and remembers the last concurrency token
seen for every entity so updates can be sent conditionally.
"""

from __future__ import annotations

import logging
from datetime import datetime
from http import HTTPStatus
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar
from urllib.parse import quote_plus

from .cache import ConcurrencyTokenCache
from .config import DEFAULT_CANONICAL_SYSTEM
from .errors import InvalidIdentifierError, MissingConcurrencyTokenError
from .models import (
    Contract,
    Fault,
    Mapping,
    MappingResponse,
    MdmEntity,
    MdmId,
    RequestInfo,
    format_timestamp,
)
from .requester import MessageRequester
from .response import PagedResponse, Response
from .search import Search

logger = logging.getLogger(__name__)


SOURCE_SYSTEM_PARAM = "source-system"
MAPPING_VALUE_PARAM = "mapping-string"
DESTINATION_SYSTEM_PARAM = "destination-system"
VALID_AT_PARAM = "as-of"

T = TypeVar("T", bound=MdmEntity)
R = TypeVar("R", bound=Contract)


def with_valid_at(uri: str, valid_at: Optional[datetime]) -> str:
    """Append the as-of query parameter when ``valid_at`` is given."""
    if valid_at is None:
        return uri
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}{VALID_AT_PARAM}={format_timestamp(valid_at)}"


class EntityService(Generic[T]):
    """Client-side service for one entity type, e.g. ``SourceSystem``.

    ``base_uri`` is the collection URI for the entity type; every other URI is
    derived from it once, here.
    """

    def __init__(
        self,
        base_uri: str,
        requester: MessageRequester,
        contract_type: Type[T],
        token_cache: Optional[ConcurrencyTokenCache] = None,
        canonical_system: str = DEFAULT_CANONICAL_SYSTEM,
    ) -> None:
        base = base_uri.rstrip("/")
        self.base_uri = base
        self.requester = requester
        self.contract_type = contract_type
        self.canonical_system = canonical_system
        self.entity_name = contract_type.element_name or contract_type.__name__

        self._entity_uri = base + "/{0}"
        self._entity_list_uri = self._entity_uri + "/list"
        self._mapping_uri = self._entity_uri + "/mapping"
        self._delete_mapping_uri = self._mapping_uri + "/{1}"
        self._map_uri = (
            f"{base}/map?{SOURCE_SYSTEM_PARAM}={{0}}&{MAPPING_VALUE_PARAM}={{1}}"
        )
        self._cross_map_uri = (
            f"{base}/crossmap?{SOURCE_SYSTEM_PARAM}={{0}}"
            f"&{MAPPING_VALUE_PARAM}={{1}}&{DESTINATION_SYSTEM_PARAM}={{2}}"
        )
        self._search_uri = base + "/search"

        self._tokens = token_cache if token_cache is not None else ConcurrencyTokenCache()

    # ------------------------------------------------------------------
    # Token cache
    # ------------------------------------------------------------------

    def concurrency_token(self, entity_id: int) -> Optional[str]:
        return self._tokens.get(entity_id)

    def invalidate(self, entity_id: int) -> None:
        self._tokens.invalidate(entity_id)

    def clear(self) -> None:
        self._tokens.clear()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, entity_id: int, valid_at: Optional[datetime] = None) -> Response[T]:
        logger.debug("EntityService.get<%s>: %s - %s", self.entity_name, entity_id, valid_at)
        return await self._acquire(self._entity_uri.format(entity_id), valid_at, entity_id)

    async def get_by_identifier(
        self,
        identifier: Optional[MdmId],
        valid_at: Optional[datetime] = None,
    ) -> Response[T]:
        """Fetch an entity by any of its identifiers.

        MDM ids (and identifiers from the canonical system) are parsed and
        fetched directly; anything else is resolved through the map endpoint.
        """
        logger.debug(
            "EntityService.get_by_identifier<%s>: %s %s",
            self.entity_name,
            identifier,
            valid_at,
        )
        if identifier is None:
            raise InvalidIdentifierError("identifier must not be None")

        if identifier.is_mdm_id or identifier.system_name == self.canonical_system:
            try:
                entity_id = int(identifier.identifier or "")
            except ValueError as exc:
                raise InvalidIdentifierError(
                    f"Invalid {self.canonical_system} identifier: {identifier.identifier!r}"
                ) from exc
            return await self.get(entity_id, valid_at)

        uri = self._map_uri.format(
            quote_plus(identifier.system_name or ""),
            quote_plus(identifier.identifier or ""),
        )
        return await self._acquire(uri, valid_at, identifier)

    async def get_list(self, entity_id: int) -> Response[List[T]]:
        logger.debug("EntityService.get_list<%s>: %s", self.entity_name, entity_id)
        response = await self.requester.request(
            self._entity_list_uri.format(entity_id), List[self.contract_type]
        )
        response.log_response(logger)
        return response

    async def get_mapping(
        self,
        entity_id: int,
        predicate: Callable[[MdmId], bool],
    ) -> Response[MdmId]:
        """First identifier of the entity that satisfies ``predicate``."""
        logger.debug("Start: EntityService.get_mapping<%s> - %s", self.entity_name, entity_id)
        try:
            response = await self.get(entity_id)
            if response.is_valid and response.message is not None:
                match = next(
                    (ident for ident in response.message.identifiers if predicate(ident)),
                    None,
                )
                if match is not None:
                    result: Response[MdmId] = Response(
                        status_code=HTTPStatus.OK, message=match
                    )
                else:
                    result = Response.failure(
                        HTTPStatus.NOT_FOUND,
                        Fault(message=f"No matching mapping for {self.entity_name} {entity_id}"),
                    )
            else:
                result = Response.failure(response.status_code, response.fault)

            result.log_response(logger)
            return result
        finally:
            logger.debug("Stop: EntityService.get_mapping<%s> - %s", self.entity_name, entity_id)

    async def map(self, entity_id: int, target_system: str) -> Response[MdmId]:
        """The entity's identifier in ``target_system`` (case-insensitive)."""
        target = target_system.casefold()
        return await self.get_mapping(
            entity_id, lambda ident: (ident.system_name or "").casefold() == target
        )

    async def cross_map(
        self,
        source_system: str,
        identifier: str,
        target_system: str,
    ) -> Response[MappingResponse]:
        logger.debug(
            "EntityService.cross_map<%s>: %s %s %s",
            self.entity_name,
            source_system,
            identifier,
            target_system,
        )
        uri = self._cross_map_uri.format(
            quote_plus(source_system),
            quote_plus(identifier),
            quote_plus(target_system),
        )
        response = await self.requester.request(uri, MappingResponse)
        response.log_response(logger)
        return response

    async def cross_map_identifier(
        self,
        identifier: Optional[MdmId],
        target_system: str,
    ) -> Response[MappingResponse]:
        if identifier is None:
            raise InvalidIdentifierError("identifier must not be None")
        return await self.cross_map(
            identifier.system_name or "", identifier.identifier or "", target_system
        )

    async def search(
        self,
        search: Search,
        page_uri: Optional[str] = None,
    ) -> PagedResponse[List[T]]:
        """Run ``search``; pass a previous ``next_page`` as ``page_uri`` to continue."""
        logger.debug("EntityService.search<%s>", self.entity_name)
        response = await self.requester.search(
            page_uri or self._search_uri, search, self.contract_type
        )
        response.log_response(logger)
        return response

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        contract: T,
        request_info: Optional[RequestInfo] = None,
    ) -> Response[T]:
        logger.debug("EntityService.create<%s>", self.entity_name)

        response = await self._create(
            self.base_uri, contract, self.contract_type, request_info
        )
        if response.is_valid:
            self._process_contract(response)

        response.log_response(logger)
        return response

    async def update(
        self,
        entity_id: int,
        contract: T,
        etag: Optional[str] = None,
        request_info: Optional[RequestInfo] = None,
    ) -> Response[T]:
        """Conditionally update an entity and return its refreshed state.

        Without ``etag`` the token cached by an earlier fetch is used; if
        there is none, ``MissingConcurrencyTokenError`` is raised and nothing
        is sent.
        """
        if etag is None:
            etag = self._tokens.get(entity_id)
            if etag is None:
                raise MissingConcurrencyTokenError(entity_id)

        logger.debug("EntityService.update<%s>: %s %s", self.entity_name, entity_id, etag)

        uri = self._entity_uri.format(entity_id)
        logger.debug("EntityService.update: Uri - %s", uri)

        response = await self.requester.update(uri, etag, contract, request_info)
        response.log_response(logger)
        if not response.is_valid:
            return response

        start_date = contract.system_data.start_date if contract.system_data else None
        location = with_valid_at(response.location or uri, start_date)
        logger.debug(
            "EntityService.update: received valid response, now requesting %s", location
        )

        refreshed = await self.requester.request(location, self.contract_type)
        refreshed.request_id = response.request_id
        if refreshed.is_valid:
            self._process_contract(refreshed)

        refreshed.log_response(logger)
        return refreshed

    async def create_mapping(
        self,
        entity_id: int,
        identifier: MdmId,
        request_info: Optional[RequestInfo] = None,
    ) -> Response[MdmId]:
        logger.debug(
            "EntityService.create_mapping<%s>: %s - %s", self.entity_name, entity_id, identifier
        )

        uri = self._mapping_uri.format(entity_id)
        response = await self._create(
            uri, Mapping.from_identifier(identifier), MappingResponse, request_info
        )

        if not response.is_valid:
            result: Response[MdmId] = Response.failure(
                response.status_code, response.fault, response.request_id
            )
        elif not response.message or not response.message.mappings:
            result = Response.failure(
                HTTPStatus.INTERNAL_SERVER_ERROR,
                Fault(message="Mapping response contained no mappings"),
                response.request_id,
            )
        else:
            result = Response(
                status_code=HTTPStatus.OK,
                message=response.message.mappings[0],
                request_id=response.request_id,
            )

        result.log_response(logger)
        return result

    async def delete_mapping(
        self,
        entity_id: int,
        mapping_id: int,
        request_info: Optional[RequestInfo] = None,
    ) -> Response[T]:
        logger.debug(
            "EntityService.delete_mapping<%s>: %s - %s", self.entity_name, entity_id, mapping_id
        )

        uri = self._delete_mapping_uri.format(entity_id, mapping_id)
        logger.debug("EntityService.delete_mapping: Uri - %s", uri)

        response = await self.requester.delete(uri, request_info)
        if response.is_valid:
            result: Response[T] = Response(
                status_code=HTTPStatus.OK, request_id=response.request_id
            )
        else:
            result = Response.failure(
                response.status_code, response.fault, response.request_id
            )

        result.log_response(logger)
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _acquire(self, uri: str, valid_at: Optional[datetime], label: Any) -> Response[T]:
        logger.debug("Start: EntityService.acquire<%s> - %s", self.entity_name, label)
        try:
            response = await self._get_contract(with_valid_at(uri, valid_at))
            response.log_response(logger)
            return response
        finally:
            logger.debug("Stop: EntityService.acquire<%s> - %s", self.entity_name, label)

    async def _create(
        self,
        uri: str,
        message: Contract,
        response_type: Type[R],
        request_info: Optional[RequestInfo],
    ) -> Response[R]:
        """POST ``message``, then fetch what the Location points at as ``response_type``."""
        logger.debug("Start: EntityService.create: Uri - %s", uri)
        try:
            created = await self.requester.create(uri, message, request_info)
            if not created.is_valid:
                return Response.failure(created.status_code, created.fault, created.request_id)

            if not created.location:
                return Response.failure(
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    Fault(message=f"{created.status_code} response carried no Location header"),
                    created.request_id,
                )

            logger.debug(
                "EntityService.create: valid response received, now requesting %s",
                created.location,
            )
            response = await self.requester.request(created.location, response_type)
            response.request_id = created.request_id
            return response
        finally:
            logger.debug("Stop: EntityService.create")

    async def _get_contract(self, uri: str) -> Response[T]:
        logger.debug("EntityService.get_contract: Uri - %s", uri)
        entity = await self.requester.request(uri, self.contract_type)
        if entity.is_valid:
            self._process_contract(entity)
        return entity

    def _process_contract(self, response: Response[T]) -> None:
        entity = response.message
        entity_id = entity.mdm_key() if entity is not None else None
        if entity_id is None:
            logger.warning(
                "EntityService<%s>: response carries no MDM id; token not cached",
                self.entity_name,
            )
            return

        if response.concurrency_token is None:
            self._tokens.invalidate(entity_id)
        else:
            self._tokens.set(entity_id, response.concurrency_token)
