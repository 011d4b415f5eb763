# MDM Client
# File: __init__.py
# Version: v2

"""Typed asynchronous client for a master-data (MDM) REST service."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .cache import ConcurrencyTokenCache
from .client import MdmClient
from .config import MdmClientConfig
from .errors import InvalidIdentifierError, MdmClientError, MissingConcurrencyTokenError
from .faults import AcceptedStatusFaultHandler, FaultHandler, StandardFaultHandler
from .models import (
    Fault,
    Mapping,
    MappingResponse,
    MdmEntity,
    MdmId,
    RequestInfo,
    SourceSystem,
    SystemData,
)
from .requester import MessageRequester
from .response import PagedResponse, Response
from .search import Criteria, Search, SearchCriteria, SearchOptions
from .service import EntityService
from .transport import HttpTransport, HttpxTransport

__all__ = [
    "__version__",
    "AcceptedStatusFaultHandler",
    "ConcurrencyTokenCache",
    "Criteria",
    "EntityService",
    "Fault",
    "FaultHandler",
    "HttpTransport",
    "HttpxTransport",
    "InvalidIdentifierError",
    "Mapping",
    "MappingResponse",
    "MdmClient",
    "MdmClientConfig",
    "MdmClientError",
    "MdmEntity",
    "MdmId",
    "MessageRequester",
    "MissingConcurrencyTokenError",
    "PagedResponse",
    "RequestInfo",
    "Response",
    "Search",
    "SearchCriteria",
    "SearchOptions",
    "SourceSystem",
    "StandardFaultHandler",
    "SystemData",
]


def _resolve_version() -> str:
    """Resolve installed distribution version.

    Falls back to a default when running from a source tree without an
    installed distribution.
    """
    try:
        return version("mdm-client")
    except PackageNotFoundError:
        return "0.1.0"


__version__ = _resolve_version()
