# MDM Client
# File: errors.py
# Version: v1

"""Exceptions raised for caller errors.

Anything that happens on the wire is reported through the response envelope
(see ``mdm_client.response``). These exceptions are reserved for problems
the caller can fix before a request is ever sent.
"""

from __future__ import annotations


class MdmClientError(Exception):
    """Base class for all errors raised by the MDM client."""


class InvalidIdentifierError(MdmClientError, ValueError):
    """An identifier was missing or could not be used to address an entity."""


class MissingConcurrencyTokenError(MdmClientError):
    """An update was attempted without a known concurrency token."""

    def __init__(self, entity_id: int) -> None:
        super().__init__(
            f"No concurrency token known for entity {entity_id}; "
            "fetch the entity first or pass an explicit etag."
        )
        self.entity_id = entity_id
