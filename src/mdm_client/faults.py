# MDM Client
# File: faults.py
# Version: v1

"""Strategies deciding whether a response status counts as success."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Protocol


class FaultHandler(Protocol):
    def handle(self, response_status: int, expected_status: int) -> bool:
        """Return True when ``response_status`` is a success for the call."""
        ...


class StandardFaultHandler:
    """Success means exactly the status the operation expects."""

    def handle(self, response_status: int, expected_status: int) -> bool:
        return int(response_status) == int(expected_status)


@dataclass(frozen=True)
class AcceptedStatusFaultHandler:
    """Also accept any status in ``accepted`` as a success.

    Useful against servers that answer an update with 200 instead of 204.
    """

    accepted: FrozenSet[int] = field(default_factory=frozenset)

    def handle(self, response_status: int, expected_status: int) -> bool:
        status = int(response_status)
        return status == int(expected_status) or status in self.accepted
