# MDM Client
# File: response.py
# Version: v3

"""Uniform result envelopes returned by every client operation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Generic, Optional, TypeVar, Union

from .models import Fault


T = TypeVar("T")

StatusCode = Union[HTTPStatus, int]


def to_status(code: int) -> StatusCode:
    """Map a raw status code onto HTTPStatus where the enum knows it."""
    try:
        return HTTPStatus(code)
    except ValueError:
        return code


def status_name(code: int) -> str:
    """Compact status name used for synthesized faults, e.g. ``NotFound``."""
    status = to_status(code)
    if isinstance(status, HTTPStatus):
        return "".join(status.phrase.split())
    return str(status)


@dataclass
class Response(Generic[T]):
    """Outcome of one client operation.

    ``fault`` is populated exactly when ``is_valid`` is False. A valid
    response carries ``message`` unless the operation has no content
    (deleting a mapping, for instance).
    """

    is_valid: bool = True
    status_code: StatusCode = HTTPStatus.OK
    message: Optional[T] = None
    fault: Optional[Fault] = None
    concurrency_token: Optional[str] = None
    location: Optional[str] = None
    request_id: Optional[str] = None

    @classmethod
    def failure(
        cls,
        status_code: StatusCode,
        fault: Optional[Fault],
        request_id: Optional[str] = None,
    ) -> "Response[T]":
        if fault is None:
            fault = Fault(message=status_name(int(status_code)))
        return cls(
            is_valid=False,
            status_code=status_code,
            fault=fault,
            request_id=request_id,
        )

    def fail(self, status_code: StatusCode, fault: Fault) -> None:
        """Turn this response into a failure in place."""
        self.is_valid = False
        self.status_code = status_code
        self.fault = fault
        self.message = None
        self.concurrency_token = None

    def log_response(self, logger: logging.Logger) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        if self.is_valid:
            logger.debug(
                "Response: %s, request_id=%s, token=%s",
                self.status_code,
                self.request_id,
                self.concurrency_token,
            )
        else:
            logger.debug(
                "Response: %s, request_id=%s, fault=%s",
                self.status_code,
                self.request_id,
                self.fault.message if self.fault else None,
            )


@dataclass
class PagedResponse(Response[T]):
    """Response for paged searches; ``next_page`` is set when more results exist."""

    next_page: Optional[str] = None
