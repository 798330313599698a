"""
Conduit Faults - Error envelope normalization.

Every failure that reaches the dispatcher's terminal handler is converted
into an HTTPFault and then into a plain ``{"error": {...}}`` body.
"""

from __future__ import annotations

import asyncio
import traceback
from typing import Any

from .core import Fault
from .domains import HTTPFault, InternalServerFault


def to_fault(error: BaseException) -> HTTPFault:
    """
    Convert any exception into an HTTPFault.

    HTTP faults pass through unchanged. Other faults and raw exceptions
    become an InternalServerFault carrying the original message and
    traceback text.
    """
    if isinstance(error, HTTPFault):
        return error

    if isinstance(error, Fault):
        fault = InternalServerFault(error.message, code=error.code, metadata=dict(error.metadata))
        fault.stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        fault.__cause__ = error
        return fault

    if isinstance(error, asyncio.CancelledError):
        return InternalServerFault("Request was cancelled", code="REQUEST_CANCELLED")

    return InternalServerFault.wrap(error)


def to_envelope(fault: HTTPFault, *, include_stack: bool = False) -> dict[str, Any]:
    """
    Build the field-by-field copy sent to the client.

    ``status``, ``message`` and ``code`` always come first; metadata entries
    are copied verbatim without overriding them. The stack is included
    only when ``include_stack`` is set.
    """
    prepared: dict[str, Any] = {
        "status": fault.status,
        "message": fault.message,
        "code": fault.code,
    }

    for key, value in fault.metadata.items():
        prepared.setdefault(key, value)

    if include_stack:
        prepared["stack"] = fault.format_stack()
    else:
        prepared.pop("stack", None)

    return prepared
