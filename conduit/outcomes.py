"""
Handler outcomes - tagged results a collection handler may return instead
of setting ``ctx.actions``.

    return Ok(order)                          # plain result
    return NotFound("no such order", "ORDER_MISSING")
    return Forward("orders", "list")          # re-dispatch in-process

Returning a bare value is the same as returning ``Ok(value)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Ok:
    """Handler produced a result to be formatted."""
    value: Any = None


@dataclass(frozen=True)
class NotFound:
    """Handler found no resource; answered with 404."""
    message: str = "Not found"
    code: Optional[str] = None


@dataclass(frozen=True)
class Forward:
    """Continue processing in another collection handler, same request."""
    collection_name: str
    handler_name: str


Outcome = Ok | NotFound | Forward
