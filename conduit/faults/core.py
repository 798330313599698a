"""
Conduit Faults - base fault type, domains and severities.

A fault is an exception that knows how it should be reported: a stable
code for clients, a severity for the log, and the functional area
(domain) it came from.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """How loudly a fault is reported."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain(str, Enum):
    """Area of the dispatch core a fault was raised in."""
    CONFIG = "config"      # settings, descriptors, route table build
    ROUTING = "routing"    # matching and parameter decoding
    FLOW = "flow"          # handler outcomes and deadlines
    SYSTEM = "system"      # anything unexpected


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL},
    FaultDomain.ROUTING: {"severity": Severity.WARN},
    FaultDomain.FLOW: {"severity": Severity.ERROR},
    FaultDomain.SYSTEM: {"severity": Severity.ERROR},
}


# ============================================================================
# Fault
# ============================================================================

class Fault(Exception):
    """
    Structured failure raised by the dispatch core.

    Subclasses may pin ``code``, ``message`` and ``domain`` as class
    attributes instead of passing them on every raise:

        class OrderLocked(Fault):
            code = "ORDER_LOCKED"
            message = "Order is being edited"
            domain = FaultDomain.FLOW

    Attributes:
        code: Machine-readable identifier sent to clients
        message: Text sent to clients
        domain: FaultDomain of origin
        severity: Log severity; defaults per domain
        public: Message may be shown to end users
        metadata: Extra fields copied into the error envelope
    """

    code: Optional[str] = None
    message: Optional[str] = None
    domain: Optional[FaultDomain] = None

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        *,
        domain: Optional[FaultDomain] = None,
        severity: Optional[Severity] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        if code is not None:
            self.code = code
        if message is not None:
            self.message = message
        if domain is not None:
            self.domain = domain

        missing = [name for name in ("code", "message", "domain") if getattr(self, name) is None]
        if missing:
            raise TypeError(f"{type(self).__name__} needs {', '.join(missing)}")

        super().__init__(self.message)

        self.severity = severity or DOMAIN_DEFAULTS[self.domain]["severity"]
        self.public = public
        self.metadata = dict(metadata) if metadata else {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.code} ({self.domain.value}/{self.severity.value})>"

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view for structured logging."""
        data = {key: getattr(self, key) for key in ("code", "message", "public", "metadata")}
        data["domain"] = self.domain.value
        data["severity"] = self.severity.value
        return data
