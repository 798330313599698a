"""
Conduit Faults - HTTP fault types raised by the dispatch core.

Every fault a request can end with maps to exactly one status code:
- NotFoundFault        404  handler signaled a missing resource
- NotImplementedFault  501  no route matched the request
- InternalServerFault  500  configuration or programming fault
- DecodeFault          400  malformed percent-encoding in a path parameter
- RequestTimeoutFault  504  per-request deadline exceeded

ConfigurationFault is raised at startup only (route table and config build).
"""

from __future__ import annotations

import traceback
from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


class HTTPFault(Fault):
    """Fault that carries the HTTP status it should be answered with."""

    status: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status: Optional[int] = None,
        domain: FaultDomain = FaultDomain.FLOW,
        severity: Optional[Severity] = None,
        public: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=domain,
            severity=severity,
            public=public,
            metadata=metadata,
        )
        if status is not None:
            self.status = status
        self.stack: Optional[str] = None

    def format_stack(self) -> str:
        """Traceback text for this fault, or for the exception it wraps."""
        if self.stack:
            return self.stack
        return "".join(traceback.format_exception(type(self), self, self.__traceback__))


class NotFoundFault(HTTPFault):
    """Handler signaled that the requested resource does not exist."""

    status = 404

    def __init__(self, message: str = "Not found", code: Optional[str] = None, **kwargs):
        super().__init__(
            code=code or "NOT_FOUND",
            message=message,
            domain=FaultDomain.FLOW,
            severity=Severity.INFO,
            **kwargs,
        )


class NotImplementedFault(HTTPFault):
    """No route matched the request."""

    status = 501

    def __init__(self, message: str, code: Optional[str] = None, **kwargs):
        super().__init__(
            code=code or "NOT_IMPLEMENTED",
            message=message,
            domain=FaultDomain.ROUTING,
            **kwargs,
        )


class InternalServerFault(HTTPFault):
    """Configuration or programming fault detected while serving a request."""

    status = 500

    def __init__(self, message: str, code: Optional[str] = None, **kwargs):
        super().__init__(
            code=code or "INTERNAL_SERVER_ERROR",
            message=message,
            domain=kwargs.pop("domain", FaultDomain.SYSTEM),
            severity=Severity.ERROR,
            **kwargs,
        )

    @classmethod
    def wrap(cls, exc: BaseException) -> "InternalServerFault":
        """Wrap an arbitrary exception, keeping its message and traceback."""
        fault = cls(
            str(exc) or type(exc).__name__,
            metadata={"exceptionType": type(exc).__name__},
        )
        fault.stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        fault.__cause__ = exc
        return fault


class DecodeFault(HTTPFault):
    """A path parameter could not be percent-decoded."""

    status = 400

    def __init__(self, value: str, **kwargs):
        super().__init__(
            code="DECODE_ERROR",
            message=f"Failed to decode param '{value}'",
            domain=FaultDomain.ROUTING,
            severity=Severity.WARN,
            metadata={"value": value},
            **kwargs,
        )
        self.value = value


class RequestTimeoutFault(HTTPFault):
    """The request did not finish within its deadline."""

    status = 504

    def __init__(self, timeout: float, **kwargs):
        super().__init__(
            code="REQUEST_TIMEOUT",
            message=f"Request was not completed within {timeout:g}s",
            domain=FaultDomain.FLOW,
            metadata={"timeout": timeout},
            **kwargs,
        )


class ConfigurationFault(Fault):
    """Startup configuration is invalid; the server must not serve requests."""

    def __init__(self, message: str, *, metadata: Optional[dict[str, Any]] = None):
        super().__init__(
            code="CONFIGURATION_ERROR",
            message=message,
            domain=FaultDomain.CONFIG,
            severity=Severity.FATAL,
            public=False,
            metadata=metadata,
        )
