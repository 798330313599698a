"""
Conduit Faults - Typed fault signals for the dispatch core.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
- HTTPFault and its status-carrying subclasses
- to_fault / to_envelope: terminal error normalization
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
    DOMAIN_DEFAULTS,
)

from .domains import (
    HTTPFault,
    NotFoundFault,
    NotImplementedFault,
    InternalServerFault,
    DecodeFault,
    RequestTimeoutFault,
    ConfigurationFault,
)

from .envelope import to_fault, to_envelope

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",
    "DOMAIN_DEFAULTS",
    # HTTP faults
    "HTTPFault",
    "NotFoundFault",
    "NotImplementedFault",
    "InternalServerFault",
    "DecodeFault",
    "RequestTimeoutFault",
    "ConfigurationFault",
    # Normalization
    "to_fault",
    "to_envelope",
]
