"""
Request context - the per-request bundle handed to collection handlers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, TYPE_CHECKING

from .outcomes import Forward, NotFound

if TYPE_CHECKING:
    from .http import Request, Response


@dataclass
class Actions:
    """
    Outcome slots a handler may set on its context.

    ``not_found`` wins over ``forward`` when both are set. The dispatcher
    clears ``forward`` before following it.
    """
    not_found: Optional[NotFound] = None
    forward: Optional[Forward] = None


@dataclass
class RequestContext:
    """
    Request context provided to collection handlers.

    Attributes:
        request: The HTTP request
        response: The HTTP response (not yet sent)
        collection_name: Name of the collection being invoked
        handler_name: Name of the handler being invoked
        state: Matched path parameters, shared across forwards
        actions: Outcome slots (not found / forward)
        container: DI container, if the factory was given one
    """

    request: "Request"
    response: "Response"
    collection_name: str
    handler_name: str
    state: Dict[str, Any] = field(default_factory=dict)
    actions: Actions = field(default_factory=Actions)
    container: Optional[Any] = None

    @property
    def params(self) -> Dict[str, Any]:
        """Matched path parameters."""
        return self.state

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.path

    def not_found(self, message: str = "Not found", code: Optional[str] = None) -> None:
        """Answer this request with 404 once the handler returns."""
        self.actions.not_found = NotFound(message, code)

    def forward(self, collection_name: str, handler_name: str) -> None:
        """Continue with another collection handler once this one returns."""
        self.actions.forward = Forward(collection_name, handler_name)


class ContextFactory:
    """Creates a fresh RequestContext for every handler invocation."""

    def __init__(self, container: Optional[Any] = None):
        self.container = container

    def create(
        self,
        request: "Request",
        response: "Response",
        *,
        name: str,
        handle_name: str,
        state: Optional[Dict[str, Any]] = None,
    ) -> RequestContext:
        return RequestContext(
            request=request,
            response=response,
            collection_name=name,
            handler_name=handle_name,
            state=state if state is not None else {},
            container=self.container,
        )
