"""
ASGI adapter - Bridges the ASGI protocol to the dispatcher.

- ``lifespan.startup`` runs ``Dispatcher.init()``; startup only completes
  once the route table is live.
- Each ``http`` scope becomes a Request/Response pair handed to
  ``Dispatcher.request_listener``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from .dispatcher import Dispatcher
from .http import Request, Response


class ASGIAdapter:
    """
    ASGI 3 application wrapping a Dispatcher.

    When the server does not run the lifespan protocol, the route table is
    built on the first HTTP request instead.
    """

    __slots__ = ("dispatcher", "logger", "_init_lock")

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher
        self.logger = logging.getLogger("conduit.asgi")
        self._init_lock: Optional[asyncio.Lock] = None

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        else:
            self.logger.warning("Unsupported ASGI scope type: %s", scope_type)

    async def startup(self) -> None:
        """Initialize the dispatcher once, even under concurrent first requests."""
        if self.dispatcher.ready:
            return
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        async with self._init_lock:
            if not self.dispatcher.ready:
                table = await self.dispatcher.init()
                self.logger.info("Dispatcher ready with %d routes", len(table))

    async def handle_http(self, scope: dict, receive: Callable, send: Callable):
        request = Request(scope, receive)
        response = Response(send)

        if not self.dispatcher.ready:
            try:
                await self.startup()
            except Exception as e:
                await self.dispatcher.error_handle(request, response, e)
                return

        start = time.monotonic()
        await self.dispatcher.request_listener(request, response)

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                "%s %s - %d (%.1fms)",
                request.method, request.path, response.status,
                (time.monotonic() - start) * 1000.0,
            )

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable):
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    await self.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    self.logger.error("Startup error: %s", e, exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    raise

            elif message["type"] == "lifespan.shutdown":
                self.logger.debug("Server shutdown complete")
                await send({"type": "lifespan.shutdown.complete"})
                break
