# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Gate lifecycle over the ASGI lifespan protocol.

ServerLifespan is the outermost app given to the server. It answers
``lifespan`` scopes itself and forwards everything else::

    lifespan.startup   -> on_startup() of each component, in order
                          -> lifespan.startup.complete
                          -> lifespan.startup.failed (first error, server exits)
    lifespan.shutdown  -> on_shutdown() of each component, reverse order
                          -> lifespan.shutdown.complete (always)

Components are the ones passed explicitly plus every layer of the
middleware chain below ``app`` that has on_startup or on_shutdown, which
is how a PamAuthMiddleware acquires its backend before the first request
and disposes it after the last one. A blank realm or an unloadable PAM
library therefore stops the server from starting.

Handlers may be plain functions or coroutines.

Example::

    chain = middleware_chain("logging,pamauth", app, config)
    uvicorn.run(ServerLifespan(chain), lifespan="on")
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING

from .middleware import iter_chain

if TYPE_CHECKING:
    from .types import ASGIApp, Receive, Scope, Send

__all__ = ["ServerLifespan"]

logger = logging.getLogger("genro_pamauth.lifespan")

_HOOKS = ("on_startup", "on_shutdown")


def _has_hooks(obj: object) -> bool:
    return any(hasattr(obj, hook) for hook in _HOOKS)


async def _run_hook(component: object, hook: str) -> None:
    handler = getattr(component, hook, None)
    if handler is None:
        return
    logger.debug(f"{hook} {type(component).__name__}")
    result = handler()
    if inspect.isawaitable(result):
        await result


class ServerLifespan:
    """
    Lifespan handler wrapping an ASGI application.

    Attributes:
        app: Receives every non-lifespan scope.
        components: Objects whose hooks are driven, in startup order.
    """

    __slots__ = ("app", "components", "_started")

    def __init__(self, app: ASGIApp, *components: object) -> None:
        self.app = app
        discovered = [layer for layer in iter_chain(app) if _has_hooks(layer)]
        self.components: list[object] = list(components)
        self.components.extend(c for c in discovered if c not in self.components)
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "lifespan":
            await self.app(scope, receive, send)
            return

        while True:
            event = (await receive())["type"]
            if event == "lifespan.startup":
                if not await self._on_startup_event(send):
                    return
            elif event == "lifespan.shutdown":
                await self._on_shutdown_event(send)
                return

    async def _on_startup_event(self, send: Send) -> bool:
        try:
            await self.startup()
        except Exception as e:
            logger.exception("Startup failed")
            await send({"type": "lifespan.startup.failed", "message": str(e)})
            return False
        await send({"type": "lifespan.startup.complete"})
        return True

    async def _on_shutdown_event(self, send: Send) -> None:
        try:
            await self.shutdown()
        finally:
            await send({"type": "lifespan.shutdown.complete"})

    async def startup(self) -> None:
        """Run on_startup of every component. The first error propagates."""
        logger.info("Starting up...")
        for component in self.components:
            await _run_hook(component, "on_startup")
        self._started = True
        logger.info("Started")

    async def shutdown(self) -> None:
        """Run on_shutdown of every component; errors are logged, not raised."""
        logger.info("Shutting down...")
        for component in reversed(self.components):
            try:
                await _run_hook(component, "on_shutdown")
            except Exception:
                logger.exception(f"Error shutting down {type(component).__name__}")
        self._started = False
        logger.info("Stopped")
