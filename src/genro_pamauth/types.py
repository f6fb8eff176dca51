# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""ASGI type aliases used across genro-pamauth.

The gate only ever touches three ASGI shapes: the ``http`` scope it guards,
the ``lifespan`` scope that drives startup/shutdown, and the
``http.response.*`` messages it sends when rejecting a request.

Definition::

    Scope = MutableMapping[str, Any]
    Message = MutableMapping[str, Any]
    Receive = Callable[[], Awaitable[Message]]
    Send = Callable[[Message], Awaitable[None]]
    ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

Scope keys read by the gate:
    type: "http", "websocket" or "lifespan"
    headers: list of (name, value) byte pairs, names lowercase
    client: (host, port) tuple or None

Design Notes
============
MutableMapping instead of TypedDict: ASGI servers add their own keys and the
middleware chain adds ``_headers`` and ``auth``. Callable aliases instead of
Protocols keep the signatures readable.
"""

from typing import Any, Awaitable, Callable, MutableMapping

__all__ = ["Scope", "Message", "Receive", "Send", "ASGIApp"]

Scope = MutableMapping[str, Any]

Message = MutableMapping[str, Any]

Receive = Callable[[], Awaitable[Message]]

Send = Callable[[Message], Awaitable[None]]

ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]
