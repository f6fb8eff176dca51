# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Access log that never shows credentials.

One line when the request arrives and one when it is answered::

    <- GET /reports?year=2025 from 10.0.0.7
    -> GET /reports?year=2025 401 (0.8ms) user=-
    -> GET /reports?year=2025 200 (14.2ms) user=luke_skywalker
    -> GET /reports?year=2025 failed: <error> (3.1ms)

The user comes from scope["auth"], filled in by the gate further down the
chain. With include_headers on, request headers are logged at DEBUG with
Authorization, Proxy-Authorization and Cookie masked; the auth scheme stays
readable so "Basic ****" and "Bearer ****" can still be told apart.

Config:
    logger_name (str): Default "genro_pamauth.access".
    level (str): Level name for the two access lines. Default "INFO".
    include_headers (bool): Log masked request headers at DEBUG. Default False.
    include_query (bool): Append the query string to the path. Default True.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware, client_host
from ..credentials import mask

if TYPE_CHECKING:
    from ..types import ASGIApp, Message, Receive, Scope, Send

SENSITIVE_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie"})


def masked_header_value(name: str, value: str) -> str:
    """Mask a sensitive header, keeping an auth scheme token in clear."""
    lowered = name.lower()
    if lowered not in SENSITIVE_HEADERS:
        return value
    if lowered.endswith("authorization"):
        scheme, sep, rest = value.partition(" ")
        if sep:
            return f"{scheme} {mask(rest)}"
    return mask(value)


def request_line(scope: Scope, include_query: bool = True) -> str:
    """"METHOD /path[?query]" for a HTTP scope."""
    line = f"{scope.get('method', '?')} {scope.get('path', '/')}"
    query = scope.get("query_string", b"")
    if include_query and query:
        line = f"{line}?{query.decode('latin-1')}"
    return line


class LoggingMiddleware(BaseMiddleware):
    """HTTP access log with credentials masked."""

    middleware_name = "logging"
    middleware_order = 200
    middleware_default = False

    __slots__ = ("logger", "level", "include_headers", "include_query")

    def __init__(
        self,
        app: ASGIApp,
        logger_name: str = "genro_pamauth.access",
        level: str = "INFO",
        include_headers: bool = False,
        include_query: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(app, **kwargs)
        self.logger = logging.getLogger(logger_name)
        self.level = logging.getLevelName(level.upper())
        if not isinstance(self.level, int):
            self.level = logging.INFO
        self.include_headers = include_headers
        self.include_query = include_query

    def _log_headers(self, scope: Scope) -> None:
        shown = {
            name.decode("latin-1"): masked_header_value(name.decode("latin-1"), value.decode("latin-1"))
            for name, value in scope.get("headers", ())
        }
        self.logger.debug(f"   headers {shown}")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        line = request_line(scope, self.include_query)
        self.logger.log(self.level, f"<- {line} from {client_host(scope)}")
        if self.include_headers:
            self._log_headers(scope)

        status: list[int] = []

        async def recording_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                status.append(message.get("status", 0))
            await send(message)

        started = time.perf_counter()
        try:
            await self.app(scope, receive, recording_send)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            self.logger.error(f"-> {line} failed: {e} ({elapsed:.1f}ms)")
            raise

        elapsed = (time.perf_counter() - started) * 1000
        user = (scope.get("auth") or {}).get("identity") or "-"
        code = status[0] if status else 0
        self.logger.log(self.level, f"-> {line} {code} ({elapsed:.1f}ms) user={user}")
