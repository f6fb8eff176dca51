# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Error handling middleware.

Catches exceptions raised by the protected application and converts them
to HTTP responses:

    - HTTPException: status code, detail as body, extra headers
      (HTTPUnauthorized(realm=...) carries the Basic challenge)
    - Exception: 500 Internal Server Error, logged with traceback

The gate never raises for a failed authentication, so this middleware is
about the application behind it. It is enabled by default and sits
outermost (middleware_order=100).

Config:
    debug (bool): If True, include traceback in 500 responses. Default: False.
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware
from ..exceptions import HTTPException
from ..responses import send_plain_response

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger("genro_pamauth.errors")


class ErrorMiddleware(BaseMiddleware):
    """Turns exceptions from HTTP handlers into responses.

    Attributes:
        debug: If True, include stack traces in 500 error responses.
    """

    middleware_name = "errors"
    middleware_order = 100
    middleware_default = True

    __slots__ = ("debug",)

    def __init__(self, app: ASGIApp, debug: bool = False, **kwargs: Any) -> None:
        super().__init__(app, **kwargs)
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Any) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except HTTPException as e:
            if response_started:
                raise
            await send_plain_response(send, e.status_code, e.detail or "", e.headers)
        except Exception:
            logger.exception(f"Unhandled error on {scope.get('method', '?')} {scope.get('path', '/')}")
            if response_started:
                raise
            if self.debug:
                body = f"Internal Server Error\n\n{traceback.format_exc()}"
            else:
                body = "Internal Server Error"
            await send_plain_response(send, 500, body)


if __name__ == "__main__":
    pass
