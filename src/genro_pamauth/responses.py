# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Plain-text ASGI responses.

The gate and ErrorMiddleware answer with short text bodies only; this is the
one place that turns (status, body, headers) into the two ASGI messages::

    {"type": "http.response.start", "status": 401, "headers": [...]}
    {"type": "http.response.body", "body": b"Unauthorized"}
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import Send

__all__ = ["send_plain_response"]


async def send_plain_response(
    send: Send,
    status: int,
    body: str = "",
    headers: Iterable[tuple[str, str]] | None = None,
) -> None:
    """Send a complete text/plain response.

    Args:
        send: ASGI send callable.
        status: HTTP status code.
        body: Response text, UTF-8 encoded.
        headers: Extra headers as (name, value) pairs. Names are lowercased.
    """
    body_bytes = body.encode("utf-8")
    raw_headers: list[tuple[bytes, bytes]] = [
        (b"content-type", b"text/plain; charset=utf-8"),
        (b"content-length", str(len(body_bytes)).encode()),
    ]
    if headers:
        raw_headers.extend((k.lower().encode(), v.encode()) for k, v in headers)

    await send({"type": "http.response.start", "status": status, "headers": raw_headers})
    await send({"type": "http.response.body", "body": body_bytes})
