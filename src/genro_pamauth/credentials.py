# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""HTTP Basic credential parsing and masking.

Two stages, each raising CredentialError with a named reason on failure:

    extract_token(header)  ->  base64 payload
        "Basic bHVrZTpwYXNz"  ->  "bHVrZTpwYXNz"

    decode_credentials(token)  ->  CredentialPair
        "bHVrZTpwYXNz"  ->  CredentialPair("luke", "pass")

Rejection order (first match wins):
    blank header -> malformed header -> unsupported scheme
    -> invalid base64 -> invalid encoding -> missing separator -> blank username

An empty password ("luke:") is valid and distinct from a missing separator.

Masking:
    Decoded fields are only ever logged through render_fields(), which shows
    the username in clear and replaces every other field with "*" repeated
    to the same length. A payload without a colon has no known username, so
    its single field is masked too.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Sequence
from enum import Enum

from .utils import is_blank

__all__ = [
    "BASIC",
    "MASK_CHAR",
    "CredentialError",
    "CredentialPair",
    "RejectReason",
    "decode_credentials",
    "extract_token",
    "mask",
    "render_fields",
]

BASIC = "Basic"
MASK_CHAR = "*"
SEPARATOR = ":"

# scheme, one whitespace run, token; nothing before or after
_HEADER_RE = re.compile(r"(\S+)\s+(\S+)")


class RejectReason(str, Enum):
    """Why a request was refused. Only ever written to the log."""

    BLANK_HEADER = "blank header"
    MALFORMED_HEADER = "malformed header"
    UNSUPPORTED_SCHEME = "unsupported scheme"
    INVALID_BASE64 = "invalid base64"
    INVALID_ENCODING = "invalid encoding"
    MISSING_SEPARATOR = "missing separator"
    BLANK_USERNAME = "blank username"
    BACKEND_REJECTED = "backend rejected"
    BACKEND_ERROR = "backend error"


class CredentialError(Exception):
    """Request-shape failure. Never leaves the gate.

    Attributes:
        reason: The RejectReason.
        detail: Log-safe description; secrets already masked.
    """

    def __init__(self, reason: RejectReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)


class CredentialPair:
    """Username/password decoded from one request.

    Lives only until the backend call returns. repr() masks the password.
    """

    __slots__ = ("username", "password")

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CredentialPair):
            return self.username == other.username and self.password == other.password
        return False

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"CredentialPair(username={self.username!r}, password={mask(self.password)!r})"


def mask(value: str) -> str:
    """Replace every character of value with MASK_CHAR."""
    return MASK_CHAR * len(value)


def render_fields(fields: Sequence[str], username_known: bool = True) -> str:
    """Render decoded credential fields for a log line.

    Args:
        fields: Fields as split from the decoded payload.
        username_known: False when the payload had no separator, so no field
            can be trusted to be the username.

    Returns:
        "[luke, ****]" style rendering, only the username in clear.
    """
    rendered = [
        field if index == 0 and username_known else mask(field)
        for index, field in enumerate(fields)
    ]
    return "[" + ", ".join(rendered) + "]"


def extract_token(header: str | None) -> str:
    """Return the base64 payload of a ``Basic`` Authorization header.

    Raises:
        CredentialError: BLANK_HEADER, MALFORMED_HEADER or UNSUPPORTED_SCHEME.
    """
    if header is None or is_blank(header):
        raise CredentialError(RejectReason.BLANK_HEADER)
    match = _HEADER_RE.fullmatch(header)
    if match is None:
        raise CredentialError(
            RejectReason.MALFORMED_HEADER, "expected '<scheme> <credentials>'"
        )
    scheme, token = match.groups()
    if scheme != BASIC:
        raise CredentialError(RejectReason.UNSUPPORTED_SCHEME, f"scheme [{scheme}]")
    return token


def decode_credentials(token: str) -> CredentialPair:
    """Decode a base64 ``username:password`` payload.

    Raises:
        CredentialError: INVALID_BASE64, INVALID_ENCODING, MISSING_SEPARATOR
            or BLANK_USERNAME. Details never contain the password.
    """
    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CredentialError(RejectReason.INVALID_BASE64, str(e)) from None
    try:
        decoded = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        # e.object holds the raw bytes; only position and cause are kept
        raise CredentialError(
            RejectReason.INVALID_ENCODING, f"{e.reason} at byte {e.start}"
        ) from None

    username, separator, password = decoded.partition(SEPARATOR)
    if not separator:
        raise CredentialError(
            RejectReason.MISSING_SEPARATOR,
            f"decoded {render_fields([decoded], username_known=False)}",
        )
    if is_blank(username):
        raise CredentialError(
            RejectReason.BLANK_USERNAME, f"decoded {render_fields([username, password])}"
        )
    return CredentialPair(username, password)
