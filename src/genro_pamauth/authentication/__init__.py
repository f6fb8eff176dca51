# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Verification backends for PamAuthMiddleware.

Exports:
    AuthBackend: ABC for custom backends
    PamBackend: Linux PAM through python-pam
    StaticBackend: In-memory users dict
    UserIdentity, Authenticated, Rejected: verification outcome types
    BACKEND_REGISTRY: Dict mapping backend name to backend class
"""

from .base import AuthBackend, Authenticated, Rejected, UserIdentity, VerificationOutcome
from .pam import PamBackend
from .static import StaticBackend

BACKEND_REGISTRY: dict[str, type[AuthBackend]] = {
    "pam": PamBackend,
    "static": StaticBackend,
}

__all__ = [
    "AuthBackend",
    "Authenticated",
    "BACKEND_REGISTRY",
    "PamBackend",
    "Rejected",
    "StaticBackend",
    "UserIdentity",
    "VerificationOutcome",
]
