# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Linux PAM backend.

Verifies credentials through the host's Pluggable Authentication Modules
using python-pam, so users log in with their system account. The PAM
service selects the policy file in /etc/pam.d (``login``, ``sshd``, or a
dedicated one).

On success the identity is completed from the system databases:

    uid, gid  <- pwd.getpwnam(username)
    groups    <- os.getgrouplist(username, gid) mapped through grp

Config:
    backend: "pam"
    service: "login"

Note:
    python-pam keeps the last result on the authenticator object (code,
    reason), so one instance must not be used by two threads at once.
    thread_safe is False and the gate serializes calls.
"""

from __future__ import annotations

import grp
import logging
import os
import pwd
from typing import Any

from .base import AuthBackend, Authenticated, Rejected, UserIdentity, VerificationOutcome
from ..exceptions import BackendError, BackendUnavailable

__all__ = ["PamBackend"]

logger = logging.getLogger("genro_pamauth.backend")


def _new_authenticator() -> Any:
    """Create a python-pam authenticator, loading libpam."""
    try:
        import pam
    except (ImportError, OSError) as e:
        raise BackendUnavailable(f"PAM library cannot be loaded: {e}") from e
    return pam.pam()


def lookup_identity(username: str) -> UserIdentity:
    """Build a UserIdentity from passwd/group. Unknown users get a bare name."""
    try:
        entry = pwd.getpwnam(username)
    except KeyError:
        return UserIdentity(username)
    groups: list[str] = []
    for gid in os.getgrouplist(entry.pw_name, entry.pw_gid):
        try:
            groups.append(grp.getgrgid(gid).gr_name)
        except KeyError:
            groups.append(str(gid))
    return UserIdentity(entry.pw_name, uid=entry.pw_uid, gid=entry.pw_gid, groups=groups)


class PamBackend(AuthBackend):
    """PAM verification for one service.

    Attributes:
        service: PAM service name this backend was acquired for.

    Args:
        service: PAM service name.
        authenticator: Object with python-pam's interface
            (``authenticate()``, ``code``, ``reason``). Created from python-pam
            when omitted.

    Raises:
        BackendUnavailable: libpam or python-pam cannot be loaded.
    """

    backend_name = "pam"
    thread_safe = False

    __slots__ = ("service", "_pam")

    def __init__(self, service: str, authenticator: Any = None) -> None:
        self.service = service
        self._pam = authenticator if authenticator is not None else _new_authenticator()
        logger.debug(f"PAM backend ready for service [{service}]")

    def verify(self, service: str, username: str, password: str) -> VerificationOutcome:
        if self._pam is None:
            raise BackendUnavailable("PAM backend already disposed")
        try:
            ok = self._pam.authenticate(username, password, service=service)
        except (OSError, TypeError, ValueError) as e:
            raise BackendError(f"PAM call failed: {e}") from e
        if not ok:
            return Rejected(f"{self._pam.reason} (code {self._pam.code})")
        return Authenticated(lookup_identity(username))

    def dispose(self) -> None:
        self._pam = None
        logger.debug(f"PAM backend for service [{self.service}] disposed")
