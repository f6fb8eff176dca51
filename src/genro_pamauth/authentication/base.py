# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Authentication backend contract for the gate.

A backend is the host-level engine that owns the credential store. The gate
needs exactly two things from it:

    verify(service, username, password) -> Authenticated | Rejected
    dispose()

Negative answers (unknown user, wrong password, locked account, expired
password...) are all returned as Rejected with the backend's message.
Exceptions are reserved for the backend itself failing; the gate treats them
as a rejection and logs them at CRITICAL.

Thread safety:
    thread_safe = False (the default) makes the gate serialize verify()
    calls behind a lock. Set it to True only if concurrent calls on one
    instance are documented as safe.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

__all__ = ["AuthBackend", "Authenticated", "Rejected", "UserIdentity", "VerificationOutcome"]


class UserIdentity:
    """Who the backend says the user is. Audit data only.

    Attributes:
        name: Display/user name as known by the backend.
        uid: Numeric user id, if the backend knows it.
        gid: Primary group id, if the backend knows it.
        groups: Group names the user belongs to.
    """

    __slots__ = ("name", "uid", "gid", "groups")

    def __init__(
        self,
        name: str,
        uid: int | None = None,
        gid: int | None = None,
        groups: Iterable[str] = (),
    ) -> None:
        self.name = name
        self.uid = uid
        self.gid = gid
        self.groups = tuple(groups)

    def as_dict(self) -> dict[str, Any]:
        return {"identity": self.name, "uid": self.uid, "gid": self.gid, "groups": list(self.groups)}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UserIdentity):
            return NotImplemented
        return (self.name, self.uid, self.gid, self.groups) == (
            other.name,
            other.uid,
            other.gid,
            other.groups,
        )

    def __hash__(self) -> int:
        return hash((self.name, self.uid, self.gid, self.groups))

    def __repr__(self) -> str:
        return (
            f"UserIdentity(name={self.name!r}, uid={self.uid}, gid={self.gid}, "
            f"groups={list(self.groups)})"
        )


class Authenticated:
    """Positive verification outcome."""

    __slots__ = ("identity",)

    ok = True

    def __init__(self, identity: UserIdentity) -> None:
        self.identity = identity

    def __repr__(self) -> str:
        return f"Authenticated({self.identity!r})"


class Rejected:
    """Negative verification outcome with the backend's message."""

    __slots__ = ("reason",)

    ok = False

    def __init__(self, reason: str) -> None:
        self.reason = reason

    def __repr__(self) -> str:
        return f"Rejected(reason={self.reason!r})"


VerificationOutcome = Authenticated | Rejected


class AuthBackend(ABC):
    """Base class for verification backends.

    Subclasses set backend_name and implement verify() and dispose().
    A backend instance is created by the gate at startup for one service and
    disposed once at shutdown.
    """

    backend_name: str = ""
    thread_safe: bool = False

    @abstractmethod
    def verify(self, service: str, username: str, password: str) -> VerificationOutcome:
        """Check username/password for service.

        Returns:
            Authenticated with the user's identity, or Rejected with a
            message safe to log (never containing the password).

        Raises:
            BackendError: The backend could not answer at all.
        """
        ...

    @abstractmethod
    def dispose(self) -> None:
        """Release backend resources. Called once by the gate."""
        ...
