# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""In-memory users backend.

Handy for development servers and tests where touching the host's PAM stack
is not wanted. Users are given as a dict, the same shape used in YAML::

    pamauth_middleware:
      realm: "Tatooine"
      backend: "static"
      users:
        luke_skywalker:
          password: "pass123"
          uid: 1000
          gid: 1000
          groups: "rebels,pilots"
        guest:
          password: ""

Empty passwords are allowed. The service argument is ignored: one user table
serves every service.
"""

from __future__ import annotations

import hmac
from typing import Any

from .base import AuthBackend, Authenticated, Rejected, UserIdentity, VerificationOutcome
from ..exceptions import ConfigError
from ..utils import split_and_strip

__all__ = ["StaticBackend"]


class StaticBackend(AuthBackend):
    """Verify against a fixed users dict.

    Attributes:
        service: Service name the backend was created for.
    """

    backend_name = "static"
    thread_safe = True

    __slots__ = ("service", "_users", "_disposed")

    def __init__(self, service: str, users: dict[str, Any] | None = None) -> None:
        self.service = service
        self._users: dict[str, dict[str, Any]] = {}
        self._disposed = False
        if hasattr(users, "as_dict"):
            users = users.as_dict()
        for username, config in (users or {}).items():
            if hasattr(config, "as_dict"):
                config = config.as_dict()
            password = config.get("password")
            if password is None:
                raise ConfigError(f"Static user '{username}' missing 'password'")
            self._users[username] = {
                "password": password.encode("utf-8"),
                "identity": UserIdentity(
                    username,
                    uid=config.get("uid"),
                    gid=config.get("gid"),
                    groups=split_and_strip(config.get("groups")),
                ),
            }

    @property
    def disposed(self) -> bool:
        return self._disposed

    def verify(self, service: str, username: str, password: str) -> VerificationOutcome:
        entry = self._users.get(username)
        if entry is None:
            return Rejected("User not known to the underlying authentication module")
        if not hmac.compare_digest(entry["password"], password.encode("utf-8")):
            return Rejected("Authentication failure")
        return Authenticated(entry["identity"])

    def dispose(self) -> None:
        self._users.clear()
        self._disposed = True
