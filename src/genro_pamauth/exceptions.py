# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Exception classes for genro-pamauth.

Grouped by who catches them:

1. ConfigError - raised by GateConfig and PamAuthMiddleware.startup();
   the gate stays UNINITIALIZED and ServerLifespan reports startup.failed.
2. BackendError / BackendUnavailable - raised by AuthBackend.verify() or
   while building a backend. During a request the gate turns them into a
   401 (fail closed); during startup they become a ConfigError.
3. HTTPException family - raised by the application behind the gate,
   turned into a response by ErrorMiddleware.

Failed authentication is not an exception: the gate answers the 401
challenge itself.

Example:
    >>> raise HTTPUnauthorized(realm="Tatooine")
    >>> raise HTTPServiceUnavailable("Maintenance")
"""

__all__ = [
    "BackendError",
    "BackendUnavailable",
    "ConfigError",
    "HTTPException",
    "HTTPServiceUnavailable",
    "HTTPUnauthorized",
]


class ConfigError(Exception):
    """Gate configuration error. The gate must not reach READY."""


class BackendError(Exception):
    """Failure inside an authentication backend, distinct from a rejection."""


class BackendUnavailable(BackendError):
    """The verification engine cannot be loaded or reached."""


class HTTPException(Exception):
    """
    Error response raised by a protected handler.

    Attributes:
        status_code: Response status.
        detail: Plain-text response body, also the str() of the exception.
        headers: Extra response headers as (name, value) pairs, or None.
    """

    def __init__(
        self,
        status_code: int,
        detail: str = "",
        headers: dict[str, str] | list[tuple[str, str]] | None = None,
    ) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.headers: list[tuple[str, str]] | None = (
            None if headers is None else list(headers.items() if isinstance(headers, dict) else headers)
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code}, detail={self.detail!r})"


class HTTPUnauthorized(HTTPException):
    """401, with a Basic challenge when a realm is given."""

    def __init__(self, detail: str = "Unauthorized", realm: str | None = None) -> None:
        challenge = None if realm is None else {"WWW-Authenticate": f'Basic realm="{realm}"'}
        super().__init__(401, detail=detail, headers=challenge)
        self.realm = realm


class HTTPServiceUnavailable(HTTPException):
    """503, for handlers that depend on something not yet available."""

    def __init__(self, detail: str = "Service unavailable") -> None:
        super().__init__(503, detail=detail)
