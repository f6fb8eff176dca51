# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""PAM authentication gate for ASGI applications.

Authenticates every HTTP request with the Basic scheme against a host-level
verification backend (Linux PAM by default). Authenticated requests reach the
wrapped app with scope["auth"] set; everything else gets the same answer::

    401 Unauthorized
    WWW-Authenticate: Basic realm="<realm>"

The precise reason is only written to the log.

Lifecycle:
    UNINITIALIZED --startup()--> READY --shutdown()--> DISPOSED

    startup() validates realm/service and acquires the backend; it raises
    ConfigError and the gate never becomes READY if either fails.
    shutdown() disposes the backend exactly once. Both are exposed as
    on_startup/on_shutdown so ServerLifespan drives them from the ASGI
    lifespan protocol. HTTP requests outside READY get 503.

Request flow (each step may short-circuit to 401):
    Authorization header -> extract_token -> decode_credentials
        -> backend.verify(service, username, password)

Backend failures while verifying fail closed: the request is rejected and
the error is logged at CRITICAL.

scope["auth"] format:
    {"identity": "luke", "uid": 1000, "gid": 1000, "groups": [...],
     "backend": "pam:login"}

Config:
    realm (str): Protection space shown to clients. Required.
    service (str): PAM service name. Required.
    backend (str): BACKEND_REGISTRY key. Default: "pam".
    backend_factory: Callable (service) -> AuthBackend. Overrides backend.
    **backend_options: Passed to the backend class (e.g. users for "static").

Example:
    Enable in config.yaml::

        middleware:
          pamauth: on

        pamauth_middleware:
          realm: "Tatooine"
          service: "sshd"
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from smartasync import smartasync

from . import BaseMiddleware, client_host, headers_dict
from ..authentication import BACKEND_REGISTRY, AuthBackend, Authenticated, UserIdentity
from ..config import GateConfig
from ..credentials import (
    BASIC,
    CredentialError,
    CredentialPair,
    RejectReason,
    decode_credentials,
    extract_token,
)
from ..exceptions import ConfigError
from ..responses import send_plain_response

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

__all__ = ["GateState", "PamAuthMiddleware"]

AUTHORIZATION = "authorization"
WWW_AUTHENTICATE = "WWW-Authenticate"

BackendFactory = Callable[[str], AuthBackend]

logger = logging.getLogger("genro_pamauth.auth")


class GateState(IntEnum):
    """Gate lifecycle states."""

    UNINITIALIZED = 0
    READY = 1
    DISPOSED = 2


class PamAuthMiddleware(BaseMiddleware):
    """Basic authentication gate backed by a pluggable verification backend.

    Attributes:
        state: Current GateState.
        config: GateConfig once started, None before.

    Class Attributes:
        middleware_name: "pamauth" - identifier for config.
        middleware_order: 400 - runs after errors and logging.
        middleware_default: False - disabled by default.
    """

    middleware_name = "pamauth"
    middleware_order = 400
    middleware_default = False

    __slots__ = (
        "_realm",
        "_service",
        "_backend_name",
        "_backend_factory",
        "_backend_options",
        "_config",
        "_backend",
        "_backend_label",
        "_lock",
        "_state",
    )

    def __init__(
        self,
        app: ASGIApp,
        realm: str | None = None,
        service: str | None = None,
        backend: str = "pam",
        backend_factory: BackendFactory | None = None,
        **backend_options: Any,
    ) -> None:
        """Store raw settings. Nothing is validated or acquired until startup().

        Args:
            app: Next ASGI application in the middleware chain.
            realm: Realm for the challenge header.
            service: Backend service (PAM service name).
            backend: Name in BACKEND_REGISTRY, used when no factory is given.
            backend_factory: Callable building the backend for a service.
            **backend_options: Extra arguments for the registry backend class.
        """
        super().__init__(app)
        self._realm = realm
        self._service = service
        self._backend_name = backend
        self._backend_factory = backend_factory
        self._backend_options = backend_options
        self._config: GateConfig | None = None
        self._backend: AuthBackend | None = None
        self._backend_label = ""
        self._lock: threading.Lock | None = None
        self._state = GateState.UNINITIALIZED

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def config(self) -> GateConfig | None:
        return self._config

    @property
    def challenge(self) -> str:
        """Value of the WWW-Authenticate header."""
        if self._config is None:
            raise RuntimeError("Gate has no realm before startup")
        return f'{BASIC} realm="{self._config.realm}"'

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _resolve_factory(self) -> BackendFactory:
        if self._backend_factory is not None:
            return self._backend_factory
        backend_cls = BACKEND_REGISTRY.get(self._backend_name)
        if backend_cls is None:
            raise ConfigError(
                f"Unknown authentication backend '{self._backend_name}'. "
                f"Available: {', '.join(sorted(BACKEND_REGISTRY))}"
            )
        options = self._backend_options

        def factory(service: str) -> AuthBackend:
            return backend_cls(service, **options)  # type: ignore[call-arg]

        return factory

    def startup(self, realm: str | None = None, service: str | None = None) -> None:
        """Validate configuration and acquire the backend. UNINITIALIZED -> READY.

        Args:
            realm: Overrides the realm given to the constructor.
            service: Overrides the service given to the constructor.

        Raises:
            ConfigError: Blank realm/service, unknown backend, or backend
                cannot be acquired.
            RuntimeError: The gate was already started.
        """
        if self._state is not GateState.UNINITIALIZED:
            raise RuntimeError(f"Cannot start gate in state {self._state.name}")

        config = GateConfig(
            realm if realm is not None else self._realm,
            service if service is not None else self._service,
        )
        factory = self._resolve_factory()
        try:
            backend = factory(config.service)
        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(
                f"Cannot acquire authentication backend for service '{config.service}': {e}"
            ) from e

        self._config = config
        self._backend = backend
        self._backend_label = f"{getattr(backend, 'backend_name', '') or 'custom'}:{config.service}"
        self._lock = None if getattr(backend, "thread_safe", False) else threading.Lock()
        self._state = GateState.READY
        logger.info(
            f"Authentication gate ready: realm [{config.realm}], service [{config.service}], "
            f"backend [{type(backend).__name__}]"
        )

    def shutdown(self) -> None:
        """Dispose the backend. READY -> DISPOSED, no-op in any other state."""
        if self._state is not GateState.READY:
            logger.debug(f"Gate shutdown ignored in state {self._state.name}")
            return
        backend, self._backend = self._backend, None
        self._state = GateState.DISPOSED
        if backend is not None:
            backend.dispose()
        logger.info("Authentication gate disposed")

    def on_startup(self) -> None:
        self.startup()

    def on_shutdown(self) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def _log_rejection(
        self,
        level: int,
        message: str,
        client: str,
        reason: RejectReason,
        username: str | None = None,
        exc_info: bool = False,
    ) -> None:
        logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={"client": client, "username": username, "reason": reason.value},
        )

    def _verify(self, backend: AuthBackend, service: str, pair: CredentialPair) -> Any:
        """Blocking backend call, serialized when the backend is not thread safe."""
        if self._lock is None:
            return backend.verify(service, pair.username, pair.password)
        with self._lock:
            return backend.verify(service, pair.username, pair.password)

    async def authenticate(self, scope: Scope) -> UserIdentity | None:
        """Run the full check for one request.

        Args:
            scope: ASGI scope with _headers dict.

        Returns:
            The UserIdentity on success, None on any rejection.
        """
        client = client_host(scope)
        header = scope["_headers"].get(AUTHORIZATION)

        try:
            token = extract_token(header)
        except CredentialError as e:
            self._log_rejection(
                logging.ERROR,
                f"Rejected Authorization header [{header}] from IP [{client}]: {e}",
                client,
                e.reason,
            )
            return None

        try:
            pair = decode_credentials(token)
        except CredentialError as e:
            if e.reason is RejectReason.INVALID_BASE64:
                message = (
                    f"Malformed base64-encoded {BASIC} credentials [{token}] "
                    f"from IP [{client}]: {e.detail}"
                )
            else:
                message = f"Malformed {BASIC} credentials from IP [{client}]: {e}"
            self._log_rejection(logging.ERROR, message, client, e.reason)
            return None

        backend, config = self._backend, self._config
        if backend is None or config is None:
            self._log_rejection(
                logging.CRITICAL,
                f"No authentication backend while authenticating [{pair.username}] "
                f"with IP [{client}]",
                client,
                RejectReason.BACKEND_ERROR,
                pair.username,
            )
            return None

        username = pair.username
        try:
            outcome = await smartasync(self._verify)(backend, config.service, pair)
        except Exception as e:
            self._log_rejection(
                logging.CRITICAL,
                f"Authentication backend failed for [{username}] with IP [{client}]: {e}",
                client,
                RejectReason.BACKEND_ERROR,
                username,
                exc_info=True,
            )
            return None
        finally:
            del pair

        if isinstance(outcome, Authenticated):
            identity = outcome.identity
            logger.info(
                f"Successfully authenticated [{identity.name}] with IP [{client}], "
                f"UID [{identity.uid}], GID [{identity.gid}] and groups [{list(identity.groups)}].",
                extra={"client": client, "username": username, "reason": None},
            )
            return identity

        self._log_rejection(
            logging.ERROR,
            f"Failed to authenticate [{username}] with IP [{client}]: "
            f"{getattr(outcome, 'reason', outcome)}",
            client,
            RejectReason.BACKEND_REJECTED,
            username,
        )
        return None

    async def _reject(self, scope: Scope, send: Send) -> None:
        if scope["type"] == "websocket":
            await send({"type": "websocket.close", "code": 1008})
            return
        await send_plain_response(send, 401, "Unauthorized", [(WWW_AUTHENTICATE, self.challenge)])

    @headers_dict
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Authenticate HTTP and WebSocket connections, pass the rest through.

        Args:
            scope: ASGI scope dictionary.
            receive: ASGI receive callable.
            send: ASGI send callable.
        """
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        if self._state is not GateState.READY:
            logger.error(
                f"Request from IP [{client_host(scope)}] refused: gate is "
                f"{self._state.name.lower()}"
            )
            if scope["type"] == "websocket":
                await send({"type": "websocket.close", "code": 1011})
            else:
                await send_plain_response(send, 503, "Authentication gate not ready")
            return

        identity = await self.authenticate(scope)
        if identity is None:
            await self._reject(scope, send)
            return

        scope["auth"] = {**identity.as_dict(), "backend": self._backend_label}
        await self.app(scope, receive, send)


if __name__ == "__main__":
    pass
