# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Middleware package for genro-pamauth.

Every BaseMiddleware subclass registers itself under its middleware_name.
middleware_chain() picks the enabled ones and nests them by
middleware_order, lowest outermost::

    ErrorMiddleware (100) -> LoggingMiddleware (200) -> PamAuthMiddleware (400) -> app

Per-middleware options come from a "{name}_middleware" section of the
configuration mapping.
"""

from __future__ import annotations

import functools
import importlib
import pkgutil
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

MIDDLEWARE_REGISTRY: dict[str, type[BaseMiddleware]] = {}

_TRUE_WORDS = frozenset({"on", "true", "yes", "1"})


def parse_headers(raw: Iterable[tuple[bytes, bytes]]) -> dict[str, str]:
    """Decode ASGI header pairs. Names lowercased, last repeated value wins."""
    headers: dict[str, str] = {}
    for name, value in raw:
        headers[name.decode("latin-1").lower()] = value.decode("latin-1")
    return headers


def headers_dict(
    func: Callable[..., Awaitable[None]],
) -> Callable[..., Awaitable[None]]:
    """Make scope["_headers"] available to a middleware __call__."""

    @functools.wraps(func)
    async def wrapper(self: BaseMiddleware, scope: Scope, receive: Receive, send: Send) -> None:
        scope.setdefault("_headers", parse_headers(scope.get("headers", ())))
        await func(self, scope, receive, send)

    return wrapper


def client_host(scope: Scope) -> str:
    """Caller network address from scope["client"], or "unknown"."""
    client = scope.get("client")
    return str(client[0]) if client else "unknown"


class BaseMiddleware(ABC):
    """Common base of genro-pamauth middleware.

    Subclasses are registered on definition. Set on the subclass:
        middleware_name: Key used in configuration (class name if empty).
        middleware_order: Position in the chain, lower is outer.
        middleware_default: Enabled when the configuration does not say.
    """

    middleware_name: str = ""
    middleware_order: int = 500
    middleware_default: bool = False

    __slots__ = ("app",)

    def __init__(self, app: ASGIApp, **kwargs: Any) -> None:
        self.app = app

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.middleware_name = cls.middleware_name or cls.__name__
        if cls.middleware_name in MIDDLEWARE_REGISTRY:
            raise ValueError(f"Middleware name '{cls.middleware_name}' already registered")
        MIDDLEWARE_REGISTRY[cls.middleware_name] = cls

    @abstractmethod
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None: ...


def iter_chain(app: Any) -> Iterator[Any]:
    """Yield app and every layer below it, following the ``app`` attribute."""
    seen: set[int] = set()
    while app is not None and id(app) not in seen:
        seen.add(id(app))
        yield app
        app = getattr(app, "app", None)


def _load_middleware_modules() -> None:
    for module in pkgutil.iter_modules(__path__):
        if not module.name.startswith("_"):
            importlib.import_module(f"{__name__}.{module.name}")


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_WORDS
    return bool(value)


def _enabled_flags(middleware_config: Any) -> dict[str, bool]:
    """Normalize the ``middleware`` setting to {name: enabled}."""
    if not middleware_config:
        return {}
    if hasattr(middleware_config, "as_dict"):
        middleware_config = middleware_config.as_dict()
    if isinstance(middleware_config, Mapping):
        return {name: _as_flag(value) for name, value in middleware_config.items()}
    if isinstance(middleware_config, str):
        middleware_config = middleware_config.split(",")
    return {name.strip(): True for name in middleware_config if name.strip()}


def _section(full_config: Any, name: str) -> dict[str, Any]:
    """Options for one middleware from its "{name}_middleware" section."""
    if full_config is None:
        return {}
    key = f"{name}_middleware"
    section = full_config.get(key) if isinstance(full_config, Mapping) else full_config[key]
    if section is None:
        return {}
    return section.as_dict() if hasattr(section, "as_dict") else dict(section)


def middleware_chain(
    middleware_config: str | list[str] | dict[str, Any] | None,
    app: ASGIApp,
    full_config: Any = None,
) -> ASGIApp:
    """Wrap app with the enabled middleware.

    Args:
        middleware_config: {name: on/off} mapping, comma-separated names or a list.
        app: The innermost ASGI app.
        full_config: Mapping or SmartOptions holding "{name}_middleware" sections.

    Returns:
        The outermost layer.

    Example::

        middleware:
          logging: on
          pamauth: on

        pamauth_middleware:
          realm: "Tatooine"
          service: "sshd"
    """
    flags = _enabled_flags(middleware_config)
    selected = sorted(
        (cls for name, cls in MIDDLEWARE_REGISTRY.items() if flags.get(name, cls.middleware_default)),
        key=lambda cls: cls.middleware_order,
    )
    for cls in reversed(selected):
        app = cls(app, **_section(full_config, cls.middleware_name))
    return app


_load_middleware_modules()
globals().update({cls.__name__: cls for cls in MIDDLEWARE_REGISTRY.values()})

__all__ = [
    "BaseMiddleware",
    "MIDDLEWARE_REGISTRY",
    "client_host",
    "headers_dict",
    "iter_chain",
    "middleware_chain",
    "parse_headers",
    *(cls.__name__ for cls in MIDDLEWARE_REGISTRY.values()),
]
