# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Gate configuration for genro-pamauth.

GateConfig holds the two values the gate needs for its whole lifetime:

    realm: label echoed to clients in ``WWW-Authenticate: Basic realm="..."``
    service: PAM service (policy file under /etc/pam.d) used for verification

Both are validated once, in the constructor, and frozen afterwards.

Options are layered with genro-toolbox SmartOptions, later overrides earlier:

    1. Built-in DEFAULTS
    2. ``pamauth`` section of a YAML config file (``--config``)
    3. Environment variables GENRO_PAMAUTH_* and command line arguments
    4. Explicit keyword arguments

Example config.yaml::

    pamauth:
      realm: "Tatooine"
      service: "sshd"
      backend: "pam"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from genro_toolbox import SmartOptions  # type: ignore[import-untyped]

from .exceptions import ConfigError
from .utils import is_blank

__all__ = ["DEFAULTS", "GateConfig", "check_not_blank", "load_gate_config", "load_options"]

DEFAULTS = {
    "service": "login",
    "backend": "pam",
    "host": "127.0.0.1",
    "port": 8000,
}


def _gate_opts_spec(
    realm: str,
    service: str,
    backend: str,
    host: str,
    port: int,
    config: str,
) -> None:
    """Reference function for SmartOptions type extraction (no defaults)."""


def check_not_blank(value: str | None, name: str) -> str:
    """Return value if it is a non-blank string, raise ConfigError otherwise.

    YAML turns unquoted values like ``realm: 123`` into numbers, so the type
    is checked too.
    """
    if value is None:
        raise ConfigError(f"Please provide a non-null '{name}': [{value}].")
    if not isinstance(value, str):
        raise ConfigError(f"Please provide a string '{name}': [{value!r}].")
    if is_blank(value):
        raise ConfigError(f"Please provide a non-blank '{name}': [{value}].")
    return value


class GateConfig:
    """Immutable realm/service pair for one gate.

    Attributes:
        realm: Protection space label, presented verbatim in the challenge.
        service: Backend service identifier (PAM service name).

    Raises:
        ConfigError: If realm or service is None, empty or whitespace-only.
    """

    __slots__ = ("realm", "service")

    def __init__(self, realm: str | None, service: str | None) -> None:
        object.__setattr__(self, "realm", check_not_blank(realm, "realm"))
        object.__setattr__(self, "service", check_not_blank(service, "service"))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"GateConfig is immutable, cannot set '{name}'")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GateConfig):
            return NotImplemented
        return self.realm == other.realm and self.service == other.service

    def __hash__(self) -> int:
        return hash((self.realm, self.service))

    def __repr__(self) -> str:
        return f"GateConfig(realm={self.realm!r}, service={self.service!r})"


def load_options(
    config_file: str | Path | None = None,
    argv: list[str] | None = None,
    **overrides: Any,
) -> SmartOptions:
    """Merge gate options from every source.

    Args:
        config_file: YAML file with a ``pamauth`` section. Optional.
        argv: Command line arguments (``--realm``, ``--service``, ...).
        **overrides: Explicit values, None values are ignored.

    Returns:
        Merged SmartOptions with realm, service, backend, host, port.

    Raises:
        ConfigError: If config_file is given but does not exist.
    """
    env_argv_opts = SmartOptions(_gate_opts_spec, env="GENRO_PAMAUTH", argv=argv or [])
    caller_opts = SmartOptions(dict(overrides), ignore_none=True)

    config_path = config_file or env_argv_opts["config"]
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        file_opts = SmartOptions(str(path))["pamauth"] or SmartOptions({})
    else:
        file_opts = SmartOptions({})

    return SmartOptions(DEFAULTS) + file_opts + env_argv_opts + caller_opts


def load_gate_config(
    config_file: str | Path | None = None,
    argv: list[str] | None = None,
    **overrides: Any,
) -> GateConfig:
    """Load and validate the realm/service pair.

    Example:
        >>> load_gate_config(realm="Tatooine")
        GateConfig(realm='Tatooine', service='login')
    """
    opts = load_options(config_file, argv, **overrides)
    return GateConfig(opts["realm"], opts["service"])
