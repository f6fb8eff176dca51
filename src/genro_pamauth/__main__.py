# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
genro-pamauth CLI entry point.

Usage:
    genro-pamauth serve --realm Tatooine                 # PAM service "login"
    genro-pamauth serve --realm Tatooine --service sshd --port 9000
    genro-pamauth serve --config config.yaml

Serves a small "who am I" endpoint behind the gate, useful to check a PAM
service configuration from a browser or curl::

    curl -u luke_skywalker http://127.0.0.1:8000/
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from .config import load_options
from .exceptions import ConfigError
from .lifespan import ServerLifespan
from .middleware import middleware_chain
from .responses import send_plain_response
from .types import Receive, Scope, Send


async def whoami_app(scope: Scope, receive: Receive, send: Send) -> None:
    """Answer with the authenticated identity."""
    if scope["type"] != "http":
        return
    auth = scope.get("auth") or {}
    groups = ", ".join(auth.get("groups") or [])
    body = f"Authenticated as {auth.get('identity')} (uid={auth.get('uid')}, groups=[{groups}])\n"
    await send_plain_response(send, 200, body)


SERVER_OPTIONS = frozenset({"host", "port", "config"})


def gate_options(opts: Any) -> dict[str, Any]:
    """Everything in the merged ``pamauth`` options that is not a server setting.

    Backend-specific keys (``users`` for the static backend) reach the gate
    unchanged.
    """
    values = opts.as_dict() if hasattr(opts, "as_dict") else dict(opts)
    options = {k: v for k, v in values.items() if k not in SERVER_OPTIONS and v is not None}
    options.setdefault("backend", "pam")
    return options


def build_app(opts: Any) -> ServerLifespan:
    """Wrap whoami_app with errors, logging and the gate, plus lifespan handling."""
    chain = middleware_chain(
        {"logging": True, "pamauth": True},
        whoami_app,
        {"pamauth_middleware": gate_options(opts)},
    )
    return ServerLifespan(chain)


def cmd_serve(argv: list[str]) -> int:
    """Run the protected endpoint with uvicorn."""
    import uvicorn

    try:
        opts = load_options(argv=argv)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    app = build_app(opts)
    host, port = opts["host"], int(opts["port"])

    print("genro-pamauth starting...", flush=True)
    print(f"Realm: {opts['realm']}  PAM service: {opts['service']}", flush=True)
    print(f"Server: http://{host}:{port}", flush=True)
    print(flush=True)

    try:
        uvicorn.run(app, host=host, port=port, lifespan="on")
    except KeyboardInterrupt:
        print("\nShutdown.")

    return 0


def main() -> int:
    """Main entry point."""
    if "--version" in sys.argv or "-v" in sys.argv:
        from . import __version__

        print(f"genro-pamauth {__version__}")
        return 0

    if "--help" in sys.argv or "-h" in sys.argv or len(sys.argv) == 1:
        print("Usage: genro-pamauth serve [options]")
        print()
        print("Options:")
        print("  --realm REALM     Realm shown in the Basic challenge (required)")
        print("  --service NAME    PAM service (default: login)")
        print("  --backend NAME    Verification backend (default: pam)")
        print("  --config FILE     YAML file with a 'pamauth' section")
        print("  --host HOST       Server host (default: 127.0.0.1)")
        print("  --port PORT       Server port (default: 8000)")
        print("  --version, -v     Show version")
        print("  --help, -h        Show this help")
        return 0

    subcommand = sys.argv[1]
    if subcommand != "serve":
        print(f"Error: unknown subcommand '{subcommand}'", file=sys.stderr)
        return 1

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return cmd_serve(sys.argv[2:])


if __name__ == "__main__":
    sys.exit(main())
