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

"""genro-pamauth - HTTP Basic authentication for ASGI apps against Linux PAM.

Main components:
    PamAuthMiddleware: The authentication gate (Basic scheme, pluggable backend)
    GateConfig: Validated realm/service pair
    ServerLifespan: Drives gate startup/shutdown from the ASGI lifespan protocol

Backends:
    PamBackend: Linux PAM through python-pam
    StaticBackend: In-memory users for development and tests

Middleware:
    ErrorMiddleware: Exception handling and error responses
    LoggingMiddleware: Access log with credentials masked

Usage:
    from genro_pamauth import PamAuthMiddleware, ServerLifespan

    gate = PamAuthMiddleware(app, realm="Tatooine", service="login")
    asgi_app = ServerLifespan(gate)   # run with any ASGI server
"""

__version__ = "0.1.0"

from .authentication import (
    BACKEND_REGISTRY,
    AuthBackend,
    Authenticated,
    PamBackend,
    Rejected,
    StaticBackend,
    UserIdentity,
)
from .config import GateConfig, load_gate_config, load_options
from .credentials import CredentialPair, RejectReason, decode_credentials, extract_token
from .exceptions import (
    BackendError,
    BackendUnavailable,
    ConfigError,
    HTTPException,
    HTTPServiceUnavailable,
    HTTPUnauthorized,
)
from .lifespan import ServerLifespan
from .middleware import BaseMiddleware, middleware_chain
from .middleware.authentication import GateState, PamAuthMiddleware
from .middleware.errors import ErrorMiddleware
from .middleware.logging import LoggingMiddleware
from .types import ASGIApp, Message, Receive, Scope, Send

__all__ = [
    # Gate
    "PamAuthMiddleware",
    "GateState",
    "GateConfig",
    "load_gate_config",
    "load_options",
    "ServerLifespan",
    # Credentials
    "CredentialPair",
    "RejectReason",
    "decode_credentials",
    "extract_token",
    # Backends
    "AuthBackend",
    "Authenticated",
    "Rejected",
    "UserIdentity",
    "PamBackend",
    "StaticBackend",
    "BACKEND_REGISTRY",
    # Middleware
    "BaseMiddleware",
    "ErrorMiddleware",
    "LoggingMiddleware",
    "middleware_chain",
    # Exceptions
    "ConfigError",
    "BackendError",
    "BackendUnavailable",
    "HTTPException",
    "HTTPServiceUnavailable",
    "HTTPUnauthorized",
    # ASGI types
    "ASGIApp",
    "Message",
    "Receive",
    "Scope",
    "Send",
]
