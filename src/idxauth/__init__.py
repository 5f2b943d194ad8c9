"""idxauth -- drive interaction-code authentication flows one step at a time."""

__version__ = "0.1.0"

from idxauth.exceptions import (
    ConfigError,
    IdxAuthError,
    InvalidHandleError,
    TokenExchangeError,
    TransportError,
    UnknownRemediationError,
)
from idxauth.models import AuthenticateResult, ClientConfig, IdxStatus, NextStep
from idxauth.orchestrator import IdxOrchestrator, create_default_orchestrator

__all__ = [
    "__version__",
    "AuthenticateResult",
    "ClientConfig",
    "ConfigError",
    "IdxAuthError",
    "IdxOrchestrator",
    "IdxStatus",
    "InvalidHandleError",
    "NextStep",
    "TokenExchangeError",
    "TransportError",
    "UnknownRemediationError",
    "create_default_orchestrator",
]
