"""Exception hierarchy for idxauth.

All exceptions inherit from :class:`IdxAuthError`. The orchestrator turns
every *protocol-shaped* failure (soft validation messages, recoverable and
fatal rejections) into a normal :class:`~idxauth.models.AuthenticateResult`,
so the only exceptions a caller of
:meth:`~idxauth.orchestrator.IdxOrchestrator.authenticate` ever sees are the
non-protocol ones below: configuration, transport, and token exchange
failures.

Subclass hierarchy::

    IdxAuthError
    +-- ConfigError
    +-- TransportError
    |   +-- InvalidHandleError
    +-- TokenExchangeError
    +-- UnknownRemediationError
    +-- IdxRejection          (caught by the proceeder, never escapes)
"""

from __future__ import annotations

from typing import Any, Optional


class IdxAuthError(Exception):
    """Base exception for all idxauth errors.

    Args:
        message: Human-readable error description.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(IdxAuthError):
    """Raised for configuration problems (missing issuer, client id, invalid JSON)."""


class TransportError(IdxAuthError):
    """Raised on network-level failures, malformed bodies, or server errors.

    Transport errors are not protocol outcomes and are never classified as
    TERMINAL; they propagate to the caller as-is.

    Args:
        message: Human-readable error description.
        status_code: HTTP status code, when a response was received.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidHandleError(TransportError):
    """Raised when the server reports the interaction or state handle as expired or unknown."""


class TokenExchangeError(IdxAuthError):
    """Raised when the interaction code cannot be exchanged for tokens."""


class UnknownRemediationError(IdxAuthError):
    """Raised in strict mode when the server presents an unrecognised remediation.

    Args:
        name: The remediation name the server sent.
    """

    def __init__(self, name: str):
        super().__init__(f"Unrecognised remediation from server: '{name}'")
        self.name = name


class IdxRejection(IdxAuthError):
    """A proceed call rejected by the server with a protocol error body.

    Raised by :class:`~idxauth.collaborators.StateAdvancer` implementations
    and caught by :class:`~idxauth.proceeder.Proceeder`, which hands the raw
    payload to the :class:`~idxauth.classifier.ErrorClassifier`.

    Args:
        raw: The decoded JSON error body as returned by the server.
        status_code: HTTP status code of the rejection, if any.
    """

    def __init__(self, raw: dict[str, Any], status_code: Optional[int] = None):
        super().__init__(f"Proceed rejected by server (status {status_code})")
        self.raw = raw
        self.status_code = status_code
