"""Capability interfaces the orchestrator is constructed with.

The orchestrator never talks to the network itself. Each protocol call is
delegated to one of four small interfaces defined here:

- :class:`Interactor` -- begins a new interaction.
- :class:`Introspector` -- fetches the current protocol state.
- :class:`StateAdvancer` -- submits a remediation payload.
- :class:`TokenExchanger` -- exchanges the final interaction code for tokens.

:class:`~idxauth.client.HttpIdxClient` implements all four over HTTP. Tests
pass in-memory fakes instead, so no global binding ever needs patching.

See Also:
    :class:`~idxauth.orchestrator.IdxOrchestrator` for how they are driven.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from idxauth.models import ClientConfig, IdxResponse, Interaction, Remediation, TransactionMeta


class Interactor(ABC):
    """Begins a new interaction for a client."""

    @abstractmethod
    async def begin_interaction(self, config: ClientConfig) -> Interaction:
        """Start an interaction and return its handle plus flow metadata.

        Raises:
            TransportError: On network failure.
            ConfigError: If *config* is unusable.
        """
        ...


class Introspector(ABC):
    """Fetches the current protocol state for an interaction handle."""

    @abstractmethod
    async def fetch_state(self, handle: str) -> IdxResponse:
        """Return the current state of the interaction identified by *handle*.

        Raises:
            TransportError: On network failure or malformed body.
            InvalidHandleError: If the handle is expired or unknown.
        """
        ...


class StateAdvancer(ABC):
    """Submits remediation payloads to advance the protocol state."""

    @abstractmethod
    async def advance_state(
        self,
        state_handle: str,
        remediation: Remediation,
        payload: dict[str, Any],
    ) -> IdxResponse:
        """Submit *payload* for *remediation* and return the new state.

        Raises:
            IdxRejection: When the server rejects the submission with a
                protocol error body.
            TransportError: On network failure or server error.
        """
        ...

    async def cancel(self, state_handle: str) -> None:
        """Abandon the flow identified by *state_handle* on the server.

        The default implementation does nothing. Advancers that can cancel
        server-side override it.
        """
        return None


class TokenExchanger(ABC):
    """Exchanges a completed interaction's code for tokens."""

    @abstractmethod
    async def exchange_code(self, interaction_code: str, meta: TransactionMeta) -> dict[str, Any]:
        """Return the token response for *interaction_code*.

        Raises:
            TokenExchangeError: If the exchange fails.
        """
        ...
