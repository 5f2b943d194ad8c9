"""Orchestrator -- drive one ``authenticate`` call through the remediation graph.

Each call is a strictly sequential chain of awaited collaborator calls:

1. Load the persisted transaction, or begin a new interaction and persist
   its metadata.
2. Introspect the current state.
3. If the state carries an interaction code, exchange it for tokens and
   finish with SUCCESS.
4. Otherwise resolve a remediation from the caller's params, submit it and
   classify the outcome. An advance to a new state loops back to step 3; a
   soft or recoverable error pauses with PENDING; a fatal rejection ends
   with TERMINAL.
5. When nothing can be resolved, pause with PENDING describing the step
   the caller must complete next.

The orchestrator holds no flow state between calls. Everything that must
survive from one call to the next lives in the
:class:`~idxauth.transaction.TransactionStore`.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx

from idxauth.classifier import ErrorClassifier
from idxauth.client import HttpIdxClient
from idxauth.collaborators import Interactor, Introspector, StateAdvancer, TokenExchanger
from idxauth.exceptions import InvalidHandleError
from idxauth.models import (
    AuthenticateResult,
    ClientConfig,
    IdxMessage,
    IdxResponse,
    IdxStatus,
    Remediation,
    TransactionMeta,
)
from idxauth.next_step import NextStepBuilder
from idxauth.output import get_output
from idxauth.proceeder import Proceeder
from idxauth.remediations import RemediationKind
from idxauth.resolver import RemediationResolver
from idxauth.transaction import MemoryTransactionStore, TransactionStore


class IdxOrchestrator:
    """Run authentication flows against injected collaborators.

    Args:
        config: Client settings passed to the interactor when a new flow
            begins.
        interactor: Begins new interactions.
        introspector: Fetches the current protocol state.
        advancer: Submits remediation payloads.
        exchanger: Exchanges the final interaction code for tokens.
        store: Persists the flow's metadata between calls.
        resolver: Overrides the default :class:`RemediationResolver`
            (which honours ``config.strict_remediations``).
        builder: Overrides the default :class:`NextStepBuilder`.
        classifier: Overrides the default :class:`ErrorClassifier`.

    Example::

        orchestrator = IdxOrchestrator(config, client, client, client, client, store)
        result = await orchestrator.authenticate({"username": "jane"})
        if result.status is IdxStatus.PENDING:
            render(result.next_step)
    """

    def __init__(
        self,
        config: ClientConfig,
        interactor: Interactor,
        introspector: Introspector,
        advancer: StateAdvancer,
        exchanger: TokenExchanger,
        store: TransactionStore,
        resolver: Optional[RemediationResolver] = None,
        builder: Optional[NextStepBuilder] = None,
        classifier: Optional[ErrorClassifier] = None,
    ) -> None:
        self._config = config
        self._interactor = interactor
        self._introspector = introspector
        self._advancer = advancer
        self._exchanger = exchanger
        self._store = store
        self._resolver = resolver or RemediationResolver(strict=config.strict_remediations)
        self._builder = builder or NextStepBuilder()
        self._classifier = classifier or ErrorClassifier()
        self._proceeder = Proceeder(advancer)

    async def authenticate(self, params: Optional[Mapping[str, Any]] = None) -> AuthenticateResult:
        """Advance the flow as far as *params* allow.

        Args:
            params: Caller-supplied values (``username``, ``password``,
                ``verificationCode``, ``phoneNumber``, ``authenticators``,
                ...). Unrecognised keys are ignored.

        Returns:
            SUCCESS with tokens, PENDING with the next step, or TERMINAL.
            Protocol errors never raise.

        Raises:
            TransportError: On network failures or an expired handle. The
                persisted transaction is cleared for an expired handle.
            TokenExchangeError: If the final code exchange fails.
            UnknownRemediationError: In strict mode only.
        """
        params = dict(params or {})
        meta = await self._load_or_begin()
        response = await self._fetch(meta)
        submitted: set[str] = set()

        while True:
            if response.interaction_code:
                return await self._complete(response.interaction_code, meta)

            if not response.remediations:
                return self._terminate(list(response.messages))

            resolution = self._resolver.resolve(response, params, exclude=submitted)
            if resolution is None:
                return self._pending(_presentable(response), list(response.messages))

            submitted.add(resolution.name)
            outcome = await self._proceeder.proceed(response, resolution)
            classification = self._classifier.classify(outcome, response, resolution.remediation)

            if classification.status is IdxStatus.TERMINAL:
                return self._terminate(classification.messages)
            if not classification.advanced:
                assert classification.next_step_source is not None
                return self._pending(classification.next_step_source, classification.messages)

            assert classification.response is not None
            response = classification.response

    async def cancel(self) -> AuthenticateResult:
        """Abandon the current flow and forget its transaction.

        The server-side cancel is attempted only when a transaction exists
        and its handle still introspects.
        """
        meta = self._store.load()
        try:
            if meta is not None:
                state: Optional[IdxResponse] = None
                try:
                    state = await self._introspector.fetch_state(meta.interaction_handle)
                except InvalidHandleError:
                    get_output().debug("Transaction handle already expired; nothing to cancel")
                if state is not None and state.state_handle:
                    await self._advancer.cancel(state.state_handle)
        finally:
            self._store.clear()
        return AuthenticateResult(status=IdxStatus.TERMINAL)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _load_or_begin(self) -> TransactionMeta:
        meta = self._store.load()
        if meta is not None:
            return meta
        get_output().debug(f"Beginning interaction for client {self._config.client_id}")
        interaction = await self._interactor.begin_interaction(self._config)
        self._store.save(interaction.meta)
        return interaction.meta

    async def _fetch(self, meta: TransactionMeta) -> IdxResponse:
        get_output().debug("Introspecting interaction state")
        try:
            response = await self._introspector.fetch_state(meta.interaction_handle)
        except InvalidHandleError:
            get_output().warning("Interaction handle is no longer valid; transaction reset")
            self._store.clear()
            raise
        get_output().debug(f"Remediations offered: {response.remediation_names}")
        return response

    async def _complete(self, interaction_code: str, meta: TransactionMeta) -> AuthenticateResult:
        get_output().debug("Exchanging interaction code for tokens")
        tokens = await self._exchanger.exchange_code(interaction_code, meta)
        self._store.clear()
        get_output().success("Authentication complete")
        return AuthenticateResult(status=IdxStatus.SUCCESS, tokens=tokens)

    def _pending(self, remediation: Remediation, messages: list[IdxMessage]) -> AuthenticateResult:
        return AuthenticateResult(
            status=IdxStatus.PENDING,
            next_step=self._builder.build(remediation),
            messages=messages or None,
        )

    def _terminate(self, messages: list[IdxMessage]) -> AuthenticateResult:
        self._store.clear()
        get_output().info("Authentication flow ended without tokens")
        return AuthenticateResult(status=IdxStatus.TERMINAL, messages=messages or None)


def _presentable(response: IdxResponse) -> Remediation:
    """First remediation to show the caller; ``skip`` only when it is all there is."""
    for remediation in response.remediations:
        if RemediationKind.of(remediation) is not RemediationKind.SKIP:
            return remediation
    return response.remediations[0]


def create_default_orchestrator(
    config: ClientConfig,
    store: Optional[TransactionStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> IdxOrchestrator:
    """Return an orchestrator wired to a single :class:`HttpIdxClient`.

    Args:
        config: Client settings.
        store: Transaction store; a fresh :class:`MemoryTransactionStore`
            when omitted.
        http_client: Optional :class:`httpx.AsyncClient` to send requests
            through.
    """
    client = HttpIdxClient(config, http_client=http_client)
    return IdxOrchestrator(
        config,
        interactor=client,
        introspector=client,
        advancer=client,
        exchanger=client,
        store=store if store is not None else MemoryTransactionStore(),
    )
