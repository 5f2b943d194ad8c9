"""Shared test fixtures for idxauth.

Provides raw interaction payloads loaded from ``tests/fixtures``, an
in-memory fake of the four protocol collaborators, config isolation, and
output state management. These fixtures are discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from idxauth.collaborators import Interactor, Introspector, StateAdvancer, TokenExchanger
from idxauth.exceptions import IdxRejection
from idxauth.models import (
    ClientConfig,
    IdxResponse,
    Interaction,
    Remediation,
    TransactionMeta,
)
from idxauth.orchestrator import IdxOrchestrator
from idxauth.output import OutputManager, reset_output, set_output
from idxauth.parser import parse_idx_response
from idxauth.transaction import MemoryTransactionStore, TransactionStore


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet, colourless OutputManager and reset it afterwards."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Raw interaction payloads
# ---------------------------------------------------------------------------


def read_fixture(name: str) -> dict[str, Any]:
    with open(FIXTURES_DIR / f"{name}.json") as f:
        return json.load(f)


@pytest.fixture
def load_idx() -> Callable[[str], dict[str, Any]]:
    """Return a loader for raw payloads stored as ``tests/fixtures/<name>.json``."""
    return read_fixture


@pytest.fixture
def parse_idx() -> Callable[[str], IdxResponse]:
    """Return a loader that parses a stored payload into an IdxResponse."""
    return lambda name: parse_idx_response(read_fixture(name))


# ---------------------------------------------------------------------------
# Client config
# ---------------------------------------------------------------------------


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(
        issuer="https://idx.example.com/oauth2/default",
        client_id="fake-client-id",
        redirect_uri="https://app.example.com/login/callback",
    )


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeIdx(Interactor, Introspector, StateAdvancer, TokenExchanger):
    """In-memory stand-in for the interaction server.

    ``state`` is the raw payload returned by introspection. Replies to
    proceed calls are scripted per remediation name with :meth:`reply` and
    :meth:`reject`; an accepted reply becomes the new ``state``.
    """

    def __init__(self, state: dict[str, Any], tokens: Optional[dict[str, Any]] = None) -> None:
        self.state = state
        self.tokens = tokens if tokens is not None else {"fakeToken": True}
        self._replies: dict[str, list[tuple[bool, Any]]] = {}
        self.begin_calls: list[ClientConfig] = []
        self.fetch_calls: list[str] = []
        self.proceed_calls: list[tuple[str, dict[str, Any]]] = []
        self.exchange_calls: list[tuple[str, TransactionMeta]] = []
        self.cancel_calls: list[str] = []

    def reply(self, name: str, payload: dict[str, Any]) -> FakeIdx:
        self._replies.setdefault(name, []).append((False, payload))
        return self

    def reject(self, name: str, payload: dict[str, Any]) -> FakeIdx:
        self._replies.setdefault(name, []).append((True, payload))
        return self

    def fail(self, name: str, exc: Exception) -> FakeIdx:
        self._replies.setdefault(name, []).append((True, exc))
        return self

    async def begin_interaction(self, config: ClientConfig) -> Interaction:
        self.begin_calls.append(config)
        meta = TransactionMeta(
            issuer=config.issuer,
            client_id=config.client_id,
            redirect_uri=config.redirect_uri,
            state="fake-state",
            code_verifier="fake-code-verifier",
            scopes=list(config.scopes),
            interaction_handle="fake-interaction-handle",
        )
        return Interaction(handle=meta.interaction_handle, meta=meta)

    async def fetch_state(self, handle: str) -> IdxResponse:
        self.fetch_calls.append(handle)
        return parse_idx_response(self.state)

    async def advance_state(
        self,
        state_handle: str,
        remediation: Remediation,
        payload: dict[str, Any],
    ) -> IdxResponse:
        self.proceed_calls.append((remediation.name, payload))
        rejected, scripted = self._replies[remediation.name].pop(0)
        if isinstance(scripted, Exception):
            raise scripted
        if rejected:
            raise IdxRejection(scripted, status_code=400)
        self.state = scripted
        return parse_idx_response(scripted)

    async def cancel(self, state_handle: str) -> None:
        self.cancel_calls.append(state_handle)

    async def exchange_code(self, interaction_code: str, meta: TransactionMeta) -> dict[str, Any]:
        self.exchange_calls.append((interaction_code, meta))
        return self.tokens


@pytest.fixture
def idx_server() -> Callable[..., FakeIdx]:
    """Return a factory building a :class:`FakeIdx` whose state is a stored payload."""

    def factory(initial: Any, tokens: Optional[dict[str, Any]] = None) -> FakeIdx:
        state = read_fixture(initial) if isinstance(initial, str) else initial
        return FakeIdx(state, tokens=tokens)

    return factory


@pytest.fixture
def make_orchestrator(
    client_config: ClientConfig,
) -> Callable[..., IdxOrchestrator]:
    """Return a factory wiring a :class:`FakeIdx` into an orchestrator."""

    def factory(
        fake: FakeIdx,
        store: Optional[TransactionStore] = None,
        config: Optional[ClientConfig] = None,
    ) -> IdxOrchestrator:
        return IdxOrchestrator(
            config or client_config,
            interactor=fake,
            introspector=fake,
            advancer=fake,
            exchanger=fake,
            store=store if store is not None else MemoryTransactionStore(),
        )

    return factory


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, and clears all IDXAUTH_*
    environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "IDXAUTH_ISSUER",
        "IDXAUTH_CLIENT_ID",
        "IDXAUTH_CLIENT_SECRET",
        "IDXAUTH_REDIRECT_URI",
        "IDXAUTH_SCOPES",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.setattr("idxauth.config._is_xdg_platform", lambda: True)
    return tmp_path
