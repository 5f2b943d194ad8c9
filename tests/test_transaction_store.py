"""Tests for transaction persistence."""

from __future__ import annotations

import json
import os
import stat

import pytest

from idxauth.models import TransactionMeta
from idxauth.transaction import FileTransactionStore, MemoryTransactionStore


def _meta(**overrides) -> TransactionMeta:
    values = {
        "issuer": "https://idx.example.com/oauth2/default",
        "client_id": "fake-client-id",
        "redirect_uri": "https://app.example.com/login/callback",
        "state": "fake-state",
        "code_verifier": "fake-code-verifier",
        "scopes": ["openid", "profile"],
        "interaction_handle": "fake-interaction-handle",
    }
    values.update(overrides)
    return TransactionMeta(**values)


@pytest.fixture()
def store(tmp_path) -> FileTransactionStore:
    return FileTransactionStore("session-1", directory=tmp_path)


class TestFileTransactionStore:
    def test_load_returns_none_when_no_file(self, store: FileTransactionStore) -> None:
        assert store.load() is None
        assert store.exists() is False

    def test_save_and_load(self, store: FileTransactionStore) -> None:
        store.save(_meta())
        loaded = store.load()
        assert loaded == _meta()
        assert store.exists() is True

    def test_file_permissions(self, store: FileTransactionStore) -> None:
        store.save(_meta())
        mode = stat.S_IMODE(os.stat(store.path).st_mode)
        assert mode == 0o600

    def test_file_is_json(self, store: FileTransactionStore) -> None:
        store.save(_meta())
        data = json.loads(store.path.read_text())
        assert data["interaction_handle"] == "fake-interaction-handle"
        assert data["code_verifier"] == "fake-code-verifier"

    def test_save_overwrites(self, store: FileTransactionStore) -> None:
        store.save(_meta())
        store.save(_meta(interaction_handle="second"))
        assert store.load().interaction_handle == "second"

    def test_no_temp_files_left(self, store: FileTransactionStore, tmp_path) -> None:
        store.save(_meta())
        assert [p.name for p in tmp_path.iterdir()] == ["session-1.json"]

    def test_corrupt_json(self, store: FileTransactionStore) -> None:
        store.path.write_text("{not json")
        assert store.load() is None
        assert store.exists() is False

    def test_invalid_shape(self, store: FileTransactionStore) -> None:
        store.path.write_text(json.dumps({"issuer": "only"}))
        assert store.load() is None

    def test_clear(self, store: FileTransactionStore) -> None:
        store.save(_meta())
        store.clear()
        assert not store.path.exists()
        store.clear()

    def test_sessions_are_separate(self, tmp_path) -> None:
        first = FileTransactionStore("a", directory=tmp_path)
        second = FileTransactionStore("b", directory=tmp_path)
        first.save(_meta())
        assert second.load() is None

    def test_default_directory(self, isolated_config) -> None:
        store = FileTransactionStore("web-session")
        assert store.path == isolated_config / "data" / "idxauth" / "transactions" / "web-session.json"


class TestMemoryTransactionStore:
    def test_roundtrip(self) -> None:
        store = MemoryTransactionStore()
        assert store.exists() is False
        store.save(_meta())
        assert store.load() == _meta()
        store.clear()
        assert store.load() is None

    def test_instances_do_not_share_state(self) -> None:
        first = MemoryTransactionStore()
        first.save(_meta())
        assert MemoryTransactionStore().exists() is False
