"""Persistence of per-flow transaction metadata between ``authenticate`` calls.

A flow spans several independent calls (one per form submission), so the
interaction handle and PKCE verifier created on the first call must be
found again on the next. The orchestrator reads and writes them only
through the :class:`TransactionStore` interface.

Two implementations are provided:

- :class:`FileTransactionStore` -- one JSON file per session under
  ``~/.local/share/idxauth/transactions/<session>.json`` (XDG) or the
  platform-equivalent directory, written atomically with ``0o600``
  permissions because it holds the code verifier.
- :class:`MemoryTransactionStore` -- keeps the metadata on the instance;
  suitable for a single process serving one flow per store object.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from idxauth.config import atomic_write, get_data_dir
from idxauth.models import TransactionMeta


class TransactionStore(ABC):
    """Read/write the metadata of a single in-progress flow."""

    @abstractmethod
    def load(self) -> Optional[TransactionMeta]:
        """Return the persisted metadata, or ``None`` if absent or unreadable."""
        ...

    @abstractmethod
    def save(self, meta: TransactionMeta) -> None:
        """Persist *meta*, replacing any previous transaction."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Forget the persisted transaction. A no-op when nothing is stored."""
        ...

    def exists(self) -> bool:
        """Whether a usable transaction is persisted."""
        return self.load() is not None


class MemoryTransactionStore(TransactionStore):
    """Hold the transaction metadata in memory on this instance.

    Example::

        store = MemoryTransactionStore()
        store.save(meta)
        assert store.load() == meta
    """

    def __init__(self, meta: Optional[TransactionMeta] = None) -> None:
        self._meta = meta

    def load(self) -> Optional[TransactionMeta]:
        return self._meta

    def save(self, meta: TransactionMeta) -> None:
        self._meta = meta

    def clear(self) -> None:
        self._meta = None


def _transactions_dir() -> Path:
    path = get_data_dir() / "transactions"
    path.mkdir(parents=True, exist_ok=True)
    return path


class FileTransactionStore(TransactionStore):
    """Persist one session's transaction as a JSON file.

    Args:
        session_name: Identifier used to derive the file name. Callers
            typically use their web session id.
        directory: Override the storage directory (defaults to
            ``<data dir>/transactions``).
    """

    def __init__(self, session_name: str, directory: Optional[Path] = None) -> None:
        self._session_name = session_name
        base = directory if directory is not None else _transactions_dir()
        self._path = base / f"{session_name}.json"

    @property
    def path(self) -> Path:
        """The filesystem path to this session's transaction file."""
        return self._path

    def save(self, meta: TransactionMeta) -> None:
        """Persist *meta* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        text = json.dumps(meta.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self._path, text, mode=0o600)

    def load(self) -> Optional[TransactionMeta]:
        """Load the transaction from disk.

        Returns:
            The :class:`TransactionMeta`, or ``None`` if the file does not
            exist or cannot be parsed.
        """
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return TransactionMeta.model_validate(data)
        except (json.JSONDecodeError, ValidationError, ValueError, OSError):
            return None

    def clear(self) -> None:
        if self._path.is_file():
            self._path.unlink()
