"""Transaction persistence for multi-call authentication flows.

- :class:`TransactionStore` -- the interface the orchestrator depends on.
- :class:`FileTransactionStore` -- atomic JSON file per session.
- :class:`MemoryTransactionStore` -- in-process, per-instance storage.
"""

from idxauth.transaction.store import (
    FileTransactionStore,
    MemoryTransactionStore,
    TransactionStore,
)

__all__ = [
    "TransactionStore",
    "FileTransactionStore",
    "MemoryTransactionStore",
]
