"""In-memory store for the currently loaded transaction batch.

The store owns one ordered list of transactions. Uploading a new file
replaces the list wholesale; nothing from earlier batches is kept. All
reads and writes go through a single lock so an upload cannot interleave
with an assignment write-back.
"""

from __future__ import annotations

import threading

from finance_assistant.errors import NotFoundError
from finance_assistant.models import Transaction


class TransactionStore:
    """Holds the current batch and the categories assigned to it."""

    def __init__(self, transactions: list[Transaction] | None = None) -> None:
        self._lock = threading.RLock()
        self._transactions: list[Transaction] = list(transactions or [])

    def __len__(self) -> int:
        with self._lock:
            return len(self._transactions)

    def replace(self, batch: list[Transaction]) -> None:
        """Swap in a new batch, discarding every prior transaction."""
        new_batch = list(batch)
        with self._lock:
            self._transactions = new_batch

    def all(self) -> list[Transaction]:
        """Return the batch in stored order (a copy of the list, same objects)."""
        with self._lock:
            return list(self._transactions)

    def find(self, date: str, description: str) -> Transaction | None:
        """Return the first transaction with this date and description, or None."""
        with self._lock:
            for txn in self._transactions:
                if txn.date == date and txn.description == description:
                    return txn
        return None

    def get(self, date: str, description: str) -> Transaction:
        """Like :meth:`find`, but a miss raises.

        Raises:
            NotFoundError: If no transaction matches.
        """
        txn = self.find(date, description)
        if txn is None:
            raise NotFoundError(f"Transaction not found: {date} - {description}")
        return txn

    def unassigned(self, limit: int | None = None) -> list[Transaction]:
        """Return transactions without an assigned category, in stored order.

        Args:
            limit: Maximum number to return. ``None`` means all.
        """
        with self._lock:
            pending = [t for t in self._transactions if not t.assigned_category]
        if limit is not None:
            pending = pending[: max(limit, 0)]
        return pending

    def assign(self, txn: Transaction, value: str) -> Transaction:
        """Set the assigned category of a transaction taken from this store."""
        with self._lock:
            txn.assigned_category = value
        return txn

    def set_assigned(self, date: str, description: str, value: str) -> Transaction:
        """Look up a transaction and set its assigned category.

        Raises:
            NotFoundError: If no transaction matches.
        """
        with self._lock:
            txn = self.get(date, description)
            return self.assign(txn, value)
