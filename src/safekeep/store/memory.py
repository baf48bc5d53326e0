"""In-memory account store for safekeep."""

from __future__ import annotations

import threading

from ..types import Account
from .base import SafeStore


class MemorySafeStore(SafeStore):
    """Account store backed by a dict. Contents are lost on exit."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._lock = threading.RLock()

    def get(self, account_id: str) -> Account | None:
        with self._lock:
            return self._accounts.get(account_id)

    def put(self, account_id: str, account: Account) -> None:
        with self._lock:
            self._accounts[account_id] = account

    def exists(self, account_id: str) -> bool:
        with self._lock:
            return account_id in self._accounts
