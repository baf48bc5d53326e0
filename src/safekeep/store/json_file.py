"""JSON file account store for safekeep.

All accounts live in one JSON document::

    {"accounts": {"<account_id>": {<Account record>}}}

Every write rewrites the document to a temporary file next to it and
atomically replaces the original.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from ..errors import InvalidInputError, StorageUnavailableError
from ..types import Account
from .base import SafeStore

logger = logging.getLogger("safekeep")


class JsonFileSafeStore(SafeStore):
    """Account store persisted to a single JSON file.

    Attributes:
        path: Location of the JSON document.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: JSON file to use. It is created on first write.
        """
        self.path = Path(path)
        self._lock = threading.RLock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Failed to read account store %s: %s", self.path, e)
            raise StorageUnavailableError(f"Failed to read account store: {e}") from e
        accounts = data.get("accounts") if isinstance(data, dict) else None
        if not isinstance(accounts, dict):
            raise StorageUnavailableError("Account store is corrupt: missing 'accounts' map")
        return accounts

    def _write(self, accounts: dict[str, Any]) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump({"accounts": accounts}, fh, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error("Failed to write account store %s: %s", self.path, e)
            raise StorageUnavailableError(f"Failed to write account store: {e}") from e

    def get(self, account_id: str) -> Account | None:
        with self._lock:
            record = self._read().get(account_id)
        if record is None:
            return None
        try:
            return Account.from_record(record)
        except InvalidInputError as e:
            raise StorageUnavailableError(
                f"Account store is corrupt for {account_id!r}: {e}"
            ) from e

    def put(self, account_id: str, account: Account) -> None:
        with self._lock:
            accounts = self._read()
            accounts[account_id] = account.to_record()
            self._write(accounts)

    def exists(self, account_id: str) -> bool:
        with self._lock:
            return account_id in self._read()
