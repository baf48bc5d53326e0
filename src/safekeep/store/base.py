"""Abstract account store interface for safekeep."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..types import Account


class SafeStore(ABC):
    """Durable account_id to Account map.

    Implementations must give read-your-writes consistency per account and
    report backend failures as ``StorageUnavailableError``.
    """

    @abstractmethod
    def get(self, account_id: str) -> Account | None:
        """Fetch an account.

        Args:
            account_id: The account identifier.

        Returns:
            The account, or None if it does not exist.
        """
        pass  # pragma: no cover

    @abstractmethod
    def put(self, account_id: str, account: Account) -> None:
        """Create or replace an account.

        Args:
            account_id: The account identifier.
            account: The full account record.
        """
        pass  # pragma: no cover

    def exists(self, account_id: str) -> bool:
        """Check whether an account exists.

        Args:
            account_id: The account identifier.

        Returns:
            True if the account exists.
        """
        return self.get(account_id) is not None
