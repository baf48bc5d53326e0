"""SafeSession - an opened safe bound to its derived key."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .crypto import encrypt_safe
from .safe import CredentialRecord, Safe

if TYPE_CHECKING:
    from .http import ApiClient

logger = logging.getLogger("safekeep")


@dataclass
class SafeSession:
    """An unlocked safe for one account.

    The derived key lives only in this object. Every mutation re-encrypts
    the whole safe with a fresh nonce and replaces the stored envelope.

    Attributes:
        account_id: The account identifier.
        safe: The decrypted safe.
        version: Stored version this session last read or wrote.
    """

    account_id: str
    safe: Safe
    version: int | None
    _key: bytes = field(repr=False)
    _api_client: ApiClient = field(repr=False)

    async def save(self, *, check_version: bool = False) -> None:
        """Encrypt the current safe and replace the stored envelope.

        Args:
            check_version: Reject the write with ``ConflictError`` if the
                stored safe changed since this session last saw it.
        """
        await self._store(self.safe, check_version=check_version)

    async def _store(self, safe: Safe, *, check_version: bool = False) -> None:
        envelope = encrypt_safe(self._key, safe)
        new_version = await self._api_client.update_safe(
            self.account_id,
            envelope.to_wire(),
            expected_version=self.version if check_version else None,
        )
        if new_version is not None:
            self.version = new_version
        logger.debug("Safe saved for %s (%d record(s))", self.account_id, len(safe))

    async def add_record(
        self,
        site: str,
        username: str,
        secret: str,
        note: str = "",
        *,
        check_version: bool = False,
    ) -> str:
        """Add a credential and save.

        The session's safe only changes once the save has succeeded.

        Returns:
            The id of the new record.
        """
        updated = self.safe.copy()
        record_id = updated.add(
            CredentialRecord(site=site, username=username, secret=secret, note=note)
        )
        await self._store(updated, check_version=check_version)
        self.safe = updated
        return record_id

    async def update_record(
        self, record_id: str, *, check_version: bool = False, **changes: str
    ) -> CredentialRecord:
        """Change fields of a credential and save.

        The session's safe only changes once the save has succeeded.

        Raises:
            KeyError: If the record does not exist.
        """
        updated = self.safe.copy()
        record = updated.update(record_id, **changes)
        await self._store(updated, check_version=check_version)
        self.safe = updated
        return record

    async def remove_record(self, record_id: str, *, check_version: bool = False) -> None:
        """Delete a credential and save.

        The session's safe only changes once the save has succeeded.

        Raises:
            KeyError: If the record does not exist.
        """
        updated = self.safe.copy()
        updated.remove(record_id)
        await self._store(updated, check_version=check_version)
        self.safe = updated
