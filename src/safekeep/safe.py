"""Plaintext safe model for safekeep.

A safe maps record ids to credential records. It only ever exists in clear
inside the client process; it is serialized to JSON and handed to
``crypto.codec`` before anything leaves the process.
"""

from __future__ import annotations

import json
import time
from collections.abc import Iterator
from dataclasses import asdict, dataclass, replace
from typing import Any

from .errors import DecodeError

_RECORD_FIELDS = ("site", "username", "secret", "note")


@dataclass
class CredentialRecord:
    """A single stored credential.

    Attributes:
        site: Website or service the credential belongs to.
        username: Login name or email address.
        secret: The password or other secret.
        note: Free-form note.
    """

    site: str
    username: str
    secret: str
    note: str = ""

    def __repr__(self) -> str:
        return (
            f"CredentialRecord(site={self.site!r}, username={self.username!r}, "
            f"secret='********', note={self.note!r})"
        )

    @classmethod
    def _from_dict(cls, record_id: str, data: Any) -> CredentialRecord:
        if not isinstance(data, dict):
            raise DecodeError(f"Record {record_id!r} is not an object")
        values = {}
        for name in _RECORD_FIELDS:
            value = data.get(name, "" if name == "note" else None)
            if not isinstance(value, str):
                raise DecodeError(f"Record {record_id!r} has no valid {name!r} field")
            values[name] = value
        return cls(**values)


class Safe:
    """Mapping of record id to CredentialRecord.

    Record ids are millisecond timestamps, bumped until they are unique in
    this safe. Insertion order carries no meaning.
    """

    def __init__(self, records: dict[str, CredentialRecord] | None = None) -> None:
        self._records: dict[str, CredentialRecord] = dict(records or {})

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __getitem__(self, record_id: str) -> CredentialRecord:
        return self._records[record_id]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Safe):
            return NotImplemented
        return self._records == other._records

    def __repr__(self) -> str:
        return f"Safe({len(self._records)} record(s))"

    def items(self) -> list[tuple[str, CredentialRecord]]:
        """Return (record_id, record) pairs."""
        return list(self._records.items())

    def copy(self) -> Safe:
        """Return an independent copy of this safe."""
        return Safe({record_id: replace(record) for record_id, record in self._records.items()})

    def _next_id(self) -> str:
        candidate = time.time_ns() // 1_000_000
        while str(candidate) in self._records:
            candidate += 1
        return str(candidate)

    def add(self, record: CredentialRecord) -> str:
        """Add a record under a newly generated id.

        Args:
            record: The record to add.

        Returns:
            The generated record id.
        """
        record_id = self._next_id()
        self._records[record_id] = record
        return record_id

    def update(self, record_id: str, **changes: str) -> CredentialRecord:
        """Update fields of an existing record.

        Args:
            record_id: Id of the record to update.
            **changes: New values for ``site``, ``username``, ``secret`` or ``note``.

        Returns:
            The updated record.

        Raises:
            KeyError: If the record does not exist.
            ValueError: If an unknown field is given.
        """
        record = self._records[record_id]
        unknown = set(changes) - set(_RECORD_FIELDS)
        if unknown:
            raise ValueError(f"Unknown record field(s): {', '.join(sorted(unknown))}")
        updated = CredentialRecord(**{**asdict(record), **changes})
        self._records[record_id] = updated
        return updated

    def remove(self, record_id: str) -> CredentialRecord:
        """Remove a record.

        Raises:
            KeyError: If the record does not exist.
        """
        return self._records.pop(record_id)

    def to_dict(self) -> dict[str, dict[str, str]]:
        """Return the safe as plain nested dicts."""
        return {record_id: asdict(record) for record_id, record in self._records.items()}

    def to_bytes(self) -> bytes:
        """Serialize the safe to UTF-8 JSON."""
        return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> Safe:
        """Parse a decrypted safe.

        An empty JSON array is accepted as the empty safe.

        Raises:
            DecodeError: If the data is not UTF-8 JSON of the expected shape.
        """
        try:
            parsed = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"Failed to parse decrypted safe: {e}") from e

        if parsed == []:
            return cls()
        if not isinstance(parsed, dict):
            raise DecodeError("Decrypted safe is not a JSON object")
        return cls(
            {
                str(record_id): CredentialRecord._from_dict(str(record_id), value)
                for record_id, value in parsed.items()
            }
        )
