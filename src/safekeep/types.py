"""Type definitions for safekeep."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    DEFAULT_BASE_URL,
    DEFAULT_DATA_PATH,
    DEFAULT_KEY_DIR,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_RETRY_STATUS_CODES,
    DEFAULT_TIMEOUT_MS,
)
from .crypto import SafeEnvelope, from_base64, to_base64
from .crypto.codec import envelope_fields
from .errors import InvalidInputError


@dataclass
class ClientConfig:
    """Configuration for SafekeepClient.

    Attributes:
        base_url: Base URL for the API server.
        timeout: HTTP request timeout in milliseconds.
        max_retries: Maximum number of retry attempts.
        retry_delay: Initial retry delay in milliseconds.
        retry_on_status_codes: HTTP status codes to retry on.
    """

    base_url: str = DEFAULT_BASE_URL
    timeout: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: int = DEFAULT_RETRY_DELAY_MS
    retry_on_status_codes: tuple[int, ...] = DEFAULT_RETRY_STATUS_CODES


@dataclass
class ServiceConfig:
    """Configuration for SafeService.

    Attributes:
        data_path: JSON file holding account records.
        key_dir: Directory holding the service's RSA keypair.
    """

    data_path: Path = field(default_factory=lambda: Path(DEFAULT_DATA_PATH))
    key_dir: Path = field(default_factory=lambda: Path(DEFAULT_KEY_DIR))


@dataclass(frozen=True)
class Account:
    """A stored account.

    Attributes:
        account_id: Opaque account identifier (an email address).
        password_verifier: Opaque verifier, never the raw password.
        salt: 16-byte key-derivation salt, fixed at creation.
        envelope: Current encrypted safe, or None.
        version: Incremented on every envelope write.
    """

    account_id: str
    password_verifier: str
    salt: bytes
    envelope: SafeEnvelope | None = None
    version: int = 0

    def __repr__(self) -> str:
        return (
            f"Account(account_id={self.account_id!r}, version={self.version}, "
            f"has_safe={self.envelope is not None})"
        )

    def with_envelope(self, envelope: SafeEnvelope) -> Account:
        """Return a copy holding ``envelope`` and the next version number."""
        return replace(self, envelope=envelope, version=self.version + 1)

    def to_record(self) -> dict[str, Any]:
        """Serialize for the persistence layer."""
        return {
            "accountId": self.account_id,
            "passwordVerifier": self.password_verifier,
            "saltBase64": to_base64(self.salt),
            "safeEnvelope": envelope_fields(self.envelope),
            "version": self.version,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Account:
        """Deserialize a persisted account record.

        Raises:
            InvalidInputError: If the record is malformed.
        """
        try:
            envelope = record.get("safeEnvelope") or {}
            return cls(
                account_id=record["accountId"],
                password_verifier=record["passwordVerifier"],
                salt=from_base64(record["saltBase64"], field="saltBase64"),
                envelope=SafeEnvelope.from_wire(
                    envelope.get("ciphertext", ""), envelope.get("nonce", "")
                ),
                version=int(record.get("version", 0)),
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise InvalidInputError(f"Malformed account record: {e}") from e
