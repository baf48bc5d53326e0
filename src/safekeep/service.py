"""SafeService - server-side operations behind the safekeep wire contracts.

The HTTP routing layer is not part of this package. A web framework maps
each endpoint to one method here and each ``SafekeepError`` subclass to a
status code (see ``ERROR_STATUS_CODES``).

Security Note:
    The service only ever sees ciphertext, nonces, salts and verifiers for
    safes. Decrypted secure-data content is returned to the caller but never
    logged.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from .crypto import (
    AsymmetricIdentity,
    SafeEnvelope,
    SignedCiphertext,
    from_base64,
    open_and_verify,
    to_base64,
)
from .crypto.codec import envelope_fields
from .crypto.constants import SALT_SIZE
from .errors import (
    AccountNotFoundError,
    AuthenticationError,
    ConflictError,
    DecodeError,
    DuplicateAccountError,
    InvalidInputError,
    PreconditionFailedError,
    SafekeepError,
    StorageUnavailableError,
)
from .store import JsonFileSafeStore, SafeStore
from .types import Account, ServiceConfig

logger = logging.getLogger("safekeep")

# Status codes a routing layer should use for each error kind.
ERROR_STATUS_CODES: dict[type[SafekeepError], int] = {
    InvalidInputError: 400,
    DecodeError: 400,
    AuthenticationError: 401,
    AccountNotFoundError: 404,
    DuplicateAccountError: 409,
    ConflictError: 409,
    PreconditionFailedError: 412,
    StorageUnavailableError: 503,
}


def status_code_for(error: SafekeepError) -> int:
    """Map an error to its HTTP status code.

    Args:
        error: The raised error.

    Returns:
        The status code of the closest mapped base class, or 500.
    """
    for cls in type(error).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


def _require_str(body: dict[str, Any], name: str) -> str:
    value = body.get(name)
    if not isinstance(value, str) or not value:
        raise InvalidInputError(f"Missing required field: {name}")
    return value


class SafeService:
    """Account, safe and secure-data operations.

    Example:
        ```python
        service = SafeService.from_config(ServiceConfig(data_path=Path("data.json")))
        service.public_key()
        service.read_safe("alice@example.com")
        ```
    """

    def __init__(self, store: SafeStore, identity: AsymmetricIdentity) -> None:
        """Initialize the service.

        Args:
            store: Account persistence backend.
            identity: The service's RSA identity for the secure channel.
        """
        self._store = store
        self._identity = identity
        self._write_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ServiceConfig) -> SafeService:
        """Build a service backed by the JSON file store and persisted keys.

        Args:
            config: Service configuration.

        Returns:
            A ready SafeService.
        """
        identity = AsymmetricIdentity.load_or_create(config.key_dir)
        return cls(JsonFileSafeStore(config.data_path), identity)

    @property
    def identity(self) -> AsymmetricIdentity:
        """The service's RSA identity."""
        return self._identity

    # ------------------------------------------------------------------
    # Secure channel
    # ------------------------------------------------------------------

    def public_key(self) -> dict[str, str]:
        """Export the service public key: ``{"publicKey": ...}``."""
        return self._identity.public_key_wire()

    def register_public_key(self, body: dict[str, Any]) -> dict[str, str]:
        """Register the client's public key as the counterpart.

        Args:
            body: ``{"publicKey": base64 DER SPKI}``.

        Raises:
            InvalidInputError: If the key is missing or malformed.
        """
        self._identity.register_counterpart_public_key(_require_str(body, "publicKey"))
        logger.info("Client public key registered")
        return {"message": "Public key registered."}

    def receive_secure_data(self, body: dict[str, Any]) -> dict[str, str]:
        """Verify and decrypt a secure payload from the registered client.

        Authentication and decryption failures are reported with one generic
        message so callers cannot tell which check failed.

        Args:
            body: ``{"encryptedData": b64, "signature": b64}``.

        Returns:
            ``{"message", "decryptedData"}``.

        Raises:
            InvalidInputError: If a field is missing or malformed.
            CounterpartKeyMissingError: If no client key is registered.
            AuthenticationError: If the payload cannot be opened.
        """
        payload = SignedCiphertext.from_wire(body)
        try:
            message = open_and_verify(self._identity, payload)
        except (AuthenticationError, DecodeError) as e:
            logger.warning("Rejected secure payload: %s", type(e).__name__)
            logger.debug("Secure payload rejection detail: %s", e)
            raise AuthenticationError("could not open secure data") from e
        return {"message": "Secure data received.", "decryptedData": message}

    # ------------------------------------------------------------------
    # Accounts and safes
    # ------------------------------------------------------------------

    def create_account(self, body: dict[str, Any]) -> dict[str, str]:
        """Create an account with its initial safe envelope.

        Args:
            body: ``{"accountId", "passwordVerifier", "saltBase64",
                "safeEnvelope": {"ciphertext", "nonce"}}``.

        Raises:
            InvalidInputError: If a field is missing or the salt is not 16 bytes.
            DuplicateAccountError: If the account already exists.
            StorageUnavailableError: If the store fails.
        """
        account_id = _require_str(body, "accountId")
        verifier = _require_str(body, "passwordVerifier")
        salt = from_base64(_require_str(body, "saltBase64"), field="saltBase64")
        if len(salt) != SALT_SIZE:
            raise InvalidInputError(f"Invalid salt length: {len(salt)}, expected {SALT_SIZE}")

        envelope_body = body.get("safeEnvelope")
        if not isinstance(envelope_body, dict):
            raise InvalidInputError("Missing required field: safeEnvelope")
        envelope = SafeEnvelope.from_wire(
            envelope_body.get("ciphertext", ""), envelope_body.get("nonce", "")
        )
        if envelope is None:
            raise InvalidInputError("Missing required field: safeEnvelope")

        with self._write_lock:
            if self._store.exists(account_id):
                raise DuplicateAccountError(f"Account {account_id} is already registered")
            self._store.put(
                account_id,
                Account(
                    account_id=account_id,
                    password_verifier=verifier,
                    salt=salt,
                    envelope=envelope,
                ),
            )
        logger.info("Account created: %s", account_id)
        return {"message": "Registration successful."}

    def read_safe(self, account_id: str) -> dict[str, Any]:
        """Return the salt and current envelope for an account.

        Args:
            account_id: The account identifier.

        Returns:
            ``{"accountId", "saltBase64", "safeEnvelope": {"ciphertext", "nonce"},
            "version"}``. Envelope fields are empty strings when no safe exists.

        Raises:
            InvalidInputError: If ``account_id`` is empty.
            AccountNotFoundError: If the account does not exist.
            StorageUnavailableError: If the store fails.
        """
        if not account_id:
            raise InvalidInputError("Missing required field: accountId")
        account = self._store.get(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return {
            "accountId": account.account_id,
            "saltBase64": to_base64(account.salt),
            "safeEnvelope": envelope_fields(account.envelope),
            "version": account.version,
        }

    def write_safe(self, body: dict[str, Any]) -> dict[str, Any]:
        """Replace an account's safe envelope.

        The envelope is always replaced as a whole. When ``expectedVersion``
        is given, the write only succeeds if the stored version still matches.

        Args:
            body: ``{"accountId", "ciphertext", "nonce", "expectedVersion"?}``.

        Returns:
            ``{"message", "version"}`` with the new version.

        Raises:
            InvalidInputError: If a field is missing or malformed.
            AccountNotFoundError: If the account does not exist.
            ConflictError: If ``expectedVersion`` is stale.
            StorageUnavailableError: If the store fails.
        """
        account_id = _require_str(body, "accountId")
        envelope = SafeEnvelope(
            ciphertext=from_base64(_require_str(body, "ciphertext"), field="ciphertext"),
            nonce=from_base64(_require_str(body, "nonce"), field="nonce"),
        )
        expected_version = body.get("expectedVersion")
        if expected_version is not None and (
            isinstance(expected_version, bool) or not isinstance(expected_version, int)
        ):
            raise InvalidInputError("expectedVersion must be an integer")

        with self._write_lock:
            account = self._store.get(account_id)
            if account is None:
                raise AccountNotFoundError(f"Account {account_id} not found")
            if expected_version is not None and expected_version != account.version:
                raise ConflictError(expected_version, account.version)
            updated = account.with_envelope(envelope)
            self._store.put(account_id, updated)

        logger.debug("Safe updated: %s (version %d)", account_id, updated.version)
        return {"message": "Safe updated.", "version": updated.version}
