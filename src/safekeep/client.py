"""SafekeepClient - Main entry point for safekeep."""

from __future__ import annotations

import logging
from typing import Any

from .constants import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_RETRY_STATUS_CODES,
    DEFAULT_TIMEOUT_MS,
)
from .crypto import (
    AsymmetricIdentity,
    SafeEnvelope,
    decrypt_safe,
    derive_key,
    derive_key_from_b64_salt,
    encrypt_safe,
    generate_salt,
    hash_password,
    load_public_key,
    seal_and_sign,
    to_base64,
)
from .http import ApiClient
from .safe import Safe
from .session import SafeSession
from .types import ClientConfig

logger = logging.getLogger("safekeep")


class SafekeepClient:
    """Main client for the safekeep server.

    Passwords and derived keys never leave this process; the server only
    stores salts, verifiers and encrypted envelopes.

    Example:
        ```python
        async with SafekeepClient(base_url="http://localhost:8080") as client:
            session = await client.register("alice@example.com", "pw1")
            await session.add_record("example.com", "alice", "s3cr3t")

            session = await client.open_safe("alice@example.com", "pw1")
            for record_id, record in session.safe.items():
                print(record.site, record.username)
        ```
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = DEFAULT_TIMEOUT_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: int = DEFAULT_RETRY_DELAY_MS,
        retry_on_status_codes: tuple[int, ...] | None = None,
        identity: AsymmetricIdentity | None = None,
    ) -> None:
        """Initialize the safekeep client.

        Args:
            base_url: Base URL for the API server.
            timeout: HTTP request timeout in milliseconds.
            max_retries: Maximum number of retry attempts.
            retry_delay: Initial retry delay in milliseconds.
            retry_on_status_codes: HTTP status codes that trigger retries.
                Default: (408, 429, 500, 502, 503, 504)
            identity: RSA identity used to sign secure data. Generated on
                first use when omitted.
        """
        self._config = ClientConfig(
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
            retry_on_status_codes=retry_on_status_codes or DEFAULT_RETRY_STATUS_CODES,
        )
        self._api_client = ApiClient(self._config)
        self._identity = identity
        self._identity_registered = False

    async def __aenter__(self) -> SafekeepClient:
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the client and release all resources."""
        await self._api_client.close()

    async def register(self, account_id: str, password: str) -> SafeSession:
        """Create an account holding an empty safe.

        Generates the account salt, computes the password verifier and
        uploads an encrypted empty safe.

        Args:
            account_id: The account identifier (email address).
            password: The user's password.

        Returns:
            A session for the new, empty safe.

        Raises:
            DuplicateAccountError: If the account already exists.
        """
        salt = generate_salt()
        key = derive_key(password, salt)
        safe = Safe()
        envelope = encrypt_safe(key, safe)

        await self._api_client.register_account(
            account_id,
            hash_password(password),
            to_base64(salt),
            envelope.to_wire(),
        )
        logger.info("Registered account %s", account_id)
        return SafeSession(
            account_id=account_id,
            safe=safe,
            version=0,
            _key=key,
            _api_client=self._api_client,
        )

    async def open_safe(self, account_id: str, password: str) -> SafeSession:
        """Fetch, re-derive the key for, and decrypt an account's safe.

        Args:
            account_id: The account identifier.
            password: The user's password.

        Returns:
            A session for the decrypted safe.

        Raises:
            AccountNotFoundError: If the account does not exist.
            AuthenticationError: If the password is wrong or the envelope
                was tampered with.
            DecodeError: If the decrypted safe is malformed.
        """
        data = await self._api_client.get_safe(account_id)
        key = derive_key_from_b64_salt(password, data["saltBase64"])
        envelope_body = data.get("safeEnvelope") or {}
        envelope = SafeEnvelope.from_wire(
            envelope_body.get("ciphertext", ""), envelope_body.get("nonce", "")
        )
        safe = decrypt_safe(key, envelope)
        logger.debug("Opened safe for %s (%d record(s))", account_id, len(safe))
        return SafeSession(
            account_id=account_id,
            safe=safe,
            version=data.get("version"),
            _key=key,
            _api_client=self._api_client,
        )

    async def _ensure_identity_registered(self) -> AsymmetricIdentity:
        """Create the client identity if needed and register it with the server."""
        if self._identity is None:
            self._identity = AsymmetricIdentity.generate()
        if not self._identity_registered:
            await self._api_client.register_public_key(self._identity.export_public())
            self._identity_registered = True
        return self._identity

    async def send_secure_data(self, message: str) -> str:
        """Send a small message over the signed RSA-OAEP channel.

        Registers this client's public key, fetches the server key, encrypts
        the message to it and signs the ciphertext.

        Args:
            message: UTF-8 text, at most 190 bytes for 2048-bit server keys.

        Returns:
            The message as decrypted by the server.

        Raises:
            InvalidInputError: If the message is too large.
            AuthenticationError: If the server could not open the payload.
        """
        identity = await self._ensure_identity_registered()
        server_key = load_public_key(await self._api_client.get_public_key())
        payload = seal_and_sign(server_key, identity.private_key, message)
        return await self._api_client.send_secure_data(payload.to_wire())
