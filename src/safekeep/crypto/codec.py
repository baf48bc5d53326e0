"""Authenticated encryption of the safe for safekeep.

The whole serialized safe is encrypted as one AES-256-GCM message under the
password-derived key. Every call to ``encrypt`` draws a fresh 96-bit nonce;
an envelope is always replaced as a (ciphertext, nonce) pair.

Security Note:
    Never log plaintext, keys or ciphertext values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import AuthenticationError, InvalidInputError
from ..safe import Safe
from .constants import AES_GCM_NONCE_SIZE, AES_GCM_TAG_SIZE, AES_KEY_SIZE
from .utils import from_base64, to_base64


@dataclass(frozen=True)
class SafeEnvelope:
    """One encrypted version of a safe.

    Attributes:
        ciphertext: AES-GCM ciphertext with the 16-byte tag appended.
        nonce: The 12-byte nonce used for this ciphertext only.
    """

    ciphertext: bytes
    nonce: bytes

    def to_wire(self) -> dict[str, str]:
        """Encode the envelope for transport.

        Returns:
            Mapping with base64 ``ciphertext`` and ``nonce``.
        """
        return {"ciphertext": to_base64(self.ciphertext), "nonce": to_base64(self.nonce)}

    @classmethod
    def from_wire(cls, ciphertext_b64: str, nonce_b64: str) -> SafeEnvelope | None:
        """Decode an envelope received over the wire.

        Both fields empty means no safe has been stored yet.

        Args:
            ciphertext_b64: Base64 ciphertext, or empty string.
            nonce_b64: Base64 nonce, or empty string.

        Returns:
            The envelope, or None when both fields are empty.

        Raises:
            InvalidInputError: If only one field is present or either is malformed.
        """
        if not ciphertext_b64 and not nonce_b64:
            return None
        if not ciphertext_b64 or not nonce_b64:
            raise InvalidInputError("Envelope requires both ciphertext and nonce")
        return cls(
            ciphertext=from_base64(ciphertext_b64, field="ciphertext"),
            nonce=from_base64(nonce_b64, field="nonce"),
        )

    @staticmethod
    def empty_wire() -> dict[str, str]:
        """Wire form used when an account has no safe yet."""
        return {"ciphertext": "", "nonce": ""}


def _check_key(key: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)) or len(key) != AES_KEY_SIZE:
        raise InvalidInputError(f"Safe key must be {AES_KEY_SIZE} bytes")


def encrypt(key: bytes, plaintext: bytes) -> SafeEnvelope:
    """Encrypt plaintext under the safe key with a fresh nonce.

    Args:
        key: 32-byte key from ``derive_key``.
        plaintext: Serialized safe.

    Returns:
        A new SafeEnvelope.

    Raises:
        InvalidInputError: If the key has the wrong length.
    """
    _check_key(key)
    nonce = os.urandom(AES_GCM_NONCE_SIZE)
    ciphertext = AESGCM(bytes(key)).encrypt(nonce, plaintext, None)
    return SafeEnvelope(ciphertext=ciphertext, nonce=nonce)


def decrypt(key: bytes, envelope: SafeEnvelope) -> bytes:
    """Decrypt and authenticate a safe envelope.

    Args:
        key: 32-byte key from ``derive_key``.
        envelope: The envelope to open.

    Returns:
        The plaintext bytes.

    Raises:
        InvalidInputError: If the key or nonce has the wrong length.
        AuthenticationError: If the tag does not verify (wrong key,
            corrupted ciphertext, or tampering).
    """
    _check_key(key)
    if len(envelope.nonce) != AES_GCM_NONCE_SIZE:
        raise InvalidInputError(
            f"Invalid nonce size: {len(envelope.nonce)} bytes, expected {AES_GCM_NONCE_SIZE}"
        )
    if len(envelope.ciphertext) < AES_GCM_TAG_SIZE:
        raise AuthenticationError("Could not open safe: ciphertext is truncated")
    try:
        return AESGCM(bytes(key)).decrypt(envelope.nonce, envelope.ciphertext, None)
    except InvalidTag as e:
        raise AuthenticationError("Could not open safe: authentication failed") from e


def encrypt_safe(key: bytes, safe: Safe) -> SafeEnvelope:
    """Serialize and encrypt a safe.

    Args:
        key: 32-byte safe key.
        safe: The plaintext safe.

    Returns:
        A new SafeEnvelope.
    """
    return encrypt(key, safe.to_bytes())


def decrypt_safe(key: bytes, envelope: SafeEnvelope | None) -> Safe:
    """Decrypt an envelope and parse the safe it holds.

    Args:
        key: 32-byte safe key.
        envelope: The stored envelope, or None if no safe exists yet.

    Returns:
        The plaintext safe (empty when ``envelope`` is None).

    Raises:
        AuthenticationError: If the envelope does not authenticate.
        DecodeError: If the plaintext is not a valid safe.
    """
    if envelope is None:
        return Safe()
    return Safe.from_bytes(decrypt(key, envelope))


def envelope_fields(envelope: SafeEnvelope | None) -> dict[str, str]:
    """Wire form of an optional envelope."""
    return envelope.to_wire() if envelope is not None else SafeEnvelope.empty_wire()
