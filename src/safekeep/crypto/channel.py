"""Signed RSA-OAEP secure channel for safekeep.

The sender encrypts a small message to the receiver's public key with
RSA-OAEP (SHA-256) and signs the resulting ciphertext bytes with its own
private key (PKCS#1 v1.5, SHA-256). The receiver checks the signature under
the registered counterpart key BEFORE it decrypts anything.

This channel carries small control payloads only. The plaintext ceiling is
``key_bytes - 66`` (190 bytes for 2048-bit keys); the safe itself never
travels this way.

Security Note:
    Never log decrypted messages. Only log the fact of an open and its size.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..errors import (
    CounterpartKeyMissingError,
    DecodeError,
    DecryptionError,
    InvalidInputError,
    SignatureVerificationError,
)
from .constants import OAEP_SHA256_OVERHEAD
from .identity import AsymmetricIdentity
from .utils import from_base64, to_base64

logger = logging.getLogger("safekeep")

_OAEP = padding.OAEP(
    mgf=padding.MGF1(algorithm=hashes.SHA256()),
    algorithm=hashes.SHA256(),
    label=None,
)


@dataclass(frozen=True)
class SignedCiphertext:
    """The unit exchanged over the secure channel.

    Attributes:
        encrypted_data: RSA-OAEP ciphertext.
        signature: Sender's signature over exactly ``encrypted_data``.
    """

    encrypted_data: bytes
    signature: bytes

    def to_wire(self) -> dict[str, str]:
        """Encode for transport as ``{"encryptedData", "signature"}``."""
        return {
            "encryptedData": to_base64(self.encrypted_data),
            "signature": to_base64(self.signature),
        }

    @classmethod
    def from_wire(cls, body: dict[str, Any]) -> SignedCiphertext:
        """Decode a secure payload received over the wire.

        Raises:
            InvalidInputError: If a field is missing, empty, or not base64.
        """
        encrypted_b64 = body.get("encryptedData")
        signature_b64 = body.get("signature")
        if not encrypted_b64 or not signature_b64:
            raise InvalidInputError("Both encryptedData and signature are required")
        return cls(
            encrypted_data=from_base64(encrypted_b64, field="encryptedData"),
            signature=from_base64(signature_b64, field="signature"),
        )


def max_message_size(public_key: rsa.RSAPublicKey) -> int:
    """Largest plaintext, in bytes, that fits one OAEP-SHA256 block.

    Args:
        public_key: The recipient's public key.

    Returns:
        The ceiling in bytes.
    """
    return public_key.key_size // 8 - OAEP_SHA256_OVERHEAD


def seal_and_sign(
    recipient_public_key: rsa.RSAPublicKey,
    sender_private_key: rsa.RSAPrivateKey,
    message: str,
) -> SignedCiphertext:
    """Encrypt a message to the recipient and sign the ciphertext.

    Args:
        recipient_public_key: The receiving side's public key.
        sender_private_key: The sending side's private key.
        message: UTF-8 text to send.

    Returns:
        The signed ciphertext.

    Raises:
        InvalidInputError: If the message exceeds the OAEP ceiling.
    """
    plaintext = message.encode("utf-8")
    ceiling = max_message_size(recipient_public_key)
    if len(plaintext) > ceiling:
        raise InvalidInputError(
            f"Message too large for secure channel: {len(plaintext)} bytes, maximum {ceiling}"
        )

    encrypted = recipient_public_key.encrypt(plaintext, _OAEP)
    signature = sender_private_key.sign(encrypted, padding.PKCS1v15(), hashes.SHA256())
    return SignedCiphertext(encrypted_data=encrypted, signature=signature)


def verify_signature(public_key: rsa.RSAPublicKey, payload: SignedCiphertext) -> None:
    """Verify the sender's signature over the ciphertext bytes.

    Args:
        public_key: The sender's registered public key.
        payload: The signed ciphertext.

    Raises:
        SignatureVerificationError: If the signature does not verify.
    """
    try:
        public_key.verify(payload.signature, payload.encrypted_data, padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature as e:
        raise SignatureVerificationError(
            "SIGNATURE VERIFICATION FAILED - Data may be tampered!"
        ) from e


def open_and_verify(identity: AsymmetricIdentity, payload: SignedCiphertext) -> str:
    """Authenticate and decrypt a secure payload.

    CRITICAL: Signature is verified BEFORE decryption.

    Args:
        identity: This side's identity with a registered counterpart key.
        payload: The signed ciphertext from the counterpart.

    Returns:
        The decrypted UTF-8 message.

    Raises:
        CounterpartKeyMissingError: If no counterpart key is registered.
        SignatureVerificationError: If the signature does not verify.
        DecryptionError: If OAEP decryption fails.
        DecodeError: If the plaintext is not valid UTF-8.
    """
    # Step 1: Require a counterpart key
    counterpart = identity.counterpart_public_key
    if counterpart is None:
        raise CounterpartKeyMissingError("No counterpart key registered")

    # Step 2: Verify signature FIRST (security-critical)
    verify_signature(counterpart, payload)

    # Step 3: RSA-OAEP decryption
    try:
        plaintext = identity.private_key.decrypt(payload.encrypted_data, _OAEP)
    except ValueError as e:
        raise DecryptionError(f"Decryption failed: {e}") from e

    # Step 4: Text decoding
    try:
        message = plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError("Decrypted secure data is not valid UTF-8") from e

    logger.info("Secure payload opened (%d bytes)", len(plaintext))
    return message
