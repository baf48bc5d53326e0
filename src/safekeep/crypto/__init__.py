"""Cryptographic operations for safekeep."""

from .channel import (
    SignedCiphertext,
    max_message_size,
    open_and_verify,
    seal_and_sign,
    verify_signature,
)
from .codec import SafeEnvelope, decrypt, decrypt_safe, encrypt, encrypt_safe
from .constants import AES_KEY_SIZE, KDF_ITERATIONS, SALT_SIZE
from .identity import AsymmetricIdentity, export_public_key, load_public_key
from .kdf import derive_key, derive_key_from_b64_salt, generate_salt, hash_password
from .utils import from_base64, strip_pem, to_base64, wrap_pem

__all__ = [
    "AES_KEY_SIZE",
    "KDF_ITERATIONS",
    "SALT_SIZE",
    "AsymmetricIdentity",
    "SafeEnvelope",
    "SignedCiphertext",
    "decrypt",
    "decrypt_safe",
    "derive_key",
    "derive_key_from_b64_salt",
    "encrypt",
    "encrypt_safe",
    "export_public_key",
    "from_base64",
    "generate_salt",
    "hash_password",
    "load_public_key",
    "max_message_size",
    "open_and_verify",
    "seal_and_sign",
    "strip_pem",
    "to_base64",
    "verify_signature",
    "wrap_pem",
]
