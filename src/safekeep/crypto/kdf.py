"""Password-based key derivation for safekeep.

The derived key is never stored. It is recomputed from ``(password, salt)``
whenever the safe has to be opened, so derivation must be deterministic.

Security Note:
    Never log passwords or derived keys.
"""

from __future__ import annotations

import os

from argon2 import PasswordHasher
from argon2.low_level import Type
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..errors import InvalidInputError
from .constants import (
    AES_KEY_SIZE,
    ARGON2_HASH_LEN,
    ARGON2_MEMORY_COST,
    ARGON2_PARALLELISM,
    ARGON2_SALT_LEN,
    ARGON2_TIME_COST,
    KDF_ITERATIONS,
    KDF_MIN_ITERATIONS,
    SALT_SIZE,
)
from .utils import from_base64

_password_hasher = PasswordHasher(
    time_cost=ARGON2_TIME_COST,
    memory_cost=ARGON2_MEMORY_COST,
    parallelism=ARGON2_PARALLELISM,
    hash_len=ARGON2_HASH_LEN,
    salt_len=ARGON2_SALT_LEN,
    type=Type.ID,
)


def generate_salt() -> bytes:
    """Generate a fresh account salt.

    Each account gets its own salt at creation time. A salt must never be
    shared between accounts.

    Returns:
        16 random bytes from the OS CSPRNG.
    """
    return os.urandom(SALT_SIZE)


def derive_key(password: str, salt: bytes, *, iterations: int = KDF_ITERATIONS) -> bytes:
    """Derive the AES-256 safe key from a password using PBKDF2-HMAC-SHA256.

    Args:
        password: The user's password.
        salt: The account's 16-byte salt.
        iterations: PBKDF2 round count (at least 100,000).

    Returns:
        A 32-byte symmetric key.

    Raises:
        InvalidInputError: If the password is not a string, the salt has the
            wrong type or length, or the iteration count is too low.
    """
    if not isinstance(password, str):
        raise InvalidInputError("Password must be a string")
    if not isinstance(salt, (bytes, bytearray)):
        raise InvalidInputError("Salt must be bytes")
    if len(salt) != SALT_SIZE:
        raise InvalidInputError(f"Invalid salt length: {len(salt)}, expected {SALT_SIZE}")
    if iterations < KDF_MIN_ITERATIONS:
        raise InvalidInputError(
            f"Iteration count {iterations} is below the minimum of {KDF_MIN_ITERATIONS}"
        )

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=AES_KEY_SIZE,
        salt=bytes(salt),
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def derive_key_from_b64_salt(password: str, salt_b64: str) -> bytes:
    """Derive the safe key using a base64-encoded salt as read from the server.

    Args:
        password: The user's password.
        salt_b64: Base64-encoded 16-byte salt.

    Returns:
        A 32-byte symmetric key.
    """
    return derive_key(password, from_base64(salt_b64, field="saltBase64"))


def hash_password(password: str) -> str:
    """Compute the opaque password verifier stored with the account.

    Uses Argon2id with its own random salt, independent of the safe salt.

    Args:
        password: The user's password.

    Returns:
        The encoded Argon2id hash string.
    """
    if not isinstance(password, str):
        raise InvalidInputError("Password must be a string")
    return _password_hasher.hash(password)
