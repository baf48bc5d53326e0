"""RSA identity and counterpart key registration for safekeep.

One long-lived RSA keypair identifies the receiving side of the secure-data
channel. It is generated once, persisted as two PEM files and reloaded on
restart. Exactly one counterpart public key can be registered at a time;
a later registration replaces the earlier one.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import tempfile
import threading
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ..constants import PRIVATE_KEY_FILENAME, PUBLIC_KEY_FILENAME
from ..errors import InvalidInputError, StorageUnavailableError
from .constants import PEM_PUBLIC_HEADER, RSA_KEY_SIZE, RSA_MIN_KEY_SIZE, RSA_PUBLIC_EXPONENT
from .utils import strip_pem, wrap_pem

logger = logging.getLogger("safekeep")


def _write_atomic(path: Path, data: bytes, mode: int) -> None:
    # mkstemp creates the file readable by the owner only.
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise


def export_public_key(public_key: rsa.RSAPublicKey) -> str:
    """Encode a public key for the wire.

    Args:
        public_key: The RSA public key.

    Returns:
        Base64 DER SubjectPublicKeyInfo with PEM markers stripped.
    """
    pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return strip_pem(pem)


def load_public_key(encoded: str) -> rsa.RSAPublicKey:
    """Parse a public key received over the wire.

    Accepts either the bare base64 DER body or a full PEM block.

    Args:
        encoded: The encoded SubjectPublicKeyInfo.

    Returns:
        The RSA public key.

    Raises:
        InvalidInputError: If the input is malformed, not RSA, or too small.
    """
    if not isinstance(encoded, str) or not encoded.strip():
        raise InvalidInputError("publicKey must be a non-empty string")

    pem = encoded if PEM_PUBLIC_HEADER in encoded else wrap_pem(encoded)
    try:
        # Body must be strict base64.
        base64.b64decode(strip_pem(pem), validate=True)
        key = serialization.load_pem_public_key(pem.encode("ascii"))
    except (binascii.Error, ValueError, UnicodeEncodeError, UnsupportedAlgorithm) as e:
        raise InvalidInputError(f"publicKey is not a valid SPKI public key: {e}") from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise InvalidInputError("publicKey must be an RSA key")
    if key.key_size < RSA_MIN_KEY_SIZE:
        raise InvalidInputError(
            f"RSA key too small: {key.key_size} bits, minimum {RSA_MIN_KEY_SIZE}"
        )
    return key


class AsymmetricIdentity:
    """This side's RSA keypair plus the registered counterpart public key.

    The counterpart slot is guarded by a lock so registrations and reads
    from concurrent request handlers never interleave.

    Example:
        ```python
        identity = AsymmetricIdentity.load_or_create(Path("keys"))
        wire = identity.public_key_wire()
        identity.register_counterpart_public_key(client_public_key_b64)
        ```
    """

    def __init__(self, private_key: rsa.RSAPrivateKey) -> None:
        """Initialize the identity.

        Args:
            private_key: This side's RSA private key.
        """
        self._private_key = private_key
        self._counterpart_key: rsa.RSAPublicKey | None = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"AsymmetricIdentity(key_size={self.key_size}, counterpart={self.has_counterpart})"

    # ------------------------------------------------------------------
    # Construction and persistence
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls, key_size: int = RSA_KEY_SIZE) -> AsymmetricIdentity:
        """Generate a fresh RSA keypair.

        Args:
            key_size: Modulus size in bits (at least 2048).

        Returns:
            A new identity with no counterpart registered.

        Raises:
            InvalidInputError: If ``key_size`` is below 2048.
        """
        if key_size < RSA_MIN_KEY_SIZE:
            raise InvalidInputError(
                f"RSA key size {key_size} is below the minimum of {RSA_MIN_KEY_SIZE}"
            )
        private_key = rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=key_size)
        return cls(private_key)

    @classmethod
    def from_pem(cls, private_pem: bytes) -> AsymmetricIdentity:
        """Load an identity from a PKCS#8 PEM private key.

        Raises:
            InvalidInputError: If the PEM is malformed or not an RSA key.
        """
        try:
            private_key = serialization.load_pem_private_key(private_pem, password=None)
        except (ValueError, TypeError) as e:
            raise InvalidInputError(f"Invalid private key: {e}") from e
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise InvalidInputError("Private key must be an RSA key")
        return cls(private_key)

    @classmethod
    def load_or_create(cls, key_dir: Path) -> AsymmetricIdentity:
        """Reload the persisted keypair, generating and saving it on first run.

        The private key is the source of truth. Whenever ``private_key.pem``
        exists it is reused, and a missing or stale ``public_key.pem`` is
        rewritten from it. A new keypair is only generated when no private
        key has been persisted.

        Args:
            key_dir: Directory holding ``public_key.pem`` and ``private_key.pem``.

        Returns:
            The loaded or newly created identity.

        Raises:
            StorageUnavailableError: If the key files cannot be read, parsed
                or written.
        """
        private_path = key_dir / PRIVATE_KEY_FILENAME
        public_path = key_dir / PUBLIC_KEY_FILENAME

        if private_path.exists():
            try:
                identity = cls.from_pem(private_path.read_bytes())
                current_public = public_path.read_bytes() if public_path.exists() else None
            except OSError as e:
                raise StorageUnavailableError(f"Failed to read identity keys: {e}") from e
            except InvalidInputError as e:
                raise StorageUnavailableError(f"Persisted private key is unusable: {e}") from e

            public_pem = identity._public_pem()
            if current_public != public_pem:
                try:
                    _write_atomic(public_path, public_pem, 0o644)
                except OSError as e:
                    raise StorageUnavailableError(f"Failed to write identity keys: {e}") from e
                logger.warning("Rewrote %s from the persisted private key", public_path)
            logger.info("Loaded RSA identity from %s", key_dir)
            return identity

        identity = cls.generate()
        identity.save(key_dir)
        logger.info("Generated new RSA identity in %s", key_dir)
        return identity

    def save(self, key_dir: Path) -> None:
        """Persist the keypair as two PEM files.

        Each file is written to an owner-only temporary file and atomically
        renamed into place. The private key is written first, so an
        interrupted save never leaves a public key without its private key.

        Args:
            key_dir: Target directory, created if missing.

        Raises:
            StorageUnavailableError: If the files cannot be written.
        """
        private_pem = self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        try:
            key_dir.mkdir(parents=True, exist_ok=True)
            _write_atomic(key_dir / PRIVATE_KEY_FILENAME, private_pem, 0o600)
            _write_atomic(key_dir / PUBLIC_KEY_FILENAME, self._public_pem(), 0o644)
        except OSError as e:
            raise StorageUnavailableError(f"Failed to write identity keys: {e}") from e

    def _public_pem(self) -> bytes:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    # ------------------------------------------------------------------
    # Own keypair
    # ------------------------------------------------------------------

    @property
    def private_key(self) -> rsa.RSAPrivateKey:
        """This side's private key."""
        return self._private_key

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        """This side's public key."""
        return self._private_key.public_key()

    @property
    def key_size(self) -> int:
        """Modulus size in bits."""
        return self._private_key.key_size

    def export_public(self) -> str:
        """Base64 DER SPKI of this side's public key, without PEM markers."""
        return export_public_key(self.public_key)

    def public_key_wire(self) -> dict[str, str]:
        """Public-key export in wire form: ``{"publicKey": ...}``."""
        return {"publicKey": self.export_public()}

    # ------------------------------------------------------------------
    # Counterpart slot
    # ------------------------------------------------------------------

    def register_counterpart_public_key(self, encoded: str) -> None:
        """Register the other side's public key, replacing any earlier one.

        Args:
            encoded: Base64 DER SPKI, or a PEM block.

        Raises:
            InvalidInputError: If the key is malformed. The previously
                registered key, if any, is kept.
        """
        key = load_public_key(encoded)
        with self._lock:
            replaced = self._counterpart_key is not None
            self._counterpart_key = key
        logger.debug("Counterpart public key registered (replaced=%s)", replaced)

    @property
    def counterpart_public_key(self) -> rsa.RSAPublicKey | None:
        """The registered counterpart key, or None."""
        with self._lock:
            return self._counterpart_key

    @property
    def has_counterpart(self) -> bool:
        """Whether a counterpart key is registered."""
        return self.counterpart_public_key is not None
