"""Error hierarchy for safekeep."""

from __future__ import annotations


class SafekeepError(Exception):
    """Base exception for all safekeep errors."""

    pass


class InvalidInputError(SafekeepError):
    """Malformed encoding, wrong length, or missing required field."""

    pass


class AuthenticationError(SafekeepError):
    """A signature or AEAD tag did not verify.

    CRITICAL: Always a hard rejection. Never retried, never partially trusted.
    """

    pass


class SignatureVerificationError(AuthenticationError):
    """Signature over a secure payload did not verify under the counterpart key."""

    pass


class DecryptionError(AuthenticationError):
    """Ciphertext could not be decrypted with the expected key."""

    pass


class PreconditionFailedError(SafekeepError):
    """Operation attempted before the state it needs exists."""

    pass


class CounterpartKeyMissingError(PreconditionFailedError):
    """No counterpart public key has been registered yet."""

    pass


class AccountNotFoundError(PreconditionFailedError):
    """Account not found."""

    pass


class DecodeError(SafekeepError):
    """Decrypted content is not valid for its expected shape."""

    pass


class StorageUnavailableError(SafekeepError):
    """The persistence backend failed. Safe to retry with backoff."""

    pass


class DuplicateAccountError(SafekeepError):
    """Account already exists."""

    pass


class ConflictError(SafekeepError):
    """Safe was modified since the version the caller read.

    Attributes:
        expected_version: The version the caller based its write on.
        current_version: The version currently stored.
    """

    def __init__(self, expected_version: int, current_version: int) -> None:
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Safe version conflict: expected {expected_version}, found {current_version}"
        )


class ApiError(SafekeepError):
    """HTTP API error with status code.

    Attributes:
        status_code: The HTTP status code.
        message: The error message.
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"API Error ({status_code}): {message}")


class NetworkError(SafekeepError):
    """Network communication failure."""

    pass
