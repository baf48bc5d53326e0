"""safekeep.

An end-to-end encrypted password safe: the client derives an AES-256 key
from the user's password, encrypts its credential records into an opaque
envelope and stores only that envelope on the server. A separate signed
RSA-OAEP channel carries small secure payloads from client to server.

Example:
    ```python
    import asyncio
    from safekeep import SafekeepClient

    async def main():
        async with SafekeepClient(base_url="http://localhost:8080") as client:
            session = await client.register("alice@example.com", "pw1")
            await session.add_record("example.com", "alice", "s3cr3t")

            reopened = await client.open_safe("alice@example.com", "pw1")
            print(len(reopened.safe))

    asyncio.run(main())
    ```
"""

from .client import SafekeepClient
from .constants import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_RETRY_STATUS_CODES,
    DEFAULT_TIMEOUT_MS,
)
from .crypto import AsymmetricIdentity, SafeEnvelope, SignedCiphertext
from .errors import (
    AccountNotFoundError,
    ApiError,
    AuthenticationError,
    ConflictError,
    CounterpartKeyMissingError,
    DecodeError,
    DecryptionError,
    DuplicateAccountError,
    InvalidInputError,
    NetworkError,
    PreconditionFailedError,
    SafekeepError,
    SignatureVerificationError,
    StorageUnavailableError,
)
from .safe import CredentialRecord, Safe
from .service import SafeService
from .session import SafeSession
from .store import JsonFileSafeStore, MemorySafeStore, SafeStore
from .types import Account, ClientConfig, ServiceConfig

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "SafekeepClient",
    "SafeSession",
    "SafeService",
    "AsymmetricIdentity",
    # Constants
    "DEFAULT_BASE_URL",
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_RETRY_DELAY_MS",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_STATUS_CODES",
    # Configuration
    "ClientConfig",
    "ServiceConfig",
    # Data types
    "Account",
    "CredentialRecord",
    "Safe",
    "SafeEnvelope",
    "SignedCiphertext",
    # Storage
    "SafeStore",
    "MemorySafeStore",
    "JsonFileSafeStore",
    # Errors
    "SafekeepError",
    "InvalidInputError",
    "AuthenticationError",
    "SignatureVerificationError",
    "DecryptionError",
    "PreconditionFailedError",
    "CounterpartKeyMissingError",
    "AccountNotFoundError",
    "DecodeError",
    "StorageUnavailableError",
    "DuplicateAccountError",
    "ConflictError",
    "ApiError",
    "NetworkError",
    # Version
    "__version__",
]
