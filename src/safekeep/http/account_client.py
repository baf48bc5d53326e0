"""Account and safe API client for safekeep."""

from __future__ import annotations

from typing import Any, cast

from .base_client import BaseApiClient


class AccountApiClient(BaseApiClient):
    """API client for account registration and safe storage.

    The server only ever receives the salt, the verifier and encrypted
    envelopes; keys and plaintext stay with the caller.
    """

    async def register_account(
        self,
        account_id: str,
        password_verifier: str,
        salt_b64: str,
        envelope: dict[str, str],
    ) -> None:
        """Create an account.

        Args:
            account_id: The account identifier (email address).
            password_verifier: Opaque password verifier.
            salt_b64: Base64-encoded 16-byte salt.
            envelope: ``{"ciphertext", "nonce"}`` of the initial safe.
        """
        await self._request(
            "POST",
            "/register",
            json={
                "accountId": account_id,
                "passwordVerifier": password_verifier,
                "saltBase64": salt_b64,
                "safeEnvelope": envelope,
            },
        )

    async def get_safe(self, account_id: str) -> dict[str, Any]:
        """Read an account's salt and current envelope.

        Args:
            account_id: The account identifier.

        Returns:
            ``{"accountId", "saltBase64", "safeEnvelope", "version"}``.
        """
        response = await self._request("GET", "/data", params={"accountId": account_id})
        return cast(dict[str, Any], response.json())

    async def update_safe(
        self,
        account_id: str,
        envelope: dict[str, str],
        *,
        expected_version: int | None = None,
    ) -> int | None:
        """Replace an account's envelope.

        Args:
            account_id: The account identifier.
            envelope: ``{"ciphertext", "nonce"}`` of the new safe.
            expected_version: Version the update is based on, if the caller
                wants the write rejected when someone else saved first.

        Returns:
            The new version reported by the server, if any.
        """
        body: dict[str, Any] = {"accountId": account_id, **envelope}
        if expected_version is not None:
            body["expectedVersion"] = expected_version
        response = await self._request("POST", "/safe", json=body)
        return cast("int | None", response.json().get("version"))
