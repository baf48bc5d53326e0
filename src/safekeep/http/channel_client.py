"""Secure-data channel API client for safekeep."""

from __future__ import annotations

from typing import cast

from .base_client import BaseApiClient


class ChannelApiClient(BaseApiClient):
    """API client for the public-key exchange and secure-data endpoints."""

    async def get_public_key(self) -> str:
        """Fetch the server's public key.

        Returns:
            Base64 DER SPKI of the server key.
        """
        response = await self._request("GET", "/public-key")
        return cast(str, response.json()["publicKey"])

    async def register_public_key(self, public_key_b64: str) -> None:
        """Register this client's public key with the server.

        Args:
            public_key_b64: Base64 DER SPKI of the client key.
        """
        await self._request("POST", "/register-public-key", json={"publicKey": public_key_b64})

    async def send_secure_data(self, payload: dict[str, str]) -> str:
        """Post a signed, encrypted payload.

        Args:
            payload: ``{"encryptedData", "signature"}``.

        Returns:
            The message as decrypted by the server.
        """
        response = await self._request("POST", "/secure-data", json=payload)
        return cast(str, response.json()["decryptedData"])
