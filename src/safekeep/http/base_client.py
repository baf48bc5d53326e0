"""Base HTTP client with retry logic for safekeep."""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any

import httpx

from ..errors import (
    AccountNotFoundError,
    ApiError,
    AuthenticationError,
    ConflictError,
    CounterpartKeyMissingError,
    DuplicateAccountError,
    InvalidInputError,
    NetworkError,
    StorageUnavailableError,
)
from ..types import ClientConfig

# Patterns for classifying 409 responses
_DUPLICATE_ACCOUNT_PATTERN = re.compile(r"\b(already registered|already exists)\b", re.IGNORECASE)
_VERSION_CONFLICT_PATTERN = re.compile(
    r"\bexpected (\d+)\b.*\bfound (\d+)\b", re.IGNORECASE
)


class BaseApiClient:
    """Base HTTP client for the safekeep API with automatic retry logic.

    Provides common HTTP operations used by all domain-specific clients.

    Attributes:
        config: Client configuration.
    """

    def __init__(self, config: ClientConfig) -> None:
        """Initialize the base API client.

        Args:
            config: Client configuration with server URL and retry settings.
        """
        self.config = config
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        Returns:
            The HTTP client instance.
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(self.config.timeout / 1000),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST).
            path: API path.
            json: JSON body for the request.
            params: Query parameters.

        Returns:
            The HTTP response.

        Raises:
            ApiError: If the request fails after all retries.
            NetworkError: If there's a network communication failure.
        """
        client = await self._get_client()
        last_error: Exception | None = None

        for attempt in range(self.config.max_retries + 1):
            try:
                response = await client.request(method, path, json=json, params=params)

                # Check if we should retry based on status code
                if (
                    response.status_code in self.config.retry_on_status_codes
                    and attempt < self.config.max_retries
                ):
                    delay = self.config.retry_delay * (2**attempt) / 1000
                    await asyncio.sleep(delay)
                    continue

                # Handle errors
                if response.status_code >= 400:
                    self._handle_error_response(response)

                return response

            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as e:
                last_error = e
                if attempt < self.config.max_retries:
                    delay = self.config.retry_delay * (2**attempt) / 1000
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(f"Network error: {e}") from e

        # Should not reach here, but just in case
        raise NetworkError(
            f"Request failed after {self.config.max_retries} retries"
        ) from last_error  # pragma: no cover

    def _handle_error_response(self, response: httpx.Response) -> None:
        """Handle HTTP error responses.

        Args:
            response: The HTTP response.

        Raises:
            InvalidInputError: On 400.
            AuthenticationError: On 401.
            AccountNotFoundError: On 404.
            DuplicateAccountError: On 409 for an existing account.
            ConflictError: On 409 for a stale safe version.
            CounterpartKeyMissingError: On 412.
            StorageUnavailableError: On 503 after retries.
            ApiError: For other API errors.
        """
        try:
            data = response.json()
            message = data.get("error", data.get("message", response.text))
        except (ValueError, json.JSONDecodeError, AttributeError):
            message = response.text or f"HTTP {response.status_code}"

        status = response.status_code
        if status == 400:
            raise InvalidInputError(message)
        if status == 401:
            raise AuthenticationError(message)
        if status == 404:
            raise AccountNotFoundError(message)
        if status == 409:
            if _DUPLICATE_ACCOUNT_PATTERN.search(message):
                raise DuplicateAccountError(message)
            match = _VERSION_CONFLICT_PATTERN.search(message)
            if match:
                raise ConflictError(int(match.group(1)), int(match.group(2)))
        if status == 412:
            raise CounterpartKeyMissingError(message)
        if status == 503:
            raise StorageUnavailableError(message)

        raise ApiError(status, message)
