"""Shared fixtures for safekeep tests."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from safekeep.crypto import AsymmetricIdentity
from safekeep.errors import SafekeepError
from safekeep.service import SafeService, status_code_for
from safekeep.store import MemorySafeStore

SALT = bytes(range(16))


@pytest.fixture(scope="session")
def server_private_key() -> rsa.RSAPrivateKey:
    """One RSA key for the server side, generated once per test run."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def client_private_key() -> rsa.RSAPrivateKey:
    """One RSA key for the client side, generated once per test run."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def server_identity(server_private_key: rsa.RSAPrivateKey) -> AsymmetricIdentity:
    """Fresh server identity with no counterpart registered."""
    return AsymmetricIdentity(server_private_key)


@pytest.fixture
def client_identity(client_private_key: rsa.RSAPrivateKey) -> AsymmetricIdentity:
    """Fresh client identity."""
    return AsymmetricIdentity(client_private_key)


@pytest.fixture
def service(server_identity: AsymmetricIdentity) -> SafeService:
    """Service over an in-memory store."""
    return SafeService(MemorySafeStore(), server_identity)


def make_handler(service: SafeService) -> Callable[[httpx.Request], httpx.Response]:
    """Route HTTP requests to SafeService the way a web layer would."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        route = (request.method, request.url.path)
        try:
            if route == ("GET", "/public-key"):
                data = service.public_key()
            elif route == ("POST", "/register-public-key"):
                data = service.register_public_key(body)
            elif route == ("POST", "/secure-data"):
                data = service.receive_secure_data(body)
            elif route == ("POST", "/register"):
                data = service.create_account(body)
            elif route == ("GET", "/data"):
                data = service.read_safe(request.url.params.get("accountId", ""))
            elif route == ("POST", "/safe"):
                data = service.write_safe(body)
            else:
                return httpx.Response(405, json={"error": "Unknown route"})
        except SafekeepError as e:
            return httpx.Response(status_code_for(e), json={"error": str(e)})
        return httpx.Response(200, json=data)

    return handler


@pytest.fixture
def transport(service: SafeService) -> httpx.MockTransport:
    """Transport that serves requests from the in-memory service."""
    return httpx.MockTransport(make_handler(service))
