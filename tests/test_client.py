"""End-to-end tests for SafekeepClient against an in-process SafeService."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from safekeep import CredentialRecord, SafekeepClient
from safekeep.crypto import AsymmetricIdentity
from safekeep.errors import (
    AccountNotFoundError,
    AuthenticationError,
    ConflictError,
    DuplicateAccountError,
    InvalidInputError,
    NetworkError,
)
from safekeep.service import SafeService


@pytest.fixture
def client(
    transport: httpx.MockTransport, client_identity: AsymmetricIdentity
) -> SafekeepClient:
    """Client whose HTTP traffic is served by the in-memory service."""
    sdk = SafekeepClient(base_url="http://safekeep.test", max_retries=0, identity=client_identity)
    sdk._api_client._client = httpx.AsyncClient(
        transport=transport, base_url="http://safekeep.test"
    )
    return sdk


class TestRegisterAndOpen:
    """Tests for account registration and opening safes."""

    @pytest.mark.asyncio
    async def test_register_creates_empty_safe(self, client: SafekeepClient) -> None:
        """A new account opens to an empty safe."""
        async with client:
            session = await client.register("alice@example.com", "pw1")
            assert len(session.safe) == 0
            assert session.version == 0

            reopened = await client.open_safe("alice@example.com", "pw1")
            assert len(reopened.safe) == 0
            assert reopened.version == 0

    @pytest.mark.asyncio
    async def test_server_never_sees_password(
        self, client: SafekeepClient, service: SafeService
    ) -> None:
        """The stored account holds a verifier and salt, never the password."""
        async with client:
            await client.register("alice@example.com", "pw1-secret")

        account = service._store.get("alice@example.com")
        assert account is not None
        assert account.password_verifier.startswith("$argon2id$")
        assert "pw1-secret" not in repr(account.to_record())
        assert len(account.salt) == 16

    @pytest.mark.asyncio
    async def test_records_survive_reopen(self, client: SafekeepClient) -> None:
        """Records added in one session are there in the next."""
        async with client:
            session = await client.register("alice@example.com", "pw1")
            record_id = await session.add_record("example.com", "alice", "s3cr3t", note="work")

            reopened = await client.open_safe("alice@example.com", "pw1")
            record = reopened.safe[record_id]
            assert (record.site, record.username, record.secret, record.note) == (
                "example.com",
                "alice",
                "s3cr3t",
                "work",
            )
            assert reopened.version == 1

    @pytest.mark.asyncio
    async def test_update_and_remove(self, client: SafekeepClient) -> None:
        """Updates and removals are persisted."""
        async with client:
            session = await client.register("alice@example.com", "pw1")
            keep = await session.add_record("a.example", "alice", "one")
            drop = await session.add_record("b.example", "alice", "two")
            await session.update_record(keep, secret="uno")
            await session.remove_record(drop)

            reopened = await client.open_safe("alice@example.com", "pw1")
            assert list(reopened.safe) == [keep]
            assert reopened.safe[keep].secret == "uno"
            assert reopened.version == 4

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: SafekeepClient) -> None:
        """The wrong password cannot open the safe."""
        async with client:
            session = await client.register("alice@example.com", "pw1")
            await session.add_record("example.com", "alice", "s3cr3t")

            with pytest.raises(AuthenticationError):
                await client.open_safe("alice@example.com", "wrongpw")

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, client: SafekeepClient) -> None:
        """Registering an existing account fails and leaves the safe intact."""
        async with client:
            session = await client.register("alice@example.com", "pw1")
            await session.add_record("example.com", "alice", "s3cr3t")

            with pytest.raises(DuplicateAccountError):
                await client.register("alice@example.com", "other")

            reopened = await client.open_safe("alice@example.com", "pw1")
            assert len(reopened.safe) == 1

    @pytest.mark.asyncio
    async def test_unknown_account(self, client: SafekeepClient) -> None:
        """Opening an unknown account raises AccountNotFoundError."""
        async with client:
            with pytest.raises(AccountNotFoundError):
                await client.open_safe("nobody@example.com", "pw1")

    @pytest.mark.asyncio
    async def test_accounts_are_isolated(self, client: SafekeepClient) -> None:
        """Each account has its own salt and safe."""
        async with client:
            alice = await client.register("alice@example.com", "pw1")
            await alice.add_record("example.com", "alice", "a")
            bob = await client.register("bob@example.com", "pw1")
            await bob.add_record("example.com", "bob", "b")

            reopened = await client.open_safe("alice@example.com", "pw1")
            assert [r.username for _, r in reopened.safe.items()] == ["alice"]


class TestConcurrentSessions:
    """Tests for version-checked saves."""

    @pytest.mark.asyncio
    async def test_stale_session_conflicts(self, client: SafekeepClient) -> None:
        """A session that missed a save is rejected when it checks versions."""
        async with client:
            await client.register("alice@example.com", "pw1")
            first = await client.open_safe("alice@example.com", "pw1")
            second = await client.open_safe("alice@example.com", "pw1")

            first_record = CredentialRecord("a", "u", "p")
            first.safe.add(first_record)
            await first.save(check_version=True)
            assert first.version == 1

            with pytest.raises(ConflictError) as exc_info:
                await second.save(check_version=True)
            assert exc_info.value.expected_version == 0
            assert exc_info.value.current_version == 1

            reopened = await client.open_safe("alice@example.com", "pw1")
            assert [r for _, r in reopened.safe.items()] == [first_record]

    @pytest.mark.asyncio
    async def test_unchecked_save_last_writer_wins(self, client: SafekeepClient) -> None:
        """Saves without a version check overwrite each other."""
        async with client:
            await client.register("alice@example.com", "pw1")
            first = await client.open_safe("alice@example.com", "pw1")
            second = await client.open_safe("alice@example.com", "pw1")

            await first.add_record("a.example", "u", "p")
            await second.add_record("b.example", "u", "p")

            reopened = await client.open_safe("alice@example.com", "pw1")
            assert [r.site for _, r in reopened.safe.items()] == ["b.example"]

    @pytest.mark.asyncio
    async def test_conflicting_add_leaves_session_unchanged(self, client: SafekeepClient) -> None:
        """A rejected save does not change the session's safe."""
        async with client:
            await client.register("alice@example.com", "pw1")
            first = await client.open_safe("alice@example.com", "pw1")
            second = await client.open_safe("alice@example.com", "pw1")

            await first.add_record("a.example", "u", "p", check_version=True)
            with pytest.raises(ConflictError):
                await second.add_record("b.example", "u", "p", check_version=True)

            assert len(second.safe) == 0
            assert second.version == 0


class TestFailedSaves:
    """Tests for session state when a save fails."""

    @pytest.mark.asyncio
    async def test_failed_mutations_keep_safe(self, client: SafekeepClient) -> None:
        """Add, update and remove leave the safe as stored when the save fails."""
        async with client:
            session = await client.register("alice@example.com", "pw1")
            record_id = await session.add_record("example.com", "alice", "s3cr3t")
            before = session.safe.copy()

            with patch.object(
                client._api_client,
                "update_safe",
                new_callable=AsyncMock,
                side_effect=NetworkError("Network error: refused"),
            ):
                with pytest.raises(NetworkError):
                    await session.add_record("other.example", "alice", "x")
                with pytest.raises(NetworkError):
                    await session.update_record(record_id, secret="changed")
                with pytest.raises(NetworkError):
                    await session.remove_record(record_id)

            assert session.safe == before
            assert session.version == 1
            reopened = await client.open_safe("alice@example.com", "pw1")
            assert reopened.safe == session.safe


class TestSecureData:
    """Tests for the signed secure-data channel."""

    @pytest.mark.asyncio
    async def test_hello(self, client: SafekeepClient, service: SafeService) -> None:
        """The server decrypts exactly what the client sent."""
        async with client:
            assert await client.send_secure_data("hello") == "hello"
        assert service.identity.has_counterpart

    @pytest.mark.asyncio
    async def test_registers_key_once(self, client: SafekeepClient) -> None:
        """The client key is registered on first use only."""
        async with client:
            with patch.object(
                client._api_client,
                "register_public_key",
                wraps=client._api_client.register_public_key,
            ) as spy:
                await client.send_secure_data("one")
                await client.send_secure_data("two")
            assert spy.call_count == 1

    @pytest.mark.asyncio
    async def test_generates_identity_when_missing(
        self,
        transport: httpx.MockTransport,
        client_identity: AsymmetricIdentity,
    ) -> None:
        """A client without an identity creates one on demand."""
        sdk = SafekeepClient(base_url="http://safekeep.test", max_retries=0)
        sdk._api_client._client = httpx.AsyncClient(
            transport=transport, base_url="http://safekeep.test"
        )
        with patch.object(AsymmetricIdentity, "generate", return_value=client_identity):
            async with sdk:
                assert await sdk.send_secure_data("hello") == "hello"

    @pytest.mark.asyncio
    async def test_message_too_large(self, client: SafekeepClient) -> None:
        """Oversized messages fail locally."""
        async with client:
            with pytest.raises(InvalidInputError, match="too large"):
                await client.send_secure_data("x" * 191)

    @pytest.mark.asyncio
    async def test_server_rejection(
        self, client: SafekeepClient, service: SafeService, server_identity: AsymmetricIdentity
    ) -> None:
        """A payload signed by an unregistered key is rejected with 401."""
        async with client:
            await client.send_secure_data("hello")
            # Another party replaces the registered key.
            service.register_public_key({"publicKey": server_identity.export_public()})
            with pytest.raises(AuthenticationError, match="could not open secure data"):
                await client.send_secure_data("hello")

    @pytest.mark.asyncio
    async def test_plaintext_not_logged(
        self, client: SafekeepClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Neither passwords nor secrets reach the logs."""
        async with client:
            with caplog.at_level(logging.DEBUG, logger="safekeep"):
                session = await client.register("alice@example.com", "pw1-secret")
                await session.add_record("example.com", "alice", "record-secret")
                await client.send_secure_data("channel-secret")

        assert "pw1-secret" not in caplog.text
        assert "record-secret" not in caplog.text
        assert "channel-secret" not in caplog.text


class TestLifecycle:
    """Tests for client lifecycle."""

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, client: SafekeepClient) -> None:
        """Leaving the context closes the HTTP client."""
        with patch.object(client._api_client, "close", new_callable=AsyncMock) as close:
            async with client:
                pass
        close.assert_awaited_once()
