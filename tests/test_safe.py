"""Tests for the plaintext safe model."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from safekeep.errors import DecodeError
from safekeep.safe import CredentialRecord, Safe


def make_record(site: str = "example.com") -> CredentialRecord:
    return CredentialRecord(site=site, username="alice", secret="s3cr3t", note="work")


class TestCredentialRecord:
    """Tests for CredentialRecord."""

    def test_repr_masks_secret(self) -> None:
        """repr never shows the secret."""
        text = repr(make_record())
        assert "s3cr3t" not in text
        assert "example.com" in text

    def test_note_defaults_to_empty(self) -> None:
        """Note is optional."""
        assert CredentialRecord("a", "b", "c").note == ""


class TestSafeMutations:
    """Tests for add, update and remove."""

    def test_add_returns_millisecond_id(self) -> None:
        """Ids are millisecond timestamps."""
        safe = Safe()
        with patch("safekeep.safe.time.time_ns", return_value=1_700_000_000_123_456_789):
            record_id = safe.add(make_record())
        assert record_id == "1700000000123"
        assert safe[record_id] == make_record()

    def test_ids_unique_within_same_millisecond(self) -> None:
        """Colliding timestamps are bumped until unique."""
        safe = Safe()
        with patch("safekeep.safe.time.time_ns", return_value=5_000_000):
            ids = [safe.add(make_record(f"site{i}")) for i in range(3)]
        assert ids == ["5", "6", "7"]
        assert len(safe) == 3

    def test_update_changes_fields(self) -> None:
        """update replaces only the given fields."""
        safe = Safe()
        record_id = safe.add(make_record())
        updated = safe.update(record_id, secret="n3w")
        assert updated.secret == "n3w"
        assert updated.site == "example.com"
        assert safe[record_id].secret == "n3w"

    def test_update_missing_record(self) -> None:
        """Updating an unknown id raises KeyError."""
        with pytest.raises(KeyError):
            Safe().update("123", secret="x")

    def test_update_unknown_field(self) -> None:
        """Unknown field names are rejected."""
        safe = Safe()
        record_id = safe.add(make_record())
        with pytest.raises(ValueError, match="password"):
            safe.update(record_id, password="x")

    def test_remove(self) -> None:
        """remove deletes and returns the record."""
        safe = Safe()
        record_id = safe.add(make_record())
        assert safe.remove(record_id) == make_record()
        assert record_id not in safe

    def test_copy_is_independent(self) -> None:
        """Changing a copy leaves the original safe alone."""
        safe = Safe()
        record_id = safe.add(make_record())
        copied = safe.copy()
        assert copied == safe

        copied.update(record_id, secret="n3w")
        copied.add(make_record("other.example"))
        assert safe[record_id].secret == "s3cr3t"
        assert len(safe) == 1

    def test_remove_missing_record(self) -> None:
        """Removing an unknown id raises KeyError."""
        with pytest.raises(KeyError):
            Safe().remove("123")


class TestSafeSerialization:
    """Tests for to_bytes/from_bytes."""

    def test_empty_safe_is_empty_object(self) -> None:
        """An empty safe serializes to {}."""
        assert Safe().to_bytes() == b"{}"

    def test_round_trip(self) -> None:
        """Serialized records parse back unchanged."""
        safe = Safe({"1": make_record(), "2": make_record("ünï.example")})
        assert Safe.from_bytes(safe.to_bytes()) == safe

    def test_wire_shape(self) -> None:
        """Records serialize as {id: {site, username, secret, note}}."""
        safe = Safe({"1": make_record()})
        assert json.loads(safe.to_bytes()) == {
            "1": {"site": "example.com", "username": "alice", "secret": "s3cr3t", "note": "work"}
        }

    def test_empty_array_is_empty_safe(self) -> None:
        """[] is accepted as an empty safe."""
        assert Safe.from_bytes(b"[]") == Safe()

    def test_missing_note_defaults(self) -> None:
        """Records without a note parse with an empty note."""
        data = b'{"1": {"site": "s", "username": "u", "secret": "p"}}'
        assert Safe.from_bytes(data)["1"].note == ""

    @pytest.mark.parametrize(
        "data",
        [
            b"not json",
            b"\xff\xfe",
            b'"string"',
            b"[1, 2]",
            b'{"1": "not an object"}',
            b'{"1": {"site": "s", "username": "u"}}',
            b'{"1": {"site": 1, "username": "u", "secret": "p"}}',
        ],
    )
    def test_malformed_data_raises_decode_error(self, data: bytes) -> None:
        """Malformed plaintext raises DecodeError."""
        with pytest.raises(DecodeError):
            Safe.from_bytes(data)

    def test_repr_hides_contents(self) -> None:
        """repr shows only the record count."""
        assert repr(Safe({"1": make_record()})) == "Safe(1 record(s))"
