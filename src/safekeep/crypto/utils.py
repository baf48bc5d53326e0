"""Base64 and PEM encoding utilities for safekeep."""

from __future__ import annotations

import base64
import binascii
import textwrap

from ..errors import InvalidInputError
from .constants import PEM_PUBLIC_FOOTER, PEM_PUBLIC_HEADER


def to_base64(data: bytes) -> str:
    """Encode bytes to standard base64.

    Args:
        data: The bytes to encode.

    Returns:
        Standard base64 string with padding.
    """
    return base64.b64encode(data).decode("ascii")


def from_base64(s: str, *, field: str = "value") -> bytes:
    """Decode a standard base64 string to bytes.

    Args:
        s: The base64 string to decode.
        field: Name of the field being decoded, used in error messages.

    Returns:
        The decoded bytes.

    Raises:
        InvalidInputError: If the input is not a string or not valid base64.
    """
    if not isinstance(s, str):
        raise InvalidInputError(f"{field} must be a base64 string")
    try:
        return base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputError(f"{field} is not valid base64: {e}") from e


def strip_pem(pem: str) -> str:
    """Strip PEM envelope markers and line breaks from a public key.

    Args:
        pem: PEM-encoded SubjectPublicKeyInfo.

    Returns:
        The bare base64 DER body, as sent on the wire.
    """
    return (
        pem.replace(PEM_PUBLIC_HEADER, "")
        .replace(PEM_PUBLIC_FOOTER, "")
        .replace("\r", "")
        .replace("\n", "")
        .strip()
    )


def wrap_pem(body_b64: str) -> str:
    """Reattach PEM envelope markers to a bare base64 public key body.

    Args:
        body_b64: Base64 DER SubjectPublicKeyInfo without markers.

    Returns:
        PEM text with 64-column lines.
    """
    lines = textwrap.wrap(body_b64.strip(), 64)
    return "\n".join([PEM_PUBLIC_HEADER, *lines, PEM_PUBLIC_FOOTER]) + "\n"
