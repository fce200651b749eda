from __future__ import annotations

import hmac
import uuid
from hashlib import sha3_256


def make_uuid() -> str:
    """Random 128-bit identifier used for salts and session tokens."""
    return str(uuid.uuid4())


def password_digest(password: str, salt: str) -> str:
    """Single-pass SHA3-256 over ``password#salt``.

    Rendered as a bracketed list of unpadded hex bytes, e.g. ``[46, 64, ae, ...]``;
    stored digests use exactly this text, so any other recipe needs a new column.
    """
    digest = sha3_256(f"{password}#{salt}".encode("utf-8")).digest()
    return "[" + ", ".join(f"{b:x}" for b in digest) + "]"


def verify_password(password: str, salt: str, expected_digest: str) -> bool:
    if not expected_digest:
        return False
    return hmac.compare_digest(password_digest(password, salt), expected_digest)
