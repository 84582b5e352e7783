"""Token utilities.

Raw bearer tokens are only ever returned to their owner; the store keeps the
SHA-256 digest and lookups re-hash the presented value. There is no salt, so
a digest computed today matches one computed after a restart.
"""

import hashlib
import secrets

# Excludes the look-alikes 0, O, 1 and I
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_LENGTH = 6

TOKEN_BYTES = 32


def hash_token(raw: str) -> str:
    """Return the hex SHA-256 digest of a raw token."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def issue_token() -> str:
    """Return a new URL-safe bearer token with 256 bits of entropy."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def generate_join_code() -> str:
    return "".join(
        secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH)
    )


def generate_id() -> str:
    return secrets.token_hex(8)


def normalize_join_code(code: str) -> str:
    """Canonical form used for storage and lookup (codes are case-insensitive)."""
    return code.strip().upper()
