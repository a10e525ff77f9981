"""Deletion confirmation tokens.

Raw tokens leave the process only inside the confirmation message; the
database holds their SHA-256 digest.
"""

import hashlib
import hmac
import re
import secrets

from storeguard.core.exceptions import ValidationError

TOKEN_BYTES = 32
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{43}$")
"""``secrets.token_urlsafe(32)`` yields 43 url-safe characters."""


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("ascii")).hexdigest()


def validate_token_format(raw: object) -> str:
    """Reject anything that could not have been issued.

    Raises:
        ValidationError: If ``raw`` is not a well-formed token
    """
    if not isinstance(raw, str) or not TOKEN_PATTERN.fullmatch(raw):
        raise ValidationError("Malformed confirmation token", field="token")
    return raw


def verify_token(raw: str, stored_hash: str) -> bool:
    """Constant-time comparison of a presented token against a stored digest."""
    return hmac.compare_digest(hash_token(raw), stored_hash)
