"""Random identifiers and credential hashing.

Passwords are hashed with bcrypt. Management tokens are high-entropy
random strings, so a plain SHA-256 digest is enough to store them.
"""

import hashlib
import secrets
import string
from typing import Tuple

import bcrypt

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase

# Largest multiple of 62 that fits in a byte; bytes at or above it are rejected
# so that every character is equally likely.
_UNBIASED_CEILING = 256 - 256 % len(BASE62_ALPHABET)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72


def random_base62(length: int) -> str:
    """Return a cryptographically random base62 string of ``length`` characters."""
    result = []
    while len(result) < length:
        for byte in secrets.token_bytes(length):
            if byte < _UNBIASED_CEILING:
                result.append(BASE62_ALPHABET[byte % len(BASE62_ALPHABET)])
                if len(result) == length:
                    break
    return "".join(result)


def hash_manage_token(token: str) -> str:
    """SHA-256 hex digest of a management token."""
    # Lone surrogates from JSON input still hash, to a digest no real token has
    return hashlib.sha256(token.encode("utf-8", errors="surrogatepass")).hexdigest()


def generate_manage_token(length: int = 32) -> Tuple[str, str]:
    """
    Create a management token.

    Returns:
        Tuple of (plaintext token, hex digest to persist)
    """
    token = random_base62(length)
    return token, hash_manage_token(token)


def hash_password(password: str) -> str:
    """bcrypt hash of ``password``."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a bcrypt hash; malformed input never matches."""
    try:
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        return False
