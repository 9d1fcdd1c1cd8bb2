"""
Cryptography utilities for account passwords.

Passwords are never stored; only a salted PBKDF2-SHA256 digest is kept,
encoded as ``pbkdf2_sha256$<iterations>$<salt>$<hash>``.
"""

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
import base64
import os

from shared.constants import PASSWORD_HASH_ITERATIONS

ALGORITHM = "pbkdf2_sha256"
SALT_BYTES = 16
KEY_LENGTH = 32


def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )


def hash_password(password: str, iterations: int = PASSWORD_HASH_ITERATIONS) -> str:
    """
    Derive a storable hash from a password.

    Args:
        password: Plain-text password
        iterations: PBKDF2 work factor

    Returns:
        Encoded hash string containing algorithm, iterations and salt
    """
    salt = os.urandom(SALT_BYTES)
    digest = _kdf(salt, iterations).derive(password.encode("utf-8"))
    return "$".join([
        ALGORITHM,
        str(iterations),
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(digest).decode("ascii"),
    ])


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against a hash produced by hash_password."""
    try:
        algorithm, iterations, salt_b64, digest_b64 = encoded.split("$")
    except (AttributeError, ValueError):
        return False
    if algorithm != ALGORITHM:
        return False

    try:
        salt = base64.b64decode(salt_b64)
        digest = base64.b64decode(digest_b64)
        _kdf(salt, int(iterations)).verify(password.encode("utf-8"), digest)
        return True
    except (InvalidKey, ValueError):
        return False
