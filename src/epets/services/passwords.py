"""Password hashing for admin accounts.

Hashes are PBKDF2-HMAC-SHA256 with a per-password random salt, stored as

    pbkdf2_sha256$<iterations>$<salt b64>$<hash b64>

so the iteration count can be raised later without invalidating existing
hashes.
"""

from __future__ import annotations

import base64
import hmac
import os

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 600_000  # OWASP recommendation 2023
SALT_BYTES = 16
KEY_LENGTH = 32


class InvalidPasswordHashError(ValueError):
    """Raised when a stored hash cannot be parsed."""


def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )


def hash_password(password: str, *, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Hash a password for storage.

    Args:
        password: The plain text password.
        iterations: PBKDF2 iteration count.

    Returns:
        Encoded hash string.
    """
    salt = os.urandom(SALT_BYTES)
    derived = _kdf(salt, iterations).derive(password.encode("utf-8"))
    return "$".join(
        [
            ALGORITHM,
            str(iterations),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(derived).decode("ascii"),
        ]
    )


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against a stored hash.

    Args:
        password: The plain text password to check.
        encoded: Hash produced by hash_password().

    Returns:
        True if the password matches.

    Raises:
        InvalidPasswordHashError: If the stored hash is malformed.
    """
    try:
        algorithm, iterations, salt_b64, hash_b64 = encoded.split("$")
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(hash_b64)
        rounds = int(iterations)
    except ValueError as exc:
        raise InvalidPasswordHashError("Malformed password hash") from exc

    if not hmac.compare_digest(algorithm, ALGORITHM):
        raise InvalidPasswordHashError(f"Unsupported password hash algorithm: {algorithm}")

    try:
        _kdf(salt, rounds).verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True
