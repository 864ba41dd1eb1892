"""
Password Utilities

PBKDF2-SHA256 hashes for company and employee accounts. The hash and its
salt are stored as two hex columns.
"""

import hashlib
import secrets
from typing import Optional, Tuple

ITERATIONS = 100000
KEY_LENGTH = 32
SALT_BYTES = 16


def _derive(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), ITERATIONS, dklen=KEY_LENGTH
    ).hex()


def hash_password(password: str, salt: Optional[str] = None) -> Tuple[str, str]:
    """
    Hash a password for storage.

    Args:
        password: Clear-text password
        salt: Existing salt; a random one is generated when omitted

    Returns:
        (password_hash, password_salt)
    """
    salt = salt or secrets.token_hex(SALT_BYTES)
    return _derive(password, salt), salt


def verify_password(password: str, hashed_password: Optional[str], salt: Optional[str]) -> bool:
    """Constant-time check of ``password`` against a stored hash. Accounts without a password never match."""
    if not hashed_password or not salt:
        return False
    return secrets.compare_digest(_derive(password, salt), hashed_password)
