"""Password hashing with argon2id via ``argon2-cffi``.

Produces PHC-format strings safe for database storage::

    from flare.security.passwords import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password with argon2id.

    Raises ``ValueError`` for an empty password.
    """
    if not password:
        msg = "Password must not be empty."
        raise ValueError(msg)
    return _hasher.hash(password)


def verify_password(password: str, encoded: str) -> bool:
    """Check *password* against an argon2 PHC hash.

    Returns ``False`` for a mismatch, an empty input, or a hash that is
    not argon2.
    """
    if not password or not encoded:
        return False
    try:
        return _hasher.verify(encoded, password)
    except (VerificationError, InvalidHashError):
        return False
