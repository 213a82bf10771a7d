"""Password hashing helpers (argon2 via pwdlib)."""

from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError

_password_hash = PasswordHash.recommended()


def hash_password(password: str) -> str:
    candidate = password.strip()
    if not candidate:
        raise ValueError("Password must not be empty")
    return _password_hash.hash(candidate)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return _password_hash.verify(password.strip(), hashed)
    except UnknownHashError:
        return False
