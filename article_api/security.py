"""Password hashing for stored user credentials."""

from pwdlib import PasswordHash

_password_hash = PasswordHash.recommended()


def hash_password(password: str) -> str:
    """Hash a plaintext password (Argon2, random salt embedded in the hash)."""
    if not password:
        raise ValueError("password is empty")
    return _password_hash.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True when *plain_password* matches *hashed_password*."""
    if not plain_password or not hashed_password:
        return False
    return _password_hash.verify(plain_password, hashed_password)
