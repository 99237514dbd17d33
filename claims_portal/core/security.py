# claims_portal/core/security.py
import bcrypt

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def _password_bytes(raw_password: str) -> bytes:
    return raw_password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(raw_password: str, rounds: int = 10) -> str:
    """Return a salted bcrypt hash for `raw_password`."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_password_bytes(raw_password), salt).decode("utf-8")


def verify_password(raw_password: str, password_hash: str) -> bool:
    """Check `raw_password` against a stored bcrypt hash; malformed hashes never match."""
    if not raw_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(raw_password), password_hash.encode("utf-8"))
    except ValueError:
        return False
