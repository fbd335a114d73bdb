from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt

JWT_ALGORITHM = "HS256"


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a plaintext password with a fresh bcrypt salt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user_id: int, username: str, secret: str, expires_days: int = 7) -> str:
    """
    Sign an access token for a user.

    The token carries `userId` and `username` claims and expires after
    `expires_days`. There is no refresh token; clients log in again.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "username": username,
        "iat": now,
        "exp": now + timedelta(days=expires_days),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, secret: str) -> Dict[str, Any]:
    """
    Verify signature and expiry of an access token.

    Raises:
        jwt.InvalidTokenError (or a subclass) if the token is malformed,
        tampered with or expired.
    """
    return jwt.decode(
        token,
        secret,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["exp", "userId"]},
    )
