"""Credential helpers: bcrypt password hashes and JWT bearer tokens."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from foodhub.core.config import JWT_ALGORITHM, JWT_EXPIRE_MINUTES, JWT_SECRET_KEY

# bcrypt ignores everything past 72 bytes and newer releases reject it outright
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return (password or "").encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), password_hash.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


def create_access_token(
    user_id: str,
    *,
    extra: Optional[Dict[str, Any]] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes if expires_minutes is not None else JWT_EXPIRE_MINUTES)
    claims: Dict[str, Any] = dict(extra or {})
    claims.update(
        {
            # python-jose only accepts a string subject
            "sub": str(user_id),
            "user_id": str(user_id),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + lifetime).timestamp()),
        }
    )
    return jwt.encode(claims, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Returns the claims, or raises ValueError for a bad or expired token."""
    if not JWT_SECRET_KEY:
        raise ValueError("Token signing key is not configured")
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired token") from exc
