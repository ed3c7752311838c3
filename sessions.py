"""Signed, expiring session tokens handed out after a successful login."""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from errors import AuthenticationError
from schemas import SessionRecord

ALGORITHM = "HS256"


def create_token(record: SessionRecord, secret_key: str, exp_min: int) -> str:
    payload = {
        "sub": record.uid,
        "email": record.email,
        "role": record.role,
        "username": record.username,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=exp_min),
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def read_token(token: str, secret_key: str) -> SessionRecord:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")
    if not payload.get("sub"):
        raise AuthenticationError("Invalid token")
    return SessionRecord(
        uid=payload["sub"],
        email=payload.get("email", ""),
        role=payload.get("role", "student"),
        username=payload.get("username"),
    )


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise AuthenticationError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid scheme")
    return token.strip()
