"""Password hashing, bearer tokens and the authentication dependency."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import cache
from typing import Any, Dict

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pwdlib import PasswordHash
from pwdlib.exceptions import PwdlibError

from .config import get_settings

LOG = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


class InvalidTokenError(RuntimeError):
    """Raised when a bearer token is missing, tampered with or expired."""


@dataclass(frozen=True)
class TokenIdentity:
    user_id: int
    email: str


@cache
def _password_hasher() -> PasswordHash:
    return PasswordHash.recommended()


def hash_password(password: str) -> str:
    """Hash ``password`` with a fresh random salt (Argon2)."""
    return _password_hasher().hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a stored hash; unreadable hashes never match."""
    try:
        return _password_hasher().verify(password, password_hash)
    except PwdlibError:
        LOG.warning("Stored password hash could not be identified")
        return False


def issue_token(
    user_id: int,
    email: str,
    *,
    secret: str | None = None,
    ttl: timedelta | None = None,
    now: datetime | None = None,
) -> str:
    """Sign a token carrying the user's id and email.

    ``secret`` and ``ttl`` default to the process settings; ``now`` exists so
    callers can mint already-expired tokens.
    """
    settings = get_settings()
    issued_at = now or datetime.now(tz=UTC)
    lifetime = ttl if ttl is not None else timedelta(days=settings.token_ttl_days)
    payload: Dict[str, Any] = {
        "id": user_id,
        "email": email,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + lifetime).timestamp()),
    }
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=JWT_ALGORITHM)


def authenticate(token: str, *, secret: str | None = None) -> TokenIdentity:
    """Verify signature and expiry and return the identity embedded in ``token``."""
    try:
        payload = jwt.decode(
            token,
            secret or get_settings().jwt_secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise InvalidTokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError("Invalid token") from exc

    user_id = payload.get("id")
    email = payload.get("email")
    if not isinstance(user_id, int) or not isinstance(email, str):
        raise InvalidTokenError("Invalid token")
    return TokenIdentity(user_id=user_id, email=email)


def require_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenIdentity:
    """FastAPI dependency gating protected routes behind a valid bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return authenticate(credentials.credentials)
    except InvalidTokenError as exc:
        LOG.info("Rejected bearer token: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


__all__ = [
    "InvalidTokenError",
    "TokenIdentity",
    "authenticate",
    "hash_password",
    "issue_token",
    "require_identity",
    "verify_password",
]
