"""
FloodWatch — Security Layer
bcrypt password hashing, JWT creation/verification, bearer-token auth dependency.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from floodwatch.config import get_settings
from floodwatch.core.exceptions import AuthenticationError
from floodwatch.database import get_db
from floodwatch.models.users import User

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a secret.
BCRYPT_MAX_PASSWORD_BYTES = 72

# auto_error=False so a missing header is a 401 from us, not FastAPI's default.
bearer_scheme = HTTPBearer(auto_error=False)


# ─── Password hashing ─────────────────────────────────────────────────────────


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of the given plain-text password."""
    rounds = get_settings().BCRYPT_ROUNDS
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if the plain password matches the hash."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        # Malformed stored hash or an over-long secret.
        return False


# ─── JWT ──────────────────────────────────────────────────────────────────────


class InvalidTokenError(Exception):
    """Token is malformed, tampered with, expired or missing required claims."""


class TokenExpiredError(InvalidTokenError):
    """Token signature is valid but its expiry has passed."""


def create_access_token(
    user_id: str,
    email: str,
    now: Optional[datetime] = None,
) -> str:
    """
    Create a signed JWT access token.

    :param user_id: Account identifier, stored as the ``sub`` claim.
    :param email: Account email, stored as the ``email`` claim.
    :param now: Issuance time; defaults to the current UTC time.
    """
    settings = get_settings()
    issued_at = now or datetime.now(tz=timezone.utc)
    expire = issued_at + timedelta(days=settings.JWT_EXPIRY_DAYS)

    payload: Dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "iat": issued_at,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT access token.
    Raises TokenExpiredError or InvalidTokenError on any failure.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError as exc:
        raise TokenExpiredError(str(exc)) from exc
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    if not payload.get("sub") or not payload.get("email"):
        raise InvalidTokenError("Token missing 'sub' or 'email' claim")
    return payload


# ─── FastAPI dependency ───────────────────────────────────────────────────────


class CurrentUser:
    """Represents the authenticated caller resolved from a bearer token."""

    def __init__(
        self, user_id: str, email: str, role: str, raw_claims: Dict[str, Any]
    ) -> None:
        self.user_id = user_id
        self.email = email
        self.role = role
        self.raw_claims = raw_claims

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"CurrentUser(user_id={self.user_id!r}, role={self.role!r})"


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> CurrentUser:
    """
    FastAPI dependency: extracts and validates the Bearer JWT, then resolves
    the account's current role. Every failure is the same generic 401.
    """
    if credentials is None:
        raise AuthenticationError()

    try:
        payload = decode_access_token(credentials.credentials)
    except TokenExpiredError:
        logger.info("Rejected expired access token")
        raise AuthenticationError()
    except InvalidTokenError as exc:
        logger.info("Rejected invalid access token", extra={"reason": str(exc)})
        raise AuthenticationError()

    user = db.get(User, payload["sub"])
    if user is None:
        logger.info("Token subject no longer exists", extra={"user_id": payload["sub"]})
        raise AuthenticationError()

    return CurrentUser(
        user_id=user.id, email=user.email, role=user.role, raw_claims=payload
    )
