"""
Account service — signup, login, two-factor completion, profile changes.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from floodwatch.core.exceptions import (
    AccountCreationError,
    DuplicateError,
    InvalidCredentialsError,
    InvalidTwoFactorCodeError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from floodwatch.core.security import create_access_token, hash_password, verify_password
from floodwatch.models.users import User
from floodwatch.services import two_factor

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalars(select(User).where(User.email == normalize_email(email))).first()


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def create_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: str = "user",
) -> User:
    """
    Persist a new account. Raises DuplicateError when the email is taken and
    AccountCreationError when hashing or the insert fails (including a lost
    race against the unique email index).
    """
    email = normalize_email(email)
    if get_user_by_email(db, email) is not None:
        raise DuplicateError()

    try:
        hashed = hash_password(password)
    except (ValueError, TypeError) as exc:
        raise AccountCreationError(f"password hashing failed: {exc}") from exc

    user = User(name=name.strip(), email=email, hashed_password=hashed, role=role)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AccountCreationError("email uniqueness constraint violated") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise AccountCreationError(str(exc)) from exc
    db.refresh(user)
    return user


def signup(db: Session, name: str, email: str, password: str) -> Tuple[User, str]:
    user = create_user(db, name, email, password)
    token = create_access_token(user.id, user.email)
    logger.info("Account created", extra={"user_id": user.id})
    return user, token


@lru_cache
def _dummy_hash() -> str:
    return hash_password("floodwatch-unknown-account")


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Unknown email and wrong password raise the same error. Unknown emails are
    still checked against a throwaway hash so both paths cost one bcrypt round.
    """
    user = get_user_by_email(db, email)
    if user is None:
        verify_password(password, _dummy_hash())
        logger.info("Failed login attempt")
        raise InvalidCredentialsError()
    if not verify_password(password, user.hashed_password):
        logger.info("Failed login attempt")
        raise InvalidCredentialsError()
    return user


def login(db: Session, email: str, password: str) -> Tuple[User, Optional[str]]:
    """
    Verify credentials. Returns ``(user, token)``, or ``(user, None)`` when
    the account requires a two-factor code, in which case one is emailed.
    """
    user = authenticate(db, email, password)
    if user.two_factor_enabled:
        two_factor.send_code(db, user)
        return user, None

    logger.info("Login succeeded", extra={"user_id": user.id})
    return user, create_access_token(user.id, user.email)


def complete_two_factor_login(db: Session, email: str, code: str) -> Tuple[User, str]:
    user = get_user_by_email(db, email)
    if user is None or not user.two_factor_enabled:
        raise InvalidTwoFactorCodeError()
    two_factor.verify_code(db, user, code)
    logger.info("Two-factor login succeeded", extra={"user_id": user.id})
    return user, create_access_token(user.id, user.email)


def set_two_factor(db: Session, user_id: str, enabled: bool) -> User:
    user = get_user(db, user_id)
    user.two_factor_enabled = enabled
    _commit(db)
    db.refresh(user)
    logger.info(
        "Two-factor setting changed", extra={"user_id": user.id, "enabled": enabled}
    )
    return user


def update_profile(
    db: Session,
    user_id: str,
    name: Optional[str] = None,
    current_password: Optional[str] = None,
    new_password: Optional[str] = None,
) -> User:
    user = get_user(db, user_id)
    if name is not None:
        if not name.strip():
            raise ValidationError([{"field": "name", "message": "Name is required"}])
        user.name = name.strip()
    if new_password is not None:
        if current_password is None or not verify_password(
            current_password, user.hashed_password
        ):
            raise ValidationError(
                [{"field": "currentPassword", "message": "Current password is incorrect"}]
            )
        user.hashed_password = hash_password(new_password)
        logger.info("Password changed", extra={"user_id": user.id})
    _commit(db)
    db.refresh(user)
    return user


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError(str(exc)) from exc
