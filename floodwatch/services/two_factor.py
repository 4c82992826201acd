"""
Two-factor login codes: issue, email, verify.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from floodwatch.config import get_settings
from floodwatch.core.exceptions import EmailDeliveryError, InvalidTwoFactorCodeError
from floodwatch.models.two_factor import TwoFactorCode
from floodwatch.models.users import User
from floodwatch.services.email import email_service

logger = logging.getLogger(__name__)

CODE_DIGITS = 6


def _hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** CODE_DIGITS):0{CODE_DIGITS}d}"


def issue_code(db: Session, user: User, now: Optional[datetime] = None) -> str:
    """
    Create a fresh code for ``user`` and invalidate any earlier pending one.
    Returns the plain code; only its digest is persisted.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    code = generate_code()

    db.execute(
        update(TwoFactorCode)
        .where(TwoFactorCode.user_id == user.id, TwoFactorCode.consumed_at.is_(None))
        .values(consumed_at=now)
    )
    db.add(
        TwoFactorCode(
            user_id=user.id,
            code_hash=_hash_code(code),
            expires_at=now + timedelta(minutes=settings.TWO_FACTOR_CODE_TTL_MINUTES),
        )
    )
    db.commit()
    return code


def send_code(db: Session, user: User) -> None:
    """Issue a code and email it. Raises EmailDeliveryError if delivery fails."""
    code = issue_code(db, user)
    ttl = get_settings().TWO_FACTOR_CODE_TTL_MINUTES
    if not email_service.send_two_factor_code(user.email, code, ttl):
        raise EmailDeliveryError("two-factor email was not delivered")
    logger.info("Two-factor code sent", extra={"user_id": user.id})


def verify_code(
    db: Session, user: User, code: str, now: Optional[datetime] = None
) -> None:
    """
    Consume the pending code for ``user`` if ``code`` matches.
    Every failure raises the same InvalidTwoFactorCodeError.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    pending = db.scalars(
        select(TwoFactorCode)
        .where(TwoFactorCode.user_id == user.id, TwoFactorCode.consumed_at.is_(None))
        .order_by(TwoFactorCode.created_at.desc())
    ).first()

    if pending is None or _as_utc(pending.expires_at) <= now:
        raise InvalidTwoFactorCodeError()

    if pending.attempts >= settings.TWO_FACTOR_MAX_ATTEMPTS:
        pending.consumed_at = now
        db.commit()
        raise InvalidTwoFactorCodeError()

    if not hmac.compare_digest(pending.code_hash, _hash_code(code.strip())):
        pending.attempts += 1
        db.commit()
        logger.info(
            "Two-factor code mismatch",
            extra={"user_id": user.id, "attempts": pending.attempts},
        )
        raise InvalidTwoFactorCodeError()

    pending.consumed_at = now
    db.commit()
