"""
FloodWatch — API: Authentication (signup, login, two-factor, current account)
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from floodwatch.core.rate_limit import auth_rate_limit
from floodwatch.core.security import (
    BCRYPT_MAX_PASSWORD_BYTES,
    CurrentUser,
    get_current_user,
)
from floodwatch.database import get_db
from floodwatch.services import auth as auth_service
from floodwatch.services.email import email_service

router = APIRouter(
    prefix="/auth", tags=["auth"], dependencies=[Depends(auth_rate_limit)]
)


# ── Request schemas ───────────────────────────────────────────────────────────


def check_password_length(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return value


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return check_password_length(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TwoFactorVerifyRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class TwoFactorSettingRequest(BaseModel):
    enabled: bool


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(
    body: SignupRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    user, token = auth_service.signup(db, body.name, body.email, body.password)
    # Delivered after the response is sent; a slow mail server must not hold signup.
    background_tasks.add_task(email_service.send_welcome_email, user.email, user.name)
    return {
        "success": True,
        "message": "User created successfully",
        "user": user.summary(),
        "token": token,
    }


@router.post("/login")
def login(body: LoginRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Authenticate with email + password. Accounts with two-factor enabled get
    a code by email instead of a token.
    """
    user, token = auth_service.login(db, body.email, body.password)
    if token is None:
        return {
            "success": True,
            "message": "Verification code sent to your email",
            "requiresTwoFactor": True,
        }
    return {
        "success": True,
        "message": "Login successful",
        "user": user.summary(),
        "token": token,
    }


@router.post("/2fa/verify")
def verify_two_factor(
    body: TwoFactorVerifyRequest, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    user, token = auth_service.complete_two_factor_login(db, body.email, body.code)
    return {
        "success": True,
        "message": "Login successful",
        "user": user.summary(),
        "token": token,
    }


@router.put("/2fa")
def set_two_factor(
    body: TwoFactorSettingRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    user = auth_service.set_two_factor(db, current_user.user_id, body.enabled)
    state = "enabled" if user.two_factor_enabled else "disabled"
    return {
        "success": True,
        "message": f"Two-factor authentication {state}",
        "data": user.to_dict(),
    }


@router.get("/me")
def me(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    """Return the currently authenticated account."""
    user = auth_service.get_user(db, current_user.user_id)
    return {"success": True, "data": user.to_dict()}
