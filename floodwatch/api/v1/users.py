"""
FloodWatch — API: Accounts (admin listing, self-service profile)
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from floodwatch.api.v1.auth import check_password_length
from floodwatch.core.rate_limit import api_rate_limit
from floodwatch.core.security import CurrentUser, get_current_user
from floodwatch.database import get_db
from floodwatch.models.users import User
from floodwatch.services import auth as auth_service
from floodwatch.services.policy import READ_USERS, policy

router = APIRouter(
    prefix="/users", tags=["users"], dependencies=[Depends(api_rate_limit)]
)


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = Field(None, min_length=6)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Name is required")
        return v

    @field_validator("newPassword")
    @classmethod
    def new_password_length(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else check_password_length(v)


@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    policy.check(current_user, None, READ_USERS)
    total = db.scalar(select(func.count()).select_from(User)) or 0
    users = db.scalars(
        select(User).order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)
    ).all()
    return {
        "success": True,
        "count": len(users),
        "total": total,
        "data": [u.to_dict() for u in users],
    }


@router.patch("/me")
def update_me(
    body: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    user = auth_service.update_profile(
        db,
        current_user.user_id,
        name=body.name,
        current_password=body.currentPassword,
        new_password=body.newPassword,
    )
    return {"success": True, "message": "Profile updated", "data": user.to_dict()}


@router.get("/{user_id}")
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    policy.check(current_user, None, READ_USERS)
    user = auth_service.get_user(db, user_id)
    return {"success": True, "data": user.to_dict()}
