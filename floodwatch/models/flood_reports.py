"""
Flood report model.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, DateTime, Float, Index, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from floodwatch.database import Base

SEVERITIES = ("light", "moderate", "severe")
STATUSES = ("active", "resolved", "false_report")
ANONYMOUS_REPORTER = "anonymous"
DESCRIPTION_MAX_LENGTH = 1000
LOCATION_MAX_LENGTH = 255


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FloodReport(Base):
    __tablename__ = "flood_reports"
    __table_args__ = (
        Index("ix_flood_reports_severity_status", "severity", "status"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    severity: Mapped[str] = mapped_column(
        SAEnum(*SEVERITIES, name="flood_severity_enum"), nullable=False
    )
    location: Mapped[str] = mapped_column(String(LOCATION_MAX_LENGTH), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # Advisory reference to users.id; no foreign key.
    reported_by: Mapped[str] = mapped_column(
        String(36), nullable=False, default=ANONYMOUS_REPORTER, index=True
    )
    status: Mapped[str] = mapped_column(
        SAEnum(*STATUSES, name="flood_status_enum"),
        nullable=False,
        default="active",
    )
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity,
            "location": self.location,
            "description": self.description,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "reportedBy": self.reported_by,
            "status": self.status,
            "verified": self.verified,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def __repr__(self):
        return (
            f"<FloodReport(id={self.id}, severity={self.severity}, "
            f"status={self.status})>"
        )
