"""
Flood report service — submission, listing, and the guarded status update.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from floodwatch.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from floodwatch.core.security import CurrentUser
from floodwatch.models.flood_reports import (
    DESCRIPTION_MAX_LENGTH,
    LOCATION_MAX_LENGTH,
    SEVERITIES,
    STATUSES,
    FloodReport,
)
from floodwatch.services.policy import UPDATE_REPORT_STATUS, AccessPolicy, policy

logger = logging.getLogger(__name__)


@dataclass
class NewReport:
    # Raw submissions may carry any JSON type; validate_new_report types them.
    severity: Any
    location: Any
    description: Any = None
    latitude: Any = None
    longitude: Any = None


@dataclass
class ReportPage:
    items: List[FloodReport]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def submit_report(db: Session, report: NewReport, caller: CurrentUser) -> FloodReport:
    """Persist a report attributed to the authenticated caller."""
    report = validate_new_report(report)
    record = FloodReport(
        severity=report.severity,
        location=report.location,
        description=report.description,
        latitude=report.latitude,
        longitude=report.longitude,
        reported_by=caller.user_id,
        status="active",
    )
    db.add(record)
    _commit(db)
    db.refresh(record)

    logger.info(
        "New flood report submitted",
        extra={
            "report_id": record.id,
            "severity": record.severity,
            "user_id": caller.user_id,
        },
    )
    return record


def list_reports(
    db: Session,
    severity: Optional[str] = None,
    status: Optional[str] = None,
    reported_by: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> ReportPage:
    """Newest first, filtered, one page at a time."""
    query = select(FloodReport)
    if severity:
        query = query.where(FloodReport.severity == severity)
    if status:
        query = query.where(FloodReport.status == status)
    if reported_by:
        query = query.where(FloodReport.reported_by == reported_by)

    total = db.scalar(select(func.count()).select_from(query.subquery())) or 0
    items = db.scalars(
        query.order_by(FloodReport.created_at.desc(), FloodReport.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return ReportPage(items=list(items), total=total, page=page, limit=limit)


def get_report(db: Session, report_id: str) -> FloodReport:
    report = db.get(FloodReport, report_id)
    if report is None:
        raise NotFoundError("Flood report", report_id)
    return report


def update_status(
    db: Session,
    report_id: str,
    status: str,
    caller: CurrentUser,
    access_policy: AccessPolicy = policy,
) -> FloodReport:
    """
    Change a report's status. Only the reporting account or an admin may do
    so; on denial the report is left untouched.
    """
    validate_status(status)
    report = get_report(db, report_id)

    try:
        access_policy.check(caller, report, UPDATE_REPORT_STATUS)
    except AuthorizationError:
        logger.warning(
            "Denied flood report status change",
            extra={"report_id": report.id, "user_id": caller.user_id},
        )
        raise

    report.status = status
    report.updated_at = datetime.now(timezone.utc)
    _commit(db)
    db.refresh(report)

    logger.info(
        "Flood report status updated",
        extra={"report_id": report.id, "status": status, "updated_by": caller.user_id},
    )
    return report


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError(str(exc)) from exc


def _parse_coordinate(value: Any, bound: float) -> float:
    """Return the value as a float inside [-bound, bound], or raise ValueError."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(value)
    number = float(value)
    if not math.isfinite(number) or not -bound <= number <= bound:
        raise ValueError(value)
    return number


def validate_new_report(report: NewReport) -> NewReport:
    """
    Check every field of a raw submission and raise one ValidationError
    listing all failures. Returns a cleaned copy with typed values.
    """
    errors: List[dict] = []
    severity, location, description = report.severity, report.location, report.description
    latitude = longitude = None

    if severity not in SEVERITIES:
        errors.append({"field": "severity", "message": "Invalid severity level"})
    if not isinstance(location, str) or not location.strip():
        errors.append({"field": "location", "message": "Location is required"})
    elif len(location.strip()) > LOCATION_MAX_LENGTH:
        errors.append({"field": "location", "message": "Location too long"})
    if description is not None and not isinstance(description, str):
        errors.append({"field": "description", "message": "Invalid description"})
    elif description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append({"field": "description", "message": "Description too long"})
    if report.latitude is not None:
        try:
            latitude = _parse_coordinate(report.latitude, 90)
        except ValueError:
            errors.append({"field": "latitude", "message": "Invalid latitude"})
    if report.longitude is not None:
        try:
            longitude = _parse_coordinate(report.longitude, 180)
        except ValueError:
            errors.append({"field": "longitude", "message": "Invalid longitude"})
    if errors:
        raise ValidationError(errors)

    return NewReport(
        severity=severity,
        location=location.strip(),
        description=description,
        latitude=latitude,
        longitude=longitude,
    )


def validate_status(status: str) -> None:
    if status not in STATUSES:
        raise ValidationError(
            [{"field": "status", "message": "Invalid status value"}],
            message="Invalid status value",
        )
