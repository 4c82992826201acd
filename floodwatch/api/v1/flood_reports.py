"""
FloodWatch — API: Flood reports
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from floodwatch.core.rate_limit import api_rate_limit
from floodwatch.core.security import CurrentUser, get_current_user
from floodwatch.database import get_db
from floodwatch.services import flood_reports as report_service
from floodwatch.services.flood_reports import NewReport, ReportPage

router = APIRouter(
    prefix="/reports", tags=["reports"], dependencies=[Depends(api_rate_limit)]
)


class SubmitReportRequest(BaseModel):
    # Fields stay untyped here: the service parses and checks them together so
    # every failing field is reported in one response.
    # Any client-supplied reporter field is ignored.
    severity: Any = None
    location: Any = None
    description: Any = None
    latitude: Any = None
    longitude: Any = None


class StatusUpdateRequest(BaseModel):
    status: str = ""


def _page_body(result: ReportPage) -> Dict[str, Any]:
    return {
        "success": True,
        "data": [r.to_dict() for r in result.items],
        "count": len(result.items),
        "total": result.total,
        "page": result.page,
        "totalPages": result.total_pages,
    }


@router.post("/submit", status_code=status.HTTP_201_CREATED)
def submit_report(
    body: SubmitReportRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    report = report_service.submit_report(
        db,
        NewReport(
            severity=body.severity,
            location=body.location,
            description=body.description,
            latitude=body.latitude,
            longitude=body.longitude,
        ),
        current_user,
    )
    return {
        "success": True,
        "message": "Flood report submitted successfully",
        "data": report.to_dict(),
    }


@router.get("")
def list_reports(
    severity: Optional[str] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    result = report_service.list_reports(
        db, severity=severity, status=status, page=page, limit=limit
    )
    return _page_body(result)


@router.get("/user/my-reports")
def my_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    result = report_service.list_reports(
        db, reported_by=current_user.user_id, page=page, limit=limit
    )
    return _page_body(result)


@router.get("/{report_id}")
def get_report(report_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    report = report_service.get_report(db, report_id)
    return {"success": True, "data": report.to_dict()}


@router.patch("/{report_id}/status")
def update_report_status(
    report_id: str,
    body: StatusUpdateRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    """Only the reporting account or an admin may change a report's status."""
    report = report_service.update_status(db, report_id, body.status, current_user)
    return {
        "success": True,
        "message": "Report status updated successfully",
        "data": report.to_dict(),
    }
