from typing import Any

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ohplus.core.security import display_name, require_permission
from ohplus.db.firestore import get_db
from ohplus.services import reports

router = APIRouter(tags=["Service Reports"])


class ReportAttachment(BaseModel):
    note: str = ""
    fileName: str | None = None
    fileType: str | None = None
    fileUrl: str | None = None


class ReportCreate(BaseModel):
    siteId: str = Field(..., min_length=1)
    siteName: str = ""
    siteCode: str | None = None
    client: str = ""
    clientId: str = ""
    joNumber: str | None = None
    joType: str | None = None
    bookingDates: dict[str, Any] = {}
    breakdate: str | None = None
    sales: str = ""
    reportType: str = Field(..., min_length=1)
    date: str | None = None
    attachments: list[ReportAttachment] = []
    status: str = "draft"
    location: str | None = None
    category: str = "logistics"
    subcategory: str = ""
    priority: str = "medium"
    completionPercentage: float = 0
    tags: list[str] = []
    assignedTo: str | None = None
    product: dict[str, Any] | None = None
    descriptionOfWork: str | None = None
    installationStatus: str | None = None
    installationTimeline: str | None = None
    delayReason: str | None = None
    delayDays: str | None = None


class ReportUpdate(BaseModel):
    siteName: str | None = None
    client: str | None = None
    reportType: str | None = None
    date: str | None = None
    attachments: list[ReportAttachment] | None = None
    status: str | None = None
    location: str | None = None
    priority: str | None = None
    completionPercentage: float | None = None
    tags: list[str] | None = None
    assignedTo: str | None = None
    product: dict[str, Any] | None = None
    descriptionOfWork: str | None = None
    installationStatus: str | None = None
    installationTimeline: str | None = None
    delayReason: str | None = None
    delayDays: str | None = None


class ReplenishSend(BaseModel):
    to: list[str] = Field(..., min_length=1)
    cc: list[str] | None = None
    subject: str | None = None
    message: str | None = None


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{filename}"',
            "Cache-Control": "no-store",
        },
    )


@router.get("/reports")
def list_reports(
    seller_id: str | None = None,
    status_filter: str | None = Query(None, alias="status"),
    report_type: str | None = Query(None, alias="type"),
    current_user: dict = Depends(require_permission("Service Reports", "read")),
    db=Depends(get_db),
):
    return {
        "reports": reports.list_reports(
            db,
            company_id=current_user.get("company_id"),
            seller_id=seller_id,
            status=status_filter,
            report_type=report_type,
        )
    }


@router.get("/reports/recent")
def recent_reports(
    limit: int = Query(10, ge=1, le=50),
    current_user: dict = Depends(require_permission("Service Reports", "read")),
    db=Depends(get_db),
):
    return {"reports": reports.recent_reports(db, current_user.get("company_id"), limit)}


@router.post("/reports", status_code=status.HTTP_201_CREATED)
def create_report(
    payload: ReportCreate,
    current_user: dict = Depends(require_permission("Service Reports", "create")),
    db=Depends(get_db),
):
    return reports.create_report(db, payload.model_dump(), current_user, display_name(current_user))


@router.post("/reports/post", status_code=status.HTTP_201_CREATED)
def post_report(
    payload: ReportCreate,
    current_user: dict = Depends(require_permission("Service Reports", "create")),
    db=Depends(get_db),
):
    return reports.post_report(db, payload.model_dump(), current_user, display_name(current_user))


@router.get("/reports/{report_id}")
def get_report(
    report_id: str,
    current_user: dict = Depends(require_permission("Service Reports", "read")),
    db=Depends(get_db),
):
    return reports.get_report(db, report_id)


@router.patch("/reports/{report_id}")
def update_report(
    report_id: str,
    payload: ReportUpdate,
    current_user: dict = Depends(require_permission("Service Reports", "update")),
    db=Depends(get_db),
):
    return reports.update_report(db, report_id, payload.model_dump(exclude_unset=True))


@router.delete("/reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_report(
    report_id: str,
    current_user: dict = Depends(require_permission("Service Reports", "delete")),
    db=Depends(get_db),
):
    reports.delete_report(db, report_id)


@router.get("/reports/{report_id}/pdf")
def download_report_pdf(
    report_id: str,
    current_user: dict = Depends(require_permission("Service Reports", "read")),
    db=Depends(get_db),
):
    return _pdf_response(*reports.report_pdf(db, report_id))


@router.get("/reports/replenish/{request_id}/pdf")
def download_replenish_pdf(
    request_id: str,
    current_user: dict = Depends(require_permission("Finance", "read")),
    db=Depends(get_db),
):
    return _pdf_response(*reports.replenish_pdf(db, request_id, display_name(current_user)))


@router.post("/reports/replenish/{request_id}/send")
def send_replenish_report(
    request_id: str,
    payload: ReplenishSend,
    current_user: dict = Depends(require_permission("Finance", "create")),
    db=Depends(get_db),
):
    result = reports.send_replenish_report(
        db,
        request_id,
        payload.to,
        current_user,
        prepared_by=display_name(current_user),
        cc=payload.cc,
        subject=payload.subject,
        message=payload.message,
    )
    return {"success": True, **result}
