import logging

from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    DESCENDING,
    create_document,
    get_document,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)
from ohplus.services import emails
from ohplus.services.pdf import render_replenish_pdf, render_report_pdf

logger = logging.getLogger("ohplus.reports")

REPORT_STATUSES = ("draft", "pending", "posted")

REQUIRED_FIELDS = ("siteId", "reportType")
REPORT_FIELDS = (
    "siteId",
    "siteName",
    "client",
    "clientId",
    "joNumber",
    "joType",
    "bookingDates",
    "breakdate",
    "sales",
    "reportType",
    "date",
    "category",
    "subcategory",
    "priority",
    "completionPercentage",
    "tags",
    "product",
)
OPTIONAL_TEXT_FIELDS = (
    "siteCode",
    "location",
    "assignedTo",
    "installationStatus",
    "installationTimeline",
    "delayReason",
    "delayDays",
    "descriptionOfWork",
)


def clean_attachments(attachments: list[dict] | None) -> list[dict]:
    """Keep uploaded attachments only, filling in the display defaults."""
    return [
        {
            "note": attachment.get("note") or "",
            "fileName": attachment["fileName"],
            "fileType": attachment.get("fileType") or "unknown",
            "fileUrl": attachment["fileUrl"],
        }
        for attachment in attachments or []
        if attachment and attachment.get("fileUrl") and attachment.get("fileName")
    ]


def _optional_text(data: dict) -> dict:
    return {
        key: str(data[key]).strip()
        for key in OPTIONAL_TEXT_FIELDS
        if data.get(key) is not None and str(data[key]).strip()
    }


def _check_status(status: str) -> str:
    status = (status or "draft").lower()
    if status not in REPORT_STATUSES:
        raise InvalidInputError(f"Invalid report status: {status}")
    return status


def create_report(db, data: dict, user: dict, created_by_name: str = "") -> dict:
    for field in REQUIRED_FIELDS:
        if not data.get(field):
            raise InvalidInputError(f"{field} is required")
    stamp = utcnow()
    payload = {key: data.get(key) for key in REPORT_FIELDS if data.get(key) is not None}
    payload.update(_optional_text(data))
    payload.update(
        {
            "attachments": clean_attachments(data.get("attachments")),
            "tags": data.get("tags") or [],
            "status": _check_status(data.get("status")),
            "companyId": data.get("companyId") or user.get("company_id"),
            "sellerId": data.get("sellerId") or user.get("uid"),
            "createdBy": user.get("uid"),
            "createdByName": created_by_name,
            "created": stamp,
            "updated": stamp,
        }
    )
    report = create_document(db, collections.REPORTS, payload)
    logger.info("report created id=%s type=%s status=%s", report["id"], payload["reportType"], payload["status"])
    return report


def post_report(db, data: dict, user: dict, created_by_name: str = "") -> dict:
    return create_report(db, {**data, "status": "posted"}, user, created_by_name)


def _with_attachments(report: dict) -> dict:
    if not isinstance(report.get("attachments"), list):
        report["attachments"] = []
    return report


def get_report(db, report_id: str) -> dict:
    return _with_attachments(require_document(db, collections.REPORTS, report_id, "Report"))


def list_reports(
    db,
    company_id: str | None = None,
    seller_id: str | None = None,
    status: str | None = None,
    report_type: str | None = None,
    limit: int | None = None,
) -> list[dict]:
    query = db.collection(collections.REPORTS)
    for field, value in (
        ("companyId", company_id),
        ("sellerId", seller_id),
        ("status", status),
        ("reportType", report_type),
    ):
        if value:
            query = where(query, field, "==", value)
    query = query.order_by("created", direction=DESCENDING)
    if limit:
        query = query.limit(limit)
    return [_with_attachments(report) for report in stream_dicts(query)]


def recent_reports(db, company_id: str, limit: int = 10) -> list[dict]:
    return list_reports(db, company_id=company_id, limit=limit)


def update_report(db, report_id: str, changes: dict) -> dict:
    get_report(db, report_id)
    update = {
        key: value
        for key, value in changes.items()
        if key in REPORT_FIELDS + ("status",) and value not in (None, "")
    }
    update.update(_optional_text(changes))
    if "status" in update:
        update["status"] = _check_status(update["status"])
    if changes.get("attachments") is not None:
        update["attachments"] = clean_attachments(changes["attachments"])
    update["updated"] = utcnow()
    update_document(db, collections.REPORTS, report_id, update)
    return get_report(db, report_id)


def delete_report(db, report_id: str) -> None:
    get_report(db, report_id)
    db.collection(collections.REPORTS).document(report_id).delete()


def report_pdf(db, report_id: str) -> tuple[bytes, str]:
    report = get_report(db, report_id)
    product = get_document(db, collections.PRODUCTS, report.get("siteId")) or report.get("product") or {}
    author = get_document(db, collections.USERS, report.get("createdBy")) or {}
    filename = f"report-{report_id}.pdf"
    return render_report_pdf(report, product, author), filename


def get_finance_request(db, request_id: str) -> dict:
    return require_document(db, collections.FINANCE_REQUESTS, request_id, "Request")


def replenish_filename(request: dict) -> str:
    return f"replenish-request-{request.get('Request No.') or request['id']}.pdf"


def replenish_pdf(db, request_id: str, prepared_by: str = "") -> tuple[bytes, str]:
    request = get_finance_request(db, request_id)
    return render_replenish_pdf(request, prepared_by), replenish_filename(request)


def send_replenish_report(
    db,
    request_id: str,
    to: list[str],
    user: dict,
    prepared_by: str = "",
    cc: list[str] | None = None,
    subject: str | None = None,
    message: str | None = None,
) -> dict:
    request = get_finance_request(db, request_id)
    number = request.get("Request No.") or request_id
    content = render_replenish_pdf(request, prepared_by)
    result = emails.send_email(
        db,
        to=to,
        cc=cc,
        subject=subject or f"Replenishment Request Report - #{number}",
        body=message
        or (
            "Hello,\n\nPlease find attached the replenishment request report "
            f"for Request #{number}.\n\nThank you."
        ),
        email_type="report",
        user_id=user.get("uid"),
        attachments=[emails.EmailAttachment(replenish_filename(request), content)],
        related={"requestId": request_id},
    )
    logger.info("replenish report sent request_id=%s mode=%s", request_id, result["mode"])
    return result
