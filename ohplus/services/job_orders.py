from datetime import datetime

from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    DESCENDING,
    create_document,
    paginate,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)

JOB_ORDER_STATUSES = ("pending", "in_progress", "completed", "cancelled")


def generate_job_order_number(now: datetime | None = None) -> str:
    now = now or utcnow()
    stamp = str(int(now.timestamp() * 1000))[-4:]
    return f"JO-{now.strftime('%Y%m%d')}-{stamp}"


def create_from_quotation(
    db,
    quotation_id: str,
    created_by: str,
    created_by_name: str,
    company_id: str | None = None,
    notes: str | None = None,
) -> dict:
    quotation = require_document(db, collections.QUOTATIONS, quotation_id, "Quotation")
    client = quotation.get("client") or {}
    first = (quotation.get("items") or [{}])[0]
    stamp = utcnow()
    data = {
        "job_order_number": generate_job_order_number(stamp),
        "quotation_id": quotation_id,
        "quotation_number": quotation.get("quotation_number"),
        "client_name": client.get("name") or "",
        "client_email": client.get("email") or "",
        "client_company": client.get("company") or "",
        "product_id": first.get("product_id") or "",
        "product_name": first.get("name") or "",
        "product_location": first.get("location") or "",
        "start_date": quotation.get("start_date"),
        "end_date": quotation.get("end_date"),
        "duration_days": quotation.get("duration_days"),
        "total_amount": quotation.get("total_amount"),
        "status": "pending",
        "created_by": created_by,
        "created_by_name": created_by_name,
        "notes": notes or "",
        "company_id": company_id or quotation.get("company_id"),
        "created": stamp,
        "updated": stamp,
    }
    return create_document(db, collections.JOB_ORDERS, data)


def get_job_order(db, job_order_id: str) -> dict:
    return require_document(db, collections.JOB_ORDERS, job_order_id, "Job order")


def list_by_creator(db, user_id: str) -> list[dict]:
    query = where(db.collection(collections.JOB_ORDERS), "created_by", "==", user_id)
    return stream_dicts(query.order_by("created", direction=DESCENDING))


def list_by_company(db, company_id: str, limit: int = 20, last_id: str | None = None) -> dict:
    query = where(db.collection(collections.JOB_ORDERS), "company_id", "==", company_id)
    query = query.order_by("created", direction=DESCENDING)
    return paginate(db, collections.JOB_ORDERS, query, limit, last_id)


def update_status(db, job_order_id: str, status: str) -> dict:
    if status not in JOB_ORDER_STATUSES:
        raise InvalidInputError(f"Invalid job order status: {status}")
    get_job_order(db, job_order_id)
    update_document(db, collections.JOB_ORDERS, job_order_id, {"status": status, "updated": utcnow()})
    return get_job_order(db, job_order_id)


def assign(db, job_order_id: str, assigned_to: str, assigned_name: str) -> dict:
    job_order = get_job_order(db, job_order_id)
    if job_order.get("status") in ("completed", "cancelled"):
        raise InvalidInputError("Closed job orders cannot be assigned")
    update_document(
        db,
        collections.JOB_ORDERS,
        job_order_id,
        {
            "assigned_to": assigned_to,
            "assigned_name": assigned_name,
            "status": "in_progress",
            "updated": utcnow(),
        },
    )
    return get_job_order(db, job_order_id)
