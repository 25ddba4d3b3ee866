from typing import Any

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ohplus.core.security import display_name, require_permission
from ohplus.db.firestore import get_db
from ohplus.services import bookings, job_orders, quotations
from ohplus.services.pdf import render_quotation_pdf

router = APIRouter(tags=["Quotations"])


class QuotationCreate(BaseModel):
    product_ids: list[str] = Field(..., min_length=1)
    start_date: str
    end_date: str
    client: dict[str, Any] = {}
    notes: str = ""
    valid_until: str | None = None
    campaignId: str | None = None
    proposalId: str | None = None
    seller_id: str | None = None


class QuotationUpdate(BaseModel):
    product_ids: list[str] | None = None
    start_date: str | None = None
    end_date: str | None = None
    client: dict[str, Any] | None = None
    notes: str | None = None
    valid_until: str | None = None
    status: str | None = None


class StatusUpdate(BaseModel):
    status: str


class QuotationEmail(BaseModel):
    to: list[str] | None = None
    cc: list[str] | None = None
    subject: str | None = None
    body: str | None = None


class JobOrderCreate(BaseModel):
    notes: str | None = None


@router.get("/quotations")
def list_quotations(
    limit: int = Query(20, ge=1, le=100),
    last_id: str | None = None,
    campaign_id: str | None = None,
    mine: bool = False,
    current_user: dict = Depends(require_permission("Quotations", "read")),
    db=Depends(get_db),
):
    if campaign_id:
        items = quotations.list_by_campaign(db, campaign_id)
        return {"items": items, "lastId": None, "hasMore": False}
    if mine:
        return quotations.list_paginated(db, current_user["uid"], limit, last_id)
    items = quotations.list_by_company(db, current_user.get("company_id"))
    return {"items": items, "lastId": None, "hasMore": False}


@router.post("/quotations", status_code=status.HTTP_201_CREATED)
def create_quotation(
    payload: QuotationCreate,
    current_user: dict = Depends(require_permission("Quotations", "create")),
    db=Depends(get_db),
):
    return quotations.create_quotation(
        db, payload.model_dump(), current_user["uid"], current_user.get("company_id")
    )


@router.get("/quotations/{quotation_id}")
def get_quotation(
    quotation_id: str,
    current_user: dict = Depends(require_permission("Quotations", "read")),
    db=Depends(get_db),
):
    return quotations.get_quotation(db, quotation_id)


@router.patch("/quotations/{quotation_id}")
def update_quotation(
    quotation_id: str,
    payload: QuotationUpdate,
    current_user: dict = Depends(require_permission("Quotations", "update")),
    db=Depends(get_db),
):
    return quotations.update_quotation(
        db, quotation_id, payload.model_dump(exclude_unset=True), display_name(current_user)
    )


@router.patch("/quotations/{quotation_id}/status")
def update_quotation_status(
    quotation_id: str,
    payload: StatusUpdate,
    current_user: dict = Depends(require_permission("Quotations", "update")),
    db=Depends(get_db),
):
    return quotations.update_quotation_status(db, quotation_id, payload.status)


@router.get("/quotations/{quotation_id}/pdf")
def download_quotation_pdf(
    quotation_id: str,
    current_user: dict = Depends(require_permission("Quotations", "read")),
    db=Depends(get_db),
):
    quotation = quotations.get_quotation(db, quotation_id)
    filename = f"{quotation.get('quotation_number') or quotation_id}.pdf"
    return Response(
        content=render_quotation_pdf(quotation),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@router.post("/quotations/{quotation_id}/email")
def email_quotation(
    quotation_id: str,
    payload: QuotationEmail,
    current_user: dict = Depends(require_permission("Quotations", "update")),
    db=Depends(get_db),
):
    return quotations.send_quotation(
        db,
        quotation_id,
        display_name(current_user),
        user_id=current_user["uid"],
        to=payload.to,
        cc=payload.cc,
        subject=payload.subject,
        body=payload.body,
    )


@router.post("/quotations/{quotation_id}/booking", status_code=status.HTTP_201_CREATED)
def create_booking(
    quotation_id: str,
    current_user: dict = Depends(require_permission("Bookings", "create")),
    db=Depends(get_db),
):
    quotation = quotations.get_quotation(db, quotation_id)
    booking = bookings.create_booking_from_quotation(
        db, quotation, current_user["uid"], current_user.get("company_id")
    )
    quotations.update_quotation_status(db, quotation_id, "reserved")
    return booking


@router.post("/quotations/{quotation_id}/job-order", status_code=status.HTTP_201_CREATED)
def create_job_order(
    quotation_id: str,
    payload: JobOrderCreate,
    current_user: dict = Depends(require_permission("Job Orders", "create")),
    db=Depends(get_db),
):
    return job_orders.create_from_quotation(
        db,
        quotation_id,
        current_user["uid"],
        display_name(current_user),
        current_user.get("company_id"),
        payload.notes,
    )
