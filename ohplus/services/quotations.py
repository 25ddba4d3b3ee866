import logging
import math
from datetime import datetime

from ohplus.core.dates import parse_date
from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    DESCENDING,
    create_document,
    get_document,
    paginate,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)
from ohplus.services import emails
from ohplus.services.pdf import render_quotation_pdf
from ohplus.services.products import get_location, get_thumbnail

logger = logging.getLogger("ohplus.quotations")

QUOTATION_STATUSES = ("draft", "sent", "accepted", "rejected", "expired", "viewed", "reserved")


def generate_quotation_number(now: datetime | None = None) -> str:
    now = now or utcnow()
    stamp = str(int(now.timestamp() * 1000))[-4:]
    return f"QT-{now.strftime('%Y%m%d')}-{stamp}"


def calculate_quotation_total(start_date, end_date, items: list[dict]) -> dict:
    """Price the items for the booked period.

    Prices are monthly, so each item is charged ``price / 30`` per day with a
    minimum of one day.
    """
    elapsed = parse_date(end_date) - parse_date(start_date)
    days = math.ceil(elapsed.total_seconds() / 86400)
    billable_days = max(1, days)
    total = 0.0
    for item in items:
        item_total = float(item.get("price") or 0) / 30 * billable_days
        item["item_total_amount"] = item_total
        item["duration_days"] = billable_days
        total += item_total
    return {"duration_days": billable_days, "total_amount": total}


def _items_from_products(db, product_ids: list[str]) -> list[dict]:
    items = []
    for product_id in product_ids:
        product = require_document(db, collections.PRODUCTS, product_id, "Product")
        items.append(
            {
                "product_id": product_id,
                "name": product.get("name", ""),
                "location": get_location(product),
                "price": float(product.get("price") or 0),
                "type": product.get("type", "RENTAL"),
            }
        )
    return items


def create_quotation(db, data: dict, user_id: str, company_id: str) -> dict:
    product_ids = data.get("product_ids") or []
    if not product_ids:
        raise InvalidInputError("At least one product is required")
    if parse_date(data["end_date"]) < parse_date(data["start_date"]):
        raise InvalidInputError("End date must not be before start date")
    items = _items_from_products(db, product_ids)
    totals = calculate_quotation_total(data["start_date"], data["end_date"], items)
    stamp = utcnow()
    quotation = {
        "quotation_number": generate_quotation_number(stamp),
        "client": data.get("client") or {},
        "items": items,
        "start_date": str(data["start_date"]),
        "end_date": str(data["end_date"]),
        "duration_days": totals["duration_days"],
        "total_amount": totals["total_amount"],
        "status": "draft",
        "notes": data.get("notes") or "",
        "valid_until": data.get("valid_until"),
        "campaignId": data.get("campaignId"),
        "proposalId": data.get("proposalId"),
        "company_id": company_id,
        "created_by": user_id,
        "seller_id": data.get("seller_id") or user_id,
        "created": stamp,
        "updated": stamp,
    }
    return create_document(db, collections.QUOTATIONS, quotation)


def get_quotation(db, quotation_id: str) -> dict:
    quotation = require_document(db, collections.QUOTATIONS, quotation_id, "Quotation")
    enriched = []
    for item in quotation.get("items") or []:
        product = get_document(db, collections.PRODUCTS, item.get("product_id"))
        if not product:
            enriched.append(item)
            continue
        merged = {**product, **item}
        merged.pop("id", None)
        merged["price"] = item.get("price", product.get("price"))
        merged["media_url"] = get_thumbnail(product)
        enriched.append(merged)
    quotation["items"] = enriched
    return quotation


def update_quotation(db, quotation_id: str, changes: dict, user_name: str) -> dict:
    current = require_document(db, collections.QUOTATIONS, quotation_id, "Quotation")
    changes = {k: v for k, v in changes.items() if v is not None}
    if "status" in changes and changes["status"] not in QUOTATION_STATUSES:
        raise InvalidInputError(f"Invalid quotation status: {changes['status']}")
    if {"start_date", "end_date", "product_ids"} & changes.keys():
        product_ids = changes.pop("product_ids", None)
        items = (
            _items_from_products(db, product_ids)
            if product_ids
            else [dict(item) for item in current.get("items") or []]
        )
        start = changes.get("start_date", current.get("start_date"))
        end = changes.get("end_date", current.get("end_date"))
        totals = calculate_quotation_total(start, end, items)
        changes.update(
            {
                "items": items,
                "duration_days": totals["duration_days"],
                "total_amount": totals["total_amount"],
            }
        )
    changes.update({"updated": utcnow(), "updated_by": user_name})
    update_document(db, collections.QUOTATIONS, quotation_id, changes)
    return get_quotation(db, quotation_id)


def update_quotation_status(db, quotation_id: str, status: str) -> dict:
    if status not in QUOTATION_STATUSES:
        raise InvalidInputError(f"Invalid quotation status: {status}")
    require_document(db, collections.QUOTATIONS, quotation_id, "Quotation")
    update_document(db, collections.QUOTATIONS, quotation_id, {"status": status, "updated": utcnow()})
    logger.info("quotation status id=%s status=%s", quotation_id, status)
    return get_quotation(db, quotation_id)


def list_by_campaign(db, campaign_id: str) -> list[dict]:
    query = where(db.collection(collections.QUOTATIONS), "campaignId", "==", campaign_id)
    return stream_dicts(query)


def list_by_creator(db, user_id: str) -> list[dict]:
    query = where(db.collection(collections.QUOTATIONS), "created_by", "==", user_id)
    return stream_dicts(query.order_by("created", direction=DESCENDING))


def list_paginated(db, seller_id: str, limit: int = 20, last_id: str | None = None) -> dict:
    query = where(db.collection(collections.QUOTATIONS), "seller_id", "==", seller_id)
    query = query.order_by("created", direction=DESCENDING)
    return paginate(db, collections.QUOTATIONS, query, limit, last_id)


def list_by_company(db, company_id: str) -> list[dict]:
    query = where(db.collection(collections.QUOTATIONS), "company_id", "==", company_id)
    return stream_dicts(query)


def email_body(quotation: dict, sender_name: str) -> str:
    client = quotation.get("client") or {}
    return (
        f"Dear {client.get('name') or 'Valued Client'},\n\n"
        f"Please find attached quotation {quotation.get('quotation_number')} "
        f"for the period {quotation.get('start_date')} to {quotation.get('end_date')}.\n"
        f"Total amount: PHP {float(quotation.get('total_amount') or 0):,.2f}\n\n"
        f"Best regards,\n{sender_name}"
    )


def stamp_sent(db, quotation_id: str) -> None:
    update_document(
        db,
        collections.QUOTATIONS,
        quotation_id,
        {"status": "sent", "sent_at": utcnow(), "updated": utcnow()},
    )


def send_quotation(
    db,
    quotation_id: str,
    sender_name: str,
    user_id: str | None = None,
    to: list[str] | None = None,
    cc: list[str] | None = None,
    subject: str | None = None,
    body: str | None = None,
) -> dict:
    quotation = get_quotation(db, quotation_id)
    recipients = to or [email for email in [(quotation.get("client") or {}).get("email")] if email]
    if not recipients:
        raise InvalidInputError("Quotation client has no email address")
    attachment = emails.EmailAttachment(
        filename=f"{quotation.get('quotation_number') or quotation_id}.pdf",
        content=render_quotation_pdf(quotation),
    )
    result = emails.send_email(
        db,
        to=recipients,
        cc=cc,
        subject=subject or f"Quotation {quotation.get('quotation_number')}",
        body=body or email_body(quotation, sender_name),
        email_type="quotation",
        user_id=user_id,
        attachments=[attachment],
        related={"quotationId": quotation_id},
    )
    stamp_sent(db, quotation_id)
    logger.info("quotation sent id=%s mode=%s", quotation_id, result.get("mode"))
    return result
