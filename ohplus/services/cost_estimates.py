import logging

from ohplus.core.config import settings
from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    DESCENDING,
    create_document,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)
from ohplus.services import emails
from ohplus.services.pdf import render_cost_estimate_pdf
from ohplus.services.public_access import issue_access_code, open_public, strip_secrets

logger = logging.getLogger("ohplus.cost_estimates")

TAX_RATE = 0.12
COST_ESTIMATE_STATUSES = ("draft", "sent", "viewed", "approved", "rejected")
LINE_ITEM_CATEGORIES = (
    "media_cost",
    "production_cost",
    "installation_cost",
    "maintenance_cost",
    "other",
)
STANDARD_ITEMS = (
    ("Creative Design & Production", "production_cost"),
    ("Installation & Setup", "installation_cost"),
    ("Maintenance & Monitoring", "maintenance_cost"),
)


def default_line_items(products: list[dict]) -> list[dict]:
    items = []
    for product in products:
        price = float(product.get("price") or 0)
        items.append(
            {
                "description": f"{product.get('name', '')} - {product.get('location', '')}",
                "quantity": 1,
                "unitPrice": price,
                "totalPrice": price,
                "category": "media_cost",
            }
        )
    for description, category in STANDARD_ITEMS:
        items.append(
            {
                "description": description,
                "quantity": 1,
                "unitPrice": 0,
                "totalPrice": 0,
                "category": category,
            }
        )
    for index, item in enumerate(items, start=1):
        item["id"] = f"item_{index}"
    return items


def normalize_line_items(line_items: list[dict]) -> list[dict]:
    normalized = []
    for index, item in enumerate(line_items, start=1):
        category = item.get("category") or "other"
        if category not in LINE_ITEM_CATEGORIES:
            raise InvalidInputError(f"Invalid line item category: {category}")
        quantity = float(item.get("quantity") or 0)
        unit_price = float(item.get("unitPrice") or 0)
        if quantity < 0 or unit_price < 0:
            raise InvalidInputError("Quantity and unit price must not be negative")
        normalized.append(
            {
                "id": item.get("id") or f"item_{index}",
                "description": item.get("description") or "",
                "quantity": quantity,
                "unitPrice": unit_price,
                "totalPrice": quantity * unit_price,
                "category": category,
            }
        )
    return normalized


def calculate_totals(line_items: list[dict], tax_rate: float = TAX_RATE) -> dict:
    subtotal = sum(float(item.get("totalPrice") or 0) for item in line_items)
    tax_amount = subtotal * tax_rate
    return {
        "subtotal": subtotal,
        "taxRate": tax_rate,
        "taxAmount": tax_amount,
        "totalAmount": subtotal + tax_amount,
    }


def create_from_proposal(
    db,
    proposal_id: str,
    user: dict,
    notes: str = "",
    line_items: list[dict] | None = None,
    send: bool = False,
) -> dict:
    proposal = require_document(db, collections.PROPOSALS, proposal_id, "Proposal")
    items = normalize_line_items(line_items) if line_items else default_line_items(
        proposal.get("products") or []
    )
    stamp = utcnow()
    data = {
        "proposalId": proposal_id,
        "title": f"Cost Estimate for {proposal.get('title', '')}",
        "client": proposal.get("client") or {},
        "lineItems": items,
        **calculate_totals(items),
        "notes": notes or "",
        "createdBy": user["uid"],
        "companyId": proposal.get("companyId") or user.get("company_id"),
        "status": "draft",
        "deleted": False,
        "createdAt": stamp,
        "updatedAt": stamp,
    }
    cost_estimate = create_document(db, collections.COST_ESTIMATES, data)
    if send:
        try:
            send_cost_estimate(db, cost_estimate["id"], user)
        except emails.EmailError:
            logger.warning("cost estimate created but email failed id=%s", cost_estimate["id"])
        except InvalidInputError as exc:
            logger.warning("cost estimate not sent id=%s reason=%s", cost_estimate["id"], exc)
        return get_cost_estimate(db, cost_estimate["id"])
    return cost_estimate


def get_cost_estimate(db, cost_estimate_id: str) -> dict:
    document = require_document(db, collections.COST_ESTIMATES, cost_estimate_id, "Cost estimate")
    return strip_secrets(document)


def list_by_proposal(db, proposal_id: str) -> list[dict]:
    query = where(db.collection(collections.COST_ESTIMATES), "proposalId", "==", proposal_id)
    items = stream_dicts(query.order_by("createdAt", direction=DESCENDING))
    return [strip_secrets(item) for item in items if item.get("deleted") is not True]


def list_by_company(db, company_id: str) -> list[dict]:
    query = where(db.collection(collections.COST_ESTIMATES), "companyId", "==", company_id)
    items = stream_dicts(query.order_by("createdAt", direction=DESCENDING))
    return [strip_secrets(item) for item in items if item.get("deleted") is not True]


def update_cost_estimate(db, cost_estimate_id: str, changes: dict) -> dict:
    get_cost_estimate(db, cost_estimate_id)
    update = {}
    for key in ("title", "notes"):
        if changes.get(key) is not None:
            update[key] = changes[key]
    if changes.get("lineItems") is not None:
        items = normalize_line_items(changes["lineItems"])
        update["lineItems"] = items
        update.update(calculate_totals(items))
    update["updatedAt"] = utcnow()
    update_document(db, collections.COST_ESTIMATES, cost_estimate_id, update)
    return get_cost_estimate(db, cost_estimate_id)


def update_status(
    db,
    cost_estimate_id: str,
    status: str,
    user_id: str | None = None,
    rejection_reason: str | None = None,
) -> dict:
    if status not in COST_ESTIMATE_STATUSES:
        raise InvalidInputError(f"Invalid cost estimate status: {status}")
    get_cost_estimate(db, cost_estimate_id)
    stamp = utcnow()
    update = {"status": status, "updatedAt": stamp}
    if status == "approved":
        update.update({"approvedAt": stamp, "approvedBy": user_id or "client"})
    elif status == "rejected":
        update.update(
            {
                "rejectedAt": stamp,
                "rejectedBy": user_id or "client",
                "rejectionReason": rejection_reason or "",
            }
        )
    update_document(db, collections.COST_ESTIMATES, cost_estimate_id, update)
    return get_cost_estimate(db, cost_estimate_id)


def public_link(cost_estimate_id: str) -> str:
    return f"{settings.APP_BASE_URL}/cost-estimates/view/{cost_estimate_id}"


def send_cost_estimate(db, cost_estimate_id: str, user: dict, cc: list[str] | None = None) -> dict:
    cost_estimate = get_cost_estimate(db, cost_estimate_id)
    recipient = (cost_estimate.get("client") or {}).get("email")
    if not recipient:
        raise InvalidInputError("Cost estimate client has no email address")
    code = issue_access_code(db, collections.COST_ESTIMATES, cost_estimate_id)
    client = cost_estimate.get("client") or {}
    body = (
        f"Dear {client.get('contactPerson') or client.get('company') or 'Valued Client'},\n\n"
        f"Please find attached {cost_estimate.get('title')}.\n"
        f"Total amount: PHP {float(cost_estimate.get('totalAmount') or 0):,.2f}\n\n"
        f"View it online: {public_link(cost_estimate_id)}\n"
        f"Access code: {code}"
    )
    attachment = emails.EmailAttachment(
        filename=f"cost-estimate-{cost_estimate_id}.pdf",
        content=render_cost_estimate_pdf(cost_estimate),
    )
    result = emails.send_email(
        db,
        to=[recipient],
        cc=cc,
        subject=cost_estimate.get("title") or "Cost Estimate",
        body=body,
        email_type="CE",
        user_id=user.get("uid"),
        attachments=[attachment],
        related={"costEstimateId": cost_estimate_id, "proposalId": cost_estimate.get("proposalId")},
    )
    if cost_estimate.get("status") == "draft":
        update_document(
            db,
            collections.COST_ESTIMATES,
            cost_estimate_id,
            {"status": "sent", "sentAt": utcnow(), "updatedAt": utcnow()},
        )
    return result


def view_public(db, cost_estimate_id: str, password: str) -> dict:
    return open_public(
        db, collections.COST_ESTIMATES, cost_estimate_id, password, "cost_estimate", "Cost estimate"
    )


def respond_public(db, cost_estimate_id: str, decision: str, reason: str | None = None) -> dict:
    if decision not in ("approved", "rejected"):
        raise InvalidInputError(f"Invalid decision: {decision}")
    current = get_cost_estimate(db, cost_estimate_id)
    if current.get("status") not in ("sent", "viewed"):
        raise InvalidInputError("Cost estimate can no longer be answered")
    return update_status(db, cost_estimate_id, decision, rejection_reason=reason)
