import logging
from datetime import timedelta

from ohplus.core.config import settings
from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    DESCENDING,
    create_document,
    now_ms,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)
from ohplus.services import emails
from ohplus.services.products import get_location
from ohplus.services.public_access import issue_access_code, open_public, strip_secrets

logger = logging.getLogger("ohplus.proposals")

PROPOSAL_STATUSES = ("draft", "sent", "viewed", "accepted", "declined")
PUBLIC_DECISIONS = ("accepted", "declined")
VALIDITY_DAYS = 30

CLIENT_FIELDS = (
    "id",
    "company",
    "contactPerson",
    "email",
    "phone",
    "address",
    "industry",
    "targetAudience",
    "campaignObjective",
    "designation",
    "company_id",
)


def clean_client(client: dict | None) -> dict:
    client = client or {}
    return {field: client.get(field) or "" for field in CLIENT_FIELDS}


def proposal_product(product: dict) -> dict:
    specs = product.get("specs_rental") or {}
    return {
        "id": product["id"],
        "name": product.get("name") or "",
        "type": product.get("type") or "",
        "price": float(product.get("price") or 0),
        "location": get_location(product),
        "site_code": product.get("site_code") or "",
        "media": product.get("media") or [],
        "specs_rental": {
            "location": specs.get("location") or "",
            "traffic_count": specs.get("traffic_count") or 0,
            "elevation": specs.get("elevation") or 0,
            "height": specs.get("height") or 0,
            "width": specs.get("width") or 0,
            "audience_type": specs.get("audience_type") or "",
        }
        if specs
        else None,
        "description": product.get("description") or "",
    }


def total_amount(products: list[dict]) -> float:
    total = 0.0
    for product in products:
        try:
            total += float(product.get("price") or 0)
        except (TypeError, ValueError):
            continue
    return total


def _load_products(db, product_ids: list[str]) -> list[dict]:
    return [
        proposal_product(require_document(db, collections.PRODUCTS, product_id, "Product"))
        for product_id in product_ids
    ]


def create_proposal(
    db,
    title: str,
    client: dict,
    product_ids: list[str],
    user_id: str,
    company_id: str | None,
    notes: str = "",
    custom_message: str = "",
    valid_until=None,
    campaign_id: str | None = None,
) -> dict:
    if not product_ids:
        raise InvalidInputError("At least one product is required")
    products = _load_products(db, product_ids)
    stamp = utcnow()
    data = {
        "title": title or "",
        "proposalNumber": f"PP{now_ms()}",
        "client": clean_client(client),
        "products": products,
        "totalAmount": total_amount(products),
        "validUntil": valid_until or stamp + timedelta(days=VALIDITY_DAYS),
        "notes": notes or "",
        "customMessage": custom_message or "",
        "createdBy": user_id,
        "companyId": company_id,
        "campaignId": campaign_id,
        "status": "draft",
        "deleted": False,
        "createdAt": stamp,
        "updatedAt": stamp,
    }
    return create_document(db, collections.PROPOSALS, data)


def get_proposal(db, proposal_id: str) -> dict:
    return strip_secrets(require_document(db, collections.PROPOSALS, proposal_id, "Proposal"))


def list_proposals(db, company_id: str | None = None, user_id: str | None = None) -> list[dict]:
    query = db.collection(collections.PROPOSALS)
    if company_id:
        query = where(query, "companyId", "==", company_id)
    if user_id:
        query = where(query, "createdBy", "==", user_id)
    proposals = stream_dicts(query.order_by("createdAt", direction=DESCENDING))
    return [strip_secrets(p) for p in proposals if p.get("deleted") is not True]


def update_proposal(db, proposal_id: str, changes: dict) -> dict:
    get_proposal(db, proposal_id)
    update: dict = {}
    for key in ("title", "notes", "customMessage", "validUntil", "campaignId"):
        if changes.get(key) is not None:
            update[key] = changes[key]
    if changes.get("status") is not None:
        if changes["status"] not in PROPOSAL_STATUSES:
            raise InvalidInputError(f"Invalid proposal status: {changes['status']}")
        update["status"] = changes["status"]
    for field, value in (changes.get("client") or {}).items():
        if field in CLIENT_FIELDS and value is not None:
            update[f"client.{field}"] = value
    if changes.get("product_ids") is not None:
        products = _load_products(db, changes["product_ids"])
        update["products"] = products
        update["totalAmount"] = total_amount(products)
    update["updatedAt"] = utcnow()
    update_document(db, collections.PROPOSALS, proposal_id, update)
    return get_proposal(db, proposal_id)


def update_status(db, proposal_id: str, status: str) -> dict:
    if status not in PROPOSAL_STATUSES:
        raise InvalidInputError(f"Invalid proposal status: {status}")
    get_proposal(db, proposal_id)
    update_document(db, collections.PROPOSALS, proposal_id, {"status": status, "updatedAt": utcnow()})
    return get_proposal(db, proposal_id)


def delete_proposal(db, proposal_id: str) -> None:
    get_proposal(db, proposal_id)
    update_document(db, collections.PROPOSALS, proposal_id, {"deleted": True, "updatedAt": utcnow()})


def public_link(proposal_id: str) -> str:
    return f"{settings.APP_BASE_URL}/proposals/view/{proposal_id}"


def send_proposal(
    db,
    proposal_id: str,
    user: dict,
    subject: str | None = None,
    message: str | None = None,
    cc: list[str] | None = None,
) -> dict:
    proposal = get_proposal(db, proposal_id)
    recipient = (proposal.get("client") or {}).get("email")
    if not recipient:
        raise InvalidInputError("Proposal client has no email address")
    code = issue_access_code(db, collections.PROPOSALS, proposal_id)
    sender = f"{user.get('first_name', '')} {user.get('last_name', '')}".strip() or user.get("email", "")
    body = (
        f"{message or proposal.get('customMessage') or 'Please review our proposal.'}\n\n"
        f"View it online: {public_link(proposal_id)}\n"
        f"Access code: {code}\n\n"
        f"Best regards,\n{sender}"
    )
    result = emails.send_email(
        db,
        to=[recipient],
        cc=cc,
        subject=subject or f"Proposal: {proposal.get('title')}",
        body=body,
        email_type="proposals",
        user_id=user.get("uid"),
        related={"proposalId": proposal_id},
    )
    if proposal.get("status") == "draft":
        update_document(
            db,
            collections.PROPOSALS,
            proposal_id,
            {"status": "sent", "sentAt": utcnow(), "updatedAt": utcnow()},
        )
    logger.info("proposal sent id=%s mode=%s", proposal_id, result.get("mode"))
    return result


def view_public(db, proposal_id: str, password: str) -> dict:
    return open_public(db, collections.PROPOSALS, proposal_id, password, "proposal", "Proposal")


def respond_public(db, proposal_id: str, decision: str) -> dict:
    if decision not in PUBLIC_DECISIONS:
        raise InvalidInputError(f"Invalid decision: {decision}")
    proposal = get_proposal(db, proposal_id)
    if proposal.get("status") not in ("sent", "viewed"):
        raise InvalidInputError("Proposal can no longer be answered")
    update_document(
        db,
        collections.PROPOSALS,
        proposal_id,
        {"status": decision, "respondedAt": utcnow(), "updatedAt": utcnow()},
    )
    return get_proposal(db, proposal_id)
