import logging
from datetime import datetime

from firebase_admin import firestore

from ohplus.core.config import settings
from ohplus.core.errors import InvalidInputError, NotFoundError
from ohplus.core.security import generate_access_code
from ohplus.db import collections
from ohplus.db.firestore import (
    DESCENDING,
    create_document,
    doc_to_dict,
    require_document,
    stream_dicts,
    utcnow,
    where,
)
from ohplus.services import emails

logger = logging.getLogger("ohplus.invitations")


def create_code(
    db,
    company_id: str,
    created_by: str,
    description: str = "",
    max_uses: int = 1,
    expires_at: datetime | None = None,
    role: str | None = None,
) -> dict:
    if max_uses < 1:
        raise InvalidInputError("maxUses must be at least 1")
    data = {
        "code": generate_access_code(),
        "companyId": company_id,
        "description": description,
        "role": role,
        "maxUses": max_uses,
        "usedCount": 0,
        "status": "active",
        "createdAt": utcnow(),
        "expiresAt": expires_at,
        "createdBy": created_by,
    }
    return create_document(db, collections.INVITATION_CODES, data)


def list_codes(db, company_id: str) -> list[dict]:
    query = where(db.collection(collections.INVITATION_CODES), "companyId", "==", company_id)
    return stream_dicts(query.order_by("createdAt", direction=DESCENDING))


def get_by_code(db, code: str) -> dict | None:
    query = where(
        db.collection(collections.INVITATION_CODES), "code", "==", (code or "").strip().upper()
    )
    matches = stream_dicts(query.limit(1))
    return matches[0] if matches else None


def _check(invitation: dict | None, now: datetime | None = None) -> dict:
    if not invitation:
        return {"valid": False, "error": "Invalid invitation code"}
    expires_at = invitation.get("expiresAt")
    if expires_at and expires_at < (now or utcnow()):
        return {"valid": False, "error": "Invitation code has expired"}
    if int(invitation.get("usedCount") or 0) >= int(invitation.get("maxUses") or 0):
        return {"valid": False, "error": "Invitation code has reached maximum uses"}
    return {"valid": True, "companyId": invitation.get("companyId"), "role": invitation.get("role")}


def validate_code(db, code: str, now: datetime | None = None) -> dict:
    return _check(get_by_code(db, code), now)


@firestore.transactional
def _redeem(transaction, ref) -> dict:
    validation = _check(doc_to_dict(ref.get(transaction=transaction)))
    if not validation["valid"]:
        raise InvalidInputError(validation["error"])
    transaction.update(ref, {"usedCount": firestore.Increment(1)})
    return validation


def use_code(db, code: str) -> dict:
    invitation = get_by_code(db, code)
    if not invitation:
        raise InvalidInputError("Invalid invitation code")
    ref = db.collection(collections.INVITATION_CODES).document(invitation["id"])
    validation = _redeem(db.transaction(), ref)
    logger.info("invitation code redeemed id=%s", invitation["id"])
    return validation


def delete_code(db, code_id: str) -> None:
    require_document(db, collections.INVITATION_CODES, code_id, "Invitation code")
    db.collection(collections.INVITATION_CODES).document(code_id).delete()


def send_invitation(db, code_id: str, recipients: list[str], user: dict, message: str = "") -> dict:
    invitation = require_document(db, collections.INVITATION_CODES, code_id, "Invitation code")
    if invitation.get("companyId") != user.get("company_id"):
        raise NotFoundError("Invitation code not found")
    link = f"{settings.APP_BASE_URL}/register?code={invitation['code']}"
    body = (
        f"{message or 'You have been invited to join OH Plus.'}\n\n"
        f"Invitation code: {invitation['code']}\n"
        f"Register here: {link}"
    )
    return emails.send_email(
        db,
        to=recipients,
        subject="You're invited to OH Plus",
        body=body,
        email_type="invitation",
        user_id=user.get("uid"),
    )
