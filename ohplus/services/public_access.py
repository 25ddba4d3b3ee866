import logging

from ohplus.core.errors import NotFoundError, UnauthorizedError
from ohplus.core.security import (
    create_view_token,
    generate_access_code,
    hash_access_code,
    verify_access_code,
)
from ohplus.db.firestore import get_document, update_document, utcnow

logger = logging.getLogger("ohplus.public")

HIDDEN_STATUSES = ("draft",)


def issue_access_code(db, collection: str, doc_id: str) -> str:
    code = generate_access_code()
    update_document(
        db,
        collection,
        doc_id,
        {"accessCodeHash": hash_access_code(code), "accessCodeIssuedAt": utcnow()},
    )
    return code


def strip_secrets(document: dict) -> dict:
    document.pop("accessCodeHash", None)
    return document


def load_public(db, collection: str, doc_id: str, label: str) -> dict:
    document = get_document(db, collection, doc_id)
    if (
        not document
        or document.get("deleted") is True
        or document.get("status") in HIDDEN_STATUSES
    ):
        raise NotFoundError(f"{label} not found")
    return document


def open_public(db, collection: str, doc_id: str, password: str, kind: str, label: str) -> dict:
    document = load_public(db, collection, doc_id, label)
    if not verify_access_code(password, document.get("accessCodeHash")):
        logger.info("rejected access code kind=%s id=%s", kind, doc_id)
        raise UnauthorizedError("Invalid access code")
    if document.get("status") == "sent":
        stamp = utcnow()
        update_document(db, collection, doc_id, {"status": "viewed", "viewedAt": stamp})
        document["status"] = "viewed"
        document["viewedAt"] = stamp
    return {
        "data": strip_secrets(document),
        "viewToken": create_view_token(doc_id, kind),
    }
