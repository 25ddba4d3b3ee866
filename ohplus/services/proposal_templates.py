from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    DESCENDING,
    create_document,
    exclude_deleted,
    require_document,
    soft_delete,
    stream_dicts,
    update_document,
    utcnow,
    where,
)

TEMPLATE_FIELDS = ("name", "description", "content", "category", "isDefault")


def create_template(db, data: dict, company_id: str, user_id: str) -> dict:
    if not data.get("name"):
        raise InvalidInputError("Template name is required")
    stamp = utcnow()
    payload = {key: data.get(key) for key in TEMPLATE_FIELDS if data.get(key) is not None}
    payload.update(
        {
            "company_id": company_id,
            "createdBy": user_id,
            "deleted": False,
            "created": stamp,
            "updated": stamp,
        }
    )
    return create_document(db, collections.PROPOSAL_TEMPLATES, payload)


def list_templates(db, company_id: str) -> list[dict]:
    query = where(db.collection(collections.PROPOSAL_TEMPLATES), "company_id", "==", company_id)
    return exclude_deleted(stream_dicts(query.order_by("created", direction=DESCENDING)))


def get_template(db, template_id: str) -> dict:
    return require_document(db, collections.PROPOSAL_TEMPLATES, template_id, "Template")


def update_template(db, template_id: str, changes: dict) -> dict:
    get_template(db, template_id)
    update = {key: changes[key] for key in TEMPLATE_FIELDS if changes.get(key) is not None}
    update["updated"] = utcnow()
    update_document(db, collections.PROPOSAL_TEMPLATES, template_id, update)
    return get_template(db, template_id)


def delete_template(db, template_id: str) -> None:
    soft_delete(db, collections.PROPOSAL_TEMPLATES, template_id, "Template")
