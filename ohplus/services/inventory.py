from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    create_document,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)

ITEM_STATUSES = ("active", "inactive", "maintenance", "retired")
ITEM_TYPES = ("hardware", "software")

ITEM_FIELDS = (
    "name",
    "type",
    "category",
    "brand",
    "department",
    "assignedTo",
    "stock",
    "status",
    "condition",
    "serialNumber",
    "location",
    "cost",
    "description",
)


def _validate(data: dict) -> None:
    if data.get("status") is not None and data["status"] not in ITEM_STATUSES:
        raise InvalidInputError(f"Invalid item status: {data['status']}")
    if data.get("type") is not None and data["type"] not in ITEM_TYPES:
        raise InvalidInputError(f"Invalid item type: {data['type']}")
    stock = data.get("stock")
    if stock is not None and (not isinstance(stock, int) or stock < 0):
        raise InvalidInputError("Stock must be a non-negative integer")


def create_item(db, data: dict, company_id: str, user_id: str) -> dict:
    if not data.get("name"):
        raise InvalidInputError("Item name is required")
    _validate(data)
    stamp = utcnow()
    payload = {key: data.get(key) for key in ITEM_FIELDS if data.get(key) is not None}
    payload.setdefault("status", "active")
    payload.setdefault("stock", 0)
    payload.setdefault("assignedTo", "unassigned")
    payload.update(
        {
            "company_id": company_id,
            "created_by": user_id,
            "deleted": False,
            "created_at": stamp,
            "updated_at": stamp,
        }
    )
    return create_document(db, collections.IT_INVENTORY, payload)


def get_item(db, item_id: str) -> dict:
    return require_document(db, collections.IT_INVENTORY, item_id, "Inventory item")


def update_item(db, item_id: str, changes: dict) -> dict:
    get_item(db, item_id)
    update = {key: changes[key] for key in ITEM_FIELDS if changes.get(key) is not None}
    _validate(update)
    update["updated_at"] = utcnow()
    update_document(db, collections.IT_INVENTORY, item_id, update)
    return get_item(db, item_id)


def delete_item(db, item_id: str) -> None:
    get_item(db, item_id)
    update_document(
        db, collections.IT_INVENTORY, item_id, {"deleted": True, "updated_at": utcnow()}
    )


def list_items(db, company_id: str) -> list[dict]:
    query = where(db.collection(collections.IT_INVENTORY), "company_id", "==", company_id)
    query = where(query, "deleted", "==", False)
    return stream_dicts(query.order_by("name"))
