from datetime import datetime, timezone
from typing import Any, Iterable

from google.cloud.firestore_v1.base_query import FieldFilter

from ohplus.core.errors import NotFoundError
from ohplus.core.firebase import get_firestore_client

DESCENDING = "DESCENDING"
ASCENDING = "ASCENDING"


def get_db():
    return get_firestore_client()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_ms() -> int:
    return int(utcnow().timestamp() * 1000)


def doc_to_dict(snapshot) -> dict | None:
    if snapshot is None or not snapshot.exists:
        return None
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


def where(query, field: str, op: str, value: Any):
    return query.where(filter=FieldFilter(field, op, value))


def stream_dicts(query) -> list[dict]:
    return [doc_to_dict(snapshot) for snapshot in query.stream()]


def drop_none(data: dict) -> dict:
    return {key: value for key, value in data.items() if value is not None}


def get_document(db, collection: str, doc_id: str) -> dict | None:
    if not doc_id:
        return None
    return doc_to_dict(db.collection(collection).document(doc_id).get())


def require_document(db, collection: str, doc_id: str, label: str = "Document") -> dict:
    document = get_document(db, collection, doc_id)
    if not document or document.get("deleted") is True:
        raise NotFoundError(f"{label} not found")
    return document


def create_document(db, collection: str, data: dict, doc_id: str | None = None) -> dict:
    if doc_id:
        ref = db.collection(collection).document(doc_id)
        ref.set(data)
    else:
        _, ref = db.collection(collection).add(data)
    return {**data, "id": ref.id}


def update_document(db, collection: str, doc_id: str, changes: dict) -> None:
    db.collection(collection).document(doc_id).update(changes)


def soft_delete(db, collection: str, doc_id: str, label: str = "Document") -> None:
    require_document(db, collection, doc_id, label)
    update_document(db, collection, doc_id, {"deleted": True, "updated": utcnow()})


def paginate(db, collection: str, query, limit: int, last_id: str | None = None) -> dict:
    if last_id:
        cursor = db.collection(collection).document(last_id).get()
        if cursor.exists:
            query = query.start_after(cursor)
    items = stream_dicts(query.limit(limit + 1))
    has_more = len(items) > limit
    items = items[:limit]
    return {
        "items": items,
        "lastId": items[-1]["id"] if items else None,
        "hasMore": has_more,
    }


def exclude_deleted(items: Iterable[dict]) -> list[dict]:
    return [item for item in items if item.get("deleted") is not True]
