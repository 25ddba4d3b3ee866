from ohplus.core.errors import InvalidInputError, NotFoundError
from ohplus.db import collections
from ohplus.db.firestore import (
    create_document,
    get_document,
    paginate,
    stream_dicts,
    update_document,
    utcnow,
    where,
)

CLIENT_STATUSES = ("active", "inactive", "lead")

CLIENT_FIELDS = (
    "name",
    "email",
    "phone",
    "company",
    "company_id",
    "designation",
    "address",
    "city",
    "state",
    "zipCode",
    "industry",
    "notes",
    "status",
    "companyLogoUrl",
    "uploadedBy",
    "uploadedByName",
)


def _clean(data: dict) -> dict:
    cleaned = {key: data[key] for key in CLIENT_FIELDS if key in data and data[key] is not None}
    status = cleaned.get("status")
    if status is not None and status not in CLIENT_STATUSES:
        raise InvalidInputError(f"Invalid client status: {status}")
    return cleaned


def create_client(db, data: dict) -> dict:
    cleaned = _clean(data)
    if not cleaned.get("name"):
        raise InvalidInputError("Client name is required")
    stamp = utcnow()
    payload = {field: "" for field in CLIENT_FIELDS}
    payload.update({"status": "lead", **cleaned, "created": stamp, "updated": stamp})
    return create_document(db, collections.CLIENTS, payload)


def get_client(db, client_id: str) -> dict:
    client = get_document(db, collections.CLIENTS, client_id)
    if not client:
        raise NotFoundError("Client not found")
    return client


def update_client(db, client_id: str, changes: dict) -> dict:
    get_client(db, client_id)
    cleaned = _clean(changes)
    cleaned["updated"] = utcnow()
    update_document(db, collections.CLIENTS, client_id, cleaned)
    return get_client(db, client_id)


def delete_client(db, client_id: str) -> None:
    get_client(db, client_id)
    db.collection(collections.CLIENTS).document(client_id).delete()


def _filtered_query(db, company_id: str | None, status: str | None, uploaded_by: str | None):
    query = db.collection(collections.CLIENTS)
    if company_id:
        query = where(query, "company_id", "==", company_id)
    if status:
        query = where(query, "status", "==", status)
    if uploaded_by:
        query = where(query, "uploadedBy", "==", uploaded_by)
    return query


def list_clients(
    db,
    company_id: str | None = None,
    limit: int = 20,
    last_id: str | None = None,
    status: str | None = None,
    uploaded_by: str | None = None,
) -> dict:
    query = _filtered_query(db, company_id, status, uploaded_by).order_by("name")
    return paginate(db, collections.CLIENTS, query, limit, last_id)


def client_matches(client: dict, term: str) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    for field in ("name", "email", "company"):
        if needle in str(client.get(field) or "").lower():
            return True
    return term.strip() in str(client.get("phone") or "")


def search_clients(
    db,
    term: str,
    company_id: str | None = None,
    status: str | None = None,
    uploaded_by: str | None = None,
) -> list[dict]:
    query = _filtered_query(db, company_id, status, uploaded_by).order_by("name")
    return [client for client in stream_dicts(query) if client_matches(client, term)]


def count_clients(
    db,
    company_id: str | None = None,
    status: str | None = None,
    uploaded_by: str | None = None,
) -> int:
    return len(list(_filtered_query(db, company_id, status, uploaded_by).stream()))


def get_client_by_email(db, email: str, company_id: str | None = None) -> dict | None:
    query = where(db.collection(collections.CLIENTS), "email", "==", email.strip())
    if company_id:
        query = where(query, "company_id", "==", company_id)
    matches = stream_dicts(query.limit(1))
    return matches[0] if matches else None
