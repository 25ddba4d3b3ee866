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

ASSIGNMENT_STATUSES = ("pending", "ongoing", "completed", "cancelled")
ACTIVE_STATUSES = ("ongoing", "pending")

ASSIGNMENT_FIELDS = (
    "projectSiteId",
    "projectSiteName",
    "projectSiteLocation",
    "serviceType",
    "assignedTo",
    "jobDescription",
    "message",
    "coveredDateStart",
    "coveredDateEnd",
    "jobOrderId",
    "status",
)


def create_assignment(db, data: dict, user_id: str, company_id: str) -> dict:
    if not data.get("projectSiteId"):
        raise InvalidInputError("Project site is required")
    status = (data.get("status") or "pending").lower()
    if status not in ASSIGNMENT_STATUSES:
        raise InvalidInputError(f"Invalid assignment status: {status}")
    stamp = utcnow()
    payload = {key: data.get(key) for key in ASSIGNMENT_FIELDS if data.get(key) is not None}
    payload.update(
        {
            "saNumber": f"SA-{str(now_ms())[-6:]}",
            "status": status,
            "company_id": company_id,
            "requestedBy": user_id,
            "created": stamp,
            "updated": stamp,
        }
    )
    return create_document(db, collections.SERVICE_ASSIGNMENTS, payload)


def get_assignment(db, assignment_id: str) -> dict:
    return require_document(db, collections.SERVICE_ASSIGNMENTS, assignment_id, "Service assignment")


def update_assignment(db, assignment_id: str, changes: dict) -> dict:
    get_assignment(db, assignment_id)
    update = {key: changes[key] for key in ASSIGNMENT_FIELDS if changes.get(key) is not None}
    if "status" in update:
        update["status"] = update["status"].lower()
        if update["status"] not in ASSIGNMENT_STATUSES:
            raise InvalidInputError(f"Invalid assignment status: {update['status']}")
    update["updated"] = utcnow()
    update_document(db, collections.SERVICE_ASSIGNMENTS, assignment_id, update)
    return get_assignment(db, assignment_id)


def list_assignments(db, company_id: str) -> list[dict]:
    query = where(db.collection(collections.SERVICE_ASSIGNMENTS), "company_id", "==", company_id)
    return stream_dicts(query.order_by("created", direction=DESCENDING))


def list_by_site(db, project_site_id: str) -> list[dict]:
    query = where(
        db.collection(collections.SERVICE_ASSIGNMENTS), "projectSiteId", "==", project_site_id
    )
    return stream_dicts(query)


def list_active_by_site(db, project_site_id: str) -> list[dict]:
    return [
        assignment
        for assignment in list_by_site(db, project_site_id)
        if str(assignment.get("status") or "").lower() in ACTIVE_STATUSES
    ]
