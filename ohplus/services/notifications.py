import logging

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

logger = logging.getLogger("ohplus.notifications")

SALES_EVENT_DEPARTMENTS = [
    "Logistics",
    "Finance",
    "I.T.",
    "Admin",
    "CMS",
    "Business Dev",
    "Accounting",
]


def create_notification(
    db,
    notification_type: str,
    title: str,
    description: str,
    company_id: str | None,
    department_to: str | None = None,
    uid_to: str | None = None,
    department_from: str | None = None,
    navigate_to: str | None = None,
) -> dict:
    data = {
        "type": notification_type,
        "title": title,
        "description": description,
        "department_to": department_to or "",
        "uid_to": uid_to,
        "company_id": company_id,
        "department_from": department_from or "",
        "viewed": False,
        "navigate_to": navigate_to or "",
        "created": utcnow(),
    }
    return create_document(db, collections.NOTIFICATIONS, data)


def list_notifications(
    db,
    company_id: str,
    uid: str | None = None,
    department: str | None = None,
    limit: int = 50,
) -> list[dict]:
    query = where(db.collection(collections.NOTIFICATIONS), "company_id", "==", company_id)
    query = query.order_by("created", direction=DESCENDING)
    items = []
    for item in stream_dicts(query):
        targeted_user = item.get("uid_to")
        if targeted_user and targeted_user != uid:
            continue
        target_department = item.get("department_to")
        if not targeted_user and department and target_department and target_department != department:
            continue
        items.append(item)
        if len(items) >= limit:
            break
    return items


def unread_count(db, company_id: str, uid: str | None = None, department: str | None = None) -> int:
    return sum(
        1
        for item in list_notifications(db, company_id, uid, department, limit=1000)
        if not item.get("viewed")
    )


def mark_viewed(db, notification_id: str) -> None:
    require_document(db, collections.NOTIFICATIONS, notification_id, "Notification")
    update_document(db, collections.NOTIFICATIONS, notification_id, {"viewed": True})


def mark_all_viewed(db, company_id: str, uid: str | None = None, department: str | None = None) -> int:
    count = 0
    for item in list_notifications(db, company_id, uid, department, limit=1000):
        if item.get("viewed"):
            continue
        update_document(db, collections.NOTIFICATIONS, item["id"], {"viewed": True})
        count += 1
    return count


def notify_sales_event(db, event: dict, company_id: str, uid_from: str | None = None) -> list[dict]:
    created = []
    for department in SALES_EVENT_DEPARTMENTS:
        try:
            created.append(
                create_notification(
                    db,
                    notification_type="Sales Event",
                    title=f"New Sales Event: {event.get('title', '')}",
                    description=event.get("description") or "A new sales event has been scheduled.",
                    company_id=company_id,
                    department_to=department,
                    department_from="Sales",
                    navigate_to="/sales/planner",
                )
            )
        except Exception:
            logger.exception("failed to notify department=%s uid_from=%s", department, uid_from)
    return created
