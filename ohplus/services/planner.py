import logging
from datetime import datetime, timedelta

from ohplus.core.dates import add_months, parse_date
from ohplus.core.errors import ForbiddenError, InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    create_document,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)
from ohplus.services import notifications

logger = logging.getLogger("ohplus.planner")

EVENT_STATUSES = ("scheduled", "completed", "cancelled", "pending")
RECURRENCE_TYPES = ("none", "daily", "weekly", "monthly", "yearly")
MAX_OCCURRENCES = 1000

EVENT_FIELDS = (
    "title",
    "description",
    "start",
    "end",
    "allDay",
    "location",
    "status",
    "type",
    "clientId",
    "clientName",
    "color",
    "recurrence",
)


def _validate(data: dict) -> None:
    if data.get("status") is not None and data["status"] not in EVENT_STATUSES:
        raise InvalidInputError(f"Invalid event status: {data['status']}")
    recurrence = data.get("recurrence")
    if recurrence:
        if recurrence.get("type", "none") not in RECURRENCE_TYPES:
            raise InvalidInputError(f"Invalid recurrence: {recurrence.get('type')}")
        if int(recurrence.get("interval") or 1) < 1:
            raise InvalidInputError("Recurrence interval must be at least 1")
    if data.get("start") is not None and data.get("end") is not None:
        if parse_date(data["end"]) < parse_date(data["start"]):
            raise InvalidInputError("Event end must not be before start")


def create_event(db, data: dict, user: dict) -> dict:
    if not data.get("title"):
        raise InvalidInputError("Event title is required")
    _validate(data)
    stamp = utcnow()
    payload = {key: data.get(key) for key in EVENT_FIELDS if data.get(key) is not None}
    payload.setdefault("status", "scheduled")
    payload.setdefault("recurrence", {"type": "none", "interval": 1})
    payload.update(
        {
            "createdBy": user["uid"],
            "company_id": user.get("company_id"),
            "created": stamp,
            "updated": stamp,
        }
    )
    event = create_document(db, collections.PLANNER, payload)
    if user.get("company_id"):
        notifications.notify_sales_event(db, event, user["company_id"], user["uid"])
    return event


def _owned(db, event_id: str, user_id: str) -> dict:
    event = require_document(db, collections.PLANNER, event_id, "Event")
    if event.get("createdBy") != user_id:
        raise ForbiddenError("Only the event owner can change this event")
    return event


def get_event(db, event_id: str, user_id: str) -> dict:
    return _owned(db, event_id, user_id)


def update_event(db, event_id: str, changes: dict, user_id: str) -> dict:
    current = _owned(db, event_id, user_id)
    update = {key: changes[key] for key in EVENT_FIELDS if changes.get(key) is not None}
    _validate({"start": current.get("start"), "end": current.get("end"), **update})
    update["updated"] = utcnow()
    update_document(db, collections.PLANNER, event_id, update)
    return _owned(db, event_id, user_id)


def delete_event(db, event_id: str, user_id: str) -> None:
    _owned(db, event_id, user_id)
    db.collection(collections.PLANNER).document(event_id).delete()


def list_events(db, user_id: str) -> list[dict]:
    query = where(db.collection(collections.PLANNER), "createdBy", "==", user_id)
    return stream_dicts(query.order_by("start"))


def _step(current: datetime, recurrence_type: str, interval: int) -> datetime | None:
    if recurrence_type == "daily":
        return current + timedelta(days=interval)
    if recurrence_type == "weekly":
        return current + timedelta(weeks=interval)
    if recurrence_type == "monthly":
        return add_months(current, interval)
    if recurrence_type == "yearly":
        return add_months(current, 12 * interval)
    return None


def expand_recurring(event: dict, range_start: datetime, range_end: datetime) -> list[dict]:
    recurrence = event.get("recurrence") or {}
    recurrence_type = recurrence.get("type") or "none"
    start = parse_date(event["start"])
    end = parse_date(event["end"])
    duration = end - start
    effective_end = range_end
    if recurrence.get("endDate"):
        effective_end = min(range_end, parse_date(recurrence["endDate"]))
    max_count = int(recurrence.get("count") or MAX_OCCURRENCES)
    interval = int(recurrence.get("interval") or 1)

    instances = []
    current: datetime | None = start
    count = 0
    while current is not None and current <= effective_end and count < max_count:
        if range_start <= current <= range_end:
            instances.append(
                {
                    **event,
                    "id": f"{event['id']}-instance-{count}",
                    "start": current,
                    "end": current + duration,
                    "isRecurringInstance": True,
                    "originalEventId": event["id"],
                }
            )
        current = _step(current, recurrence_type, interval)
        count += 1
    return instances


def list_events_in_range(db, user_id: str, range_start, range_end) -> list[dict]:
    range_start = parse_date(range_start)
    range_end = parse_date(range_end)
    if range_end < range_start:
        raise InvalidInputError("Range end must not be before range start")
    events = []
    for event in list_events(db, user_id):
        if not event.get("start") or not event.get("end"):
            continue
        recurrence_type = (event.get("recurrence") or {}).get("type") or "none"
        if recurrence_type == "none":
            if parse_date(event["start"]) <= range_end and parse_date(event["end"]) >= range_start:
                events.append(event)
        else:
            events.extend(expand_recurring(event, range_start, range_end))
    return events
