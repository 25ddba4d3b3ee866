from datetime import datetime, timedelta

from ohplus.core.dates import add_months
from ohplus.core.errors import InvalidInputError
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

SUBSCRIPTION_PLANS = [
    {"id": "trial", "name": "Trial", "price": 0, "billingCycle": "N/A", "maxProducts": 1, "maxUsers": 1},
    {
        "id": "graphic-expo-event",
        "name": "Graphic Expo '25 Promo",
        "price": 0,
        "billingCycle": "N/A",
        "maxProducts": 3,
        "maxUsers": 1,
    },
    {"id": "solo", "name": "Solo", "price": 1500, "billingCycle": "monthly", "maxProducts": 3, "maxUsers": 1},
    {"id": "family", "name": "Family", "price": 2100, "billingCycle": "monthly", "maxProducts": 5, "maxUsers": 5},
    {
        "id": "membership",
        "name": "Membership",
        "price": 30000,
        "billingCycle": "yearly",
        "maxProducts": 8,
        "maxUsers": 10,
    },
    {
        "id": "enterprise",
        "name": "Enterprise",
        "price": 0,
        "billingCycle": "N/A",
        "maxProducts": 9999,
        "maxUsers": 9999,
    },
]

SUBSCRIPTION_STATUSES = ("active", "inactive", "trialing", "expired", "cancelled")
TRIAL_DAYS = 60


def get_plans() -> list[dict]:
    return [dict(plan) for plan in SUBSCRIPTION_PLANS]


def get_plan(plan_id: str) -> dict:
    for plan in SUBSCRIPTION_PLANS:
        if plan["id"] == plan_id:
            return dict(plan)
    raise InvalidInputError(f"Invalid plan type: {plan_id}")


def calculate_end_date(plan_id: str, billing_cycle: str, start: datetime) -> dict:
    if plan_id == "trial":
        trial_end = start + timedelta(days=TRIAL_DAYS)
        return {"endDate": trial_end, "trialEndDate": trial_end}
    if plan_id == "enterprise":
        return {"endDate": None, "trialEndDate": None}
    if plan_id == "graphic-expo-event":
        return {"endDate": add_months(start, 2), "trialEndDate": None}
    if billing_cycle == "monthly":
        return {"endDate": add_months(start, 1), "trialEndDate": None}
    return {"endDate": add_months(start, 12), "trialEndDate": None}


def create_subscription(
    db,
    license_key: str,
    plan_id: str,
    user_id: str,
    billing_cycle: str | None = None,
    start_date: datetime | None = None,
    status: str = "active",
) -> dict:
    plan = get_plan(plan_id)
    if status not in SUBSCRIPTION_STATUSES:
        raise InvalidInputError(f"Invalid subscription status: {status}")
    start = start_date or utcnow()
    cycle = billing_cycle or plan["billingCycle"]
    dates = calculate_end_date(plan_id, cycle, start)
    stamp = utcnow()
    data = {
        "license_key": license_key,
        "planType": plan_id,
        "billingCycle": cycle,
        "startDate": start,
        "endDate": dates["endDate"],
        "trialEndDate": dates["trialEndDate"],
        "status": "trialing" if plan_id == "trial" and status == "active" else status,
        "maxProducts": plan["maxProducts"],
        "maxUsers": plan["maxUsers"],
        "userId": user_id,
        "createdAt": stamp,
        "updatedAt": stamp,
    }
    return create_document(db, collections.SUBSCRIPTIONS, data)


def get_by_license_key(db, license_key: str) -> dict | None:
    query = where(db.collection(collections.SUBSCRIPTIONS), "license_key", "==", license_key)
    matches = stream_dicts(query.order_by("createdAt", direction=DESCENDING).limit(1))
    return matches[0] if matches else None


def update_subscription(db, subscription_id: str, changes: dict) -> dict:
    require_document(db, collections.SUBSCRIPTIONS, subscription_id, "Subscription")
    if changes.get("status") is not None and changes["status"] not in SUBSCRIPTION_STATUSES:
        raise InvalidInputError(f"Invalid subscription status: {changes['status']}")
    if changes.get("planType") is not None:
        plan = get_plan(changes["planType"])
        changes = {**changes, "maxProducts": plan["maxProducts"], "maxUsers": plan["maxUsers"]}
    changes = {**changes, "updatedAt": utcnow()}
    update_document(db, collections.SUBSCRIPTIONS, subscription_id, changes)
    return require_document(db, collections.SUBSCRIPTIONS, subscription_id, "Subscription")


def is_active(subscription: dict | None, now: datetime | None = None) -> bool:
    if not subscription or subscription.get("status") not in ("active", "trialing"):
        return False
    end = subscription.get("endDate")
    return end is None or end > (now or utcnow())


def can_add_product(subscription: dict | None, current_products: int) -> bool:
    if not is_active(subscription):
        return False
    return current_products < int(subscription.get("maxProducts") or 0)


def can_add_user(subscription: dict | None, current_users: int) -> bool:
    if not is_active(subscription):
        return False
    return current_users < int(subscription.get("maxUsers") or 0)
