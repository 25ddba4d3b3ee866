from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ohplus.core.security import get_current_user, require_permission
from ohplus.db.firestore import get_db
from ohplus.services import access_management, products, subscriptions

router = APIRouter(tags=["Subscriptions"])


class SubscriptionCreate(BaseModel):
    planType: str
    billingCycle: str | None = None
    startDate: datetime | None = None
    status: str = "active"


class SubscriptionUpdate(BaseModel):
    planType: str | None = None
    billingCycle: str | None = None
    status: str | None = None
    endDate: datetime | None = None


def _license_key(user: dict) -> str:
    license_key = user.get("license_key")
    if not license_key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User has no license key")
    return license_key


@router.get("/subscriptions/plans")
def list_plans():
    return {"plans": subscriptions.get_plans()}


@router.get("/subscriptions/current")
def get_current_subscription(
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    license_key = _license_key(current_user)
    subscription = subscriptions.get_by_license_key(db, license_key)
    user_count = len(access_management.list_users(db, license_key))
    product_count = 0
    if current_user.get("company_id"):
        product_count = products.count_products(db, current_user["company_id"])
    return {
        "subscription": subscription,
        "isActive": subscriptions.is_active(subscription),
        "productCount": product_count,
        "canAddProduct": subscriptions.can_add_product(subscription, product_count),
        "userCount": user_count,
        "canAddUser": subscriptions.can_add_user(subscription, user_count),
    }


@router.post("/subscriptions", status_code=status.HTTP_201_CREATED)
def create_subscription(
    payload: SubscriptionCreate,
    current_user: dict = Depends(require_permission("Subscriptions", "create")),
    db=Depends(get_db),
):
    return subscriptions.create_subscription(
        db,
        _license_key(current_user),
        payload.planType,
        current_user["uid"],
        payload.billingCycle,
        payload.startDate,
        payload.status,
    )


@router.patch("/subscriptions/{subscription_id}")
def update_subscription(
    subscription_id: str,
    payload: SubscriptionUpdate,
    current_user: dict = Depends(require_permission("Subscriptions", "update")),
    db=Depends(get_db),
):
    return subscriptions.update_subscription(
        db, subscription_id, payload.model_dump(exclude_unset=True)
    )
