from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from ohplus.core.security import get_current_user
from ohplus.db.firestore import get_db
from ohplus.services import notifications

router = APIRouter(tags=["Notifications"])


class NotificationCreate(BaseModel):
    type: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = ""
    department_to: str | None = None
    uid_to: str | None = None
    navigate_to: str | None = None


@router.get("/notifications")
def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    company_id = current_user.get("company_id")
    department = current_user.get("department")
    items = notifications.list_notifications(db, company_id, current_user["uid"], department, limit)
    unread = notifications.unread_count(db, company_id, current_user["uid"], department)
    return {"notifications": items, "unread": unread}


@router.post("/notifications", status_code=status.HTTP_201_CREATED)
def create_notification(
    payload: NotificationCreate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return notifications.create_notification(
        db,
        notification_type=payload.type,
        title=payload.title,
        description=payload.description,
        company_id=current_user.get("company_id"),
        department_to=payload.department_to,
        uid_to=payload.uid_to,
        department_from=current_user.get("department"),
        navigate_to=payload.navigate_to,
    )


@router.post("/notifications/read-all")
def mark_all_viewed(
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    updated = notifications.mark_all_viewed(
        db, current_user.get("company_id"), current_user["uid"], current_user.get("department")
    )
    return {"updated": updated}


@router.post("/notifications/{notification_id}/read")
def mark_viewed(
    notification_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    notifications.mark_viewed(db, notification_id)
    return {"status": "ok"}
