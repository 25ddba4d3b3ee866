from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ohplus.core.security import get_current_user
from ohplus.db.firestore import get_db
from ohplus.services import planner

router = APIRouter(tags=["Planner"])


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str | None = None
    start: datetime
    end: datetime
    allDay: bool = False
    location: str | None = None
    status: str | None = None
    type: str | None = None
    clientId: str | None = None
    clientName: str | None = None
    color: str | None = None
    recurrence: dict[str, Any] | None = None


class EventUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    allDay: bool | None = None
    location: str | None = None
    status: str | None = None
    type: str | None = None
    clientId: str | None = None
    clientName: str | None = None
    color: str | None = None
    recurrence: dict[str, Any] | None = None


@router.get("/planner/events")
def list_events(
    start: datetime | None = None,
    end: datetime | None = None,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    if start and end:
        return {"events": planner.list_events_in_range(db, current_user["uid"], start, end)}
    return {"events": planner.list_events(db, current_user["uid"])}


@router.post("/planner/events", status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return planner.create_event(db, payload.model_dump(), current_user)


@router.get("/planner/events/{event_id}")
def get_event(
    event_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return planner.get_event(db, event_id, current_user["uid"])


@router.patch("/planner/events/{event_id}")
def update_event(
    event_id: str,
    payload: EventUpdate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    return planner.update_event(db, event_id, changes, current_user["uid"])


@router.delete("/planner/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    planner.delete_event(db, event_id, current_user["uid"])
