from typing import Any

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import BaseModel, Field

from ohplus.core.security import require_permission
from ohplus.db.firestore import get_db
from ohplus.services import loop_timeline, products, screen_schedules
from ohplus.services.storage import StorageClient

router = APIRouter(tags=["CMS"])


class TimelinePreview(BaseModel):
    start_time: str | None = None
    end_time: str | None = None
    spot_duration: int | None = Field(None, gt=0)
    loops_per_day: int | None = Field(None, gt=0)
    spots_per_loop: int | None = Field(None, gt=0)


class ScheduleUpsert(BaseModel):
    title: str | None = None
    media: str | None = None
    duration: int | None = Field(None, gt=0)
    active: bool | None = None
    status: str | None = None


def _timeline(cms: dict[str, Any] | None, schedules: list[dict]) -> dict:
    metrics = loop_timeline.timeline_metrics(cms)
    slots = loop_timeline.generate_timeline(
        metrics["start_time"], metrics["spot_duration"], metrics["spots_per_loop"]
    )
    return {
        "metrics": metrics,
        "slots": loop_timeline.fill_slots(slots, schedules),
        "loopStartTimes": loop_timeline.loop_start_times(cms),
    }


@router.post("/cms/timeline/preview")
def preview_timeline(
    payload: TimelinePreview,
    current_user: dict = Depends(require_permission("Content", "read")),
):
    return _timeline(payload.model_dump(exclude_none=True), [])


@router.get("/cms/products/{product_id}/timeline")
def get_product_timeline(
    product_id: str,
    current_user: dict = Depends(require_permission("Content", "read")),
    db=Depends(get_db),
):
    product = products.get_product(db, product_id)
    schedules = screen_schedules.list_schedules(db, product_id)
    return {"productId": product_id, **_timeline(product.get("cms"), schedules)}


@router.get("/cms/products/{product_id}/schedules")
def list_schedules(
    product_id: str,
    current_user: dict = Depends(require_permission("Content", "read")),
    db=Depends(get_db),
):
    return {"schedules": screen_schedules.list_schedules(db, product_id)}


@router.put("/cms/products/{product_id}/schedules/{spot_number}")
def upsert_schedule(
    product_id: str,
    spot_number: int,
    payload: ScheduleUpsert,
    current_user: dict = Depends(require_permission("Content", "update")),
    db=Depends(get_db),
):
    return screen_schedules.upsert_schedule(
        db, product_id, spot_number, payload.model_dump(exclude_unset=True), current_user
    )


@router.post(
    "/cms/products/{product_id}/schedules/{spot_number}/video",
    status_code=status.HTTP_201_CREATED,
)
def upload_schedule_video(
    product_id: str,
    spot_number: int,
    file: UploadFile = File(...),
    title: str | None = Form(None),
    current_user: dict = Depends(require_permission("Content", "create")),
    db=Depends(get_db),
):
    schedule = screen_schedules.upload_spot_video(
        db,
        product_id,
        spot_number,
        file.file,
        file.filename or "video.mp4",
        file.content_type,
        current_user,
    )
    if title:
        schedule = screen_schedules.upsert_schedule(
            db, product_id, spot_number, {"title": title}, current_user
        )
    return schedule


@router.get("/cms/schedules/{schedule_id}/media-url")
def get_schedule_media_url(
    schedule_id: str,
    current_user: dict = Depends(require_permission("Content", "read")),
    db=Depends(get_db),
):
    schedule = screen_schedules.get_schedule(db, schedule_id)
    if not schedule.get("media"):
        return {"url": None}
    return {"url": StorageClient().generate_signed_url(schedule["media"])}


@router.delete("/cms/schedules/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(
    schedule_id: str,
    current_user: dict = Depends(require_permission("Content", "delete")),
    db=Depends(get_db),
):
    screen_schedules.delete_schedule(db, schedule_id)
