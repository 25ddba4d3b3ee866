import logging
import os
import re
from typing import BinaryIO

from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    create_document,
    now_ms,
    require_document,
    soft_delete,
    stream_dicts,
    update_document,
    utcnow,
    where,
)
from ohplus.services.storage import StorageClient

logger = logging.getLogger("ohplus.cms")

ALLOWED_VIDEO_TYPES = ("video/mp4", "video/mov", "video/avi", "video/x-msvideo", "video/webm", "video/quicktime")
ALLOWED_VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".webm")
MAX_VIDEO_BYTES = 100 * 1024 * 1024


def validate_video(filename: str, content_type: str | None, size: int | None = None) -> None:
    extension = os.path.splitext(filename or "")[1].lower()
    if content_type not in ALLOWED_VIDEO_TYPES or extension not in ALLOWED_VIDEO_EXTENSIONS:
        raise InvalidInputError("Please select a valid video file (MP4, MOV, AVI, WebM)")
    if size is not None and size > MAX_VIDEO_BYTES:
        raise InvalidInputError("File size must be less than 100MB")


def list_schedules(db, product_id: str) -> list[dict]:
    query = where(db.collection(collections.SCREEN_SCHEDULES), "product_id", "==", product_id)
    query = where(query, "deleted", "==", False)
    return stream_dicts(query.order_by("spot_number"))


def _spot_schedule(db, product_id: str, spot_number: int) -> dict | None:
    for schedule in list_schedules(db, product_id):
        if schedule.get("spot_number") == spot_number:
            return schedule
    return None


def upsert_schedule(db, product_id: str, spot_number: int, data: dict, user: dict) -> dict:
    if spot_number < 1:
        raise InvalidInputError("Spot number must be at least 1")
    product = require_document(db, collections.PRODUCTS, product_id, "Product")
    changes = {
        key: data[key]
        for key in ("title", "media", "duration", "active", "status")
        if data.get(key) is not None
    }
    existing = _spot_schedule(db, product_id, spot_number)
    if existing:
        changes["updated"] = utcnow()
        update_document(db, collections.SCREEN_SCHEDULES, existing["id"], changes)
        return require_document(db, collections.SCREEN_SCHEDULES, existing["id"], "Schedule")
    payload = {
        "product_id": product_id,
        "spot_number": spot_number,
        "company_id": product.get("company_id") or user.get("company_id"),
        "seller_id": user.get("uid"),
        "title": "",
        "media": "",
        "active": True,
        "status": "active",
        **changes,
        "deleted": False,
        "created": utcnow(),
    }
    return create_document(db, collections.SCREEN_SCHEDULES, payload)


def get_schedule(db, schedule_id: str) -> dict:
    return require_document(db, collections.SCREEN_SCHEDULES, schedule_id, "Schedule")


def delete_schedule(db, schedule_id: str) -> None:
    soft_delete(db, collections.SCREEN_SCHEDULES, schedule_id, "Schedule")


def video_path(product_id: str, spot_number: int, filename: str) -> str:
    safe_name = re.sub(r"[^A-Za-z0-9._-]", "_", os.path.basename(filename))
    return f"screen_schedules/{product_id}_spot_{spot_number}_{now_ms()}_{safe_name}"


def upload_spot_video(
    db,
    product_id: str,
    spot_number: int,
    file_obj: BinaryIO,
    filename: str,
    content_type: str | None,
    user: dict,
    storage_client: StorageClient | None = None,
) -> dict:
    validate_video(filename, content_type)
    if spot_number < 1:
        raise InvalidInputError("Spot number must be at least 1")
    require_document(db, collections.PRODUCTS, product_id, "Product")
    client = storage_client or StorageClient()
    file_url, size = client.upload_file(
        file_obj, video_path(product_id, spot_number, filename), content_type, MAX_VIDEO_BYTES
    )
    logger.info("spot video uploaded product_id=%s spot=%s bytes=%s", product_id, spot_number, size)
    return upsert_schedule(
        db,
        product_id,
        spot_number,
        {"media": file_url, "title": os.path.splitext(os.path.basename(filename))[0]},
        user,
    )
