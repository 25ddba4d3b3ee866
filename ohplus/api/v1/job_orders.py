from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ohplus.core.security import require_permission
from ohplus.db.firestore import get_db
from ohplus.services import job_orders

router = APIRouter(tags=["Job Orders"])


class JobOrderStatusUpdate(BaseModel):
    status: str


class JobOrderAssign(BaseModel):
    assigned_to: str = Field(..., min_length=1)
    assigned_name: str = ""


@router.get("/job-orders")
def list_job_orders(
    limit: int = Query(20, ge=1, le=100),
    last_id: str | None = None,
    mine: bool = False,
    current_user: dict = Depends(require_permission("Job Orders", "read")),
    db=Depends(get_db),
):
    if mine:
        items = job_orders.list_by_creator(db, current_user["uid"])
        return {"items": items, "lastId": None, "hasMore": False}
    return job_orders.list_by_company(db, current_user.get("company_id"), limit, last_id)


@router.get("/job-orders/{job_order_id}")
def get_job_order(
    job_order_id: str,
    current_user: dict = Depends(require_permission("Job Orders", "read")),
    db=Depends(get_db),
):
    return job_orders.get_job_order(db, job_order_id)


@router.patch("/job-orders/{job_order_id}/status")
def update_status(
    job_order_id: str,
    payload: JobOrderStatusUpdate,
    current_user: dict = Depends(require_permission("Job Orders", "update")),
    db=Depends(get_db),
):
    return job_orders.update_status(db, job_order_id, payload.status)


@router.post("/job-orders/{job_order_id}/assign")
def assign_job_order(
    job_order_id: str,
    payload: JobOrderAssign,
    current_user: dict = Depends(require_permission("Job Orders", "update")),
    db=Depends(get_db),
):
    return job_orders.assign(db, job_order_id, payload.assigned_to, payload.assigned_name)
