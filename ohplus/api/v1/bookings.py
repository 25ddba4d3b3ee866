from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel

from ohplus.core.security import require_permission
from ohplus.db.firestore import get_db
from ohplus.services import bookings

router = APIRouter(tags=["Bookings"])


class BookingStatusUpdate(BaseModel):
    status: str
    cancel_reason: str | None = None


@router.get("/bookings")
def list_bookings(
    status_filter: str | None = Query(None, alias="status"),
    booking_type: str | None = Query(None, alias="type"),
    current_user: dict = Depends(require_permission("Bookings", "read")),
    db=Depends(get_db),
):
    return {
        "bookings": bookings.list_company_bookings(
            db, current_user.get("company_id"), status_filter, booking_type
        )
    }


@router.get("/bookings/sales-records")
def list_sales_records(
    limit: int = Query(20, ge=1, le=100),
    last_id: str | None = None,
    status_filter: str | None = Query(None, alias="status"),
    booking_type: str | None = Query(None, alias="type"),
    current_user: dict = Depends(require_permission("Sales Records", "read")),
    db=Depends(get_db),
):
    company_id = current_user.get("company_id")
    page = bookings.list_completed_bookings(db, company_id, limit, last_id, status_filter, booking_type)
    page["items"] = [bookings.to_sales_record(booking) for booking in page["items"]]
    page["total"] = bookings.count_completed_bookings(db, company_id, status_filter, booking_type)
    return page


@router.get("/bookings/sales-records/export")
def export_sales_records(
    status_filter: str | None = Query(None, alias="status"),
    booking_type: str | None = Query(None, alias="type"),
    current_user: dict = Depends(require_permission("Sales Records", "read")),
    db=Depends(get_db),
):
    items = bookings.list_company_bookings(
        db, current_user.get("company_id"), status_filter or "COMPLETED", booking_type
    )
    content = bookings.export_sales_records([bookings.to_sales_record(item) for item in items])
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": 'attachment; filename="sales-records.xlsx"'},
    )


@router.get("/bookings/{booking_id}")
def get_booking(
    booking_id: str,
    current_user: dict = Depends(require_permission("Bookings", "read")),
    db=Depends(get_db),
):
    return bookings.get_booking(db, booking_id)


@router.patch("/bookings/{booking_id}/status")
def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdate,
    current_user: dict = Depends(require_permission("Bookings", "update")),
    db=Depends(get_db),
):
    return bookings.update_booking_status(db, booking_id, payload.status, payload.cancel_reason)
