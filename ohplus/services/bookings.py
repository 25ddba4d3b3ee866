from io import BytesIO

from openpyxl import Workbook

from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.db.firestore import (
    DESCENDING,
    create_document,
    paginate,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)

BOOKING_STATUSES = ("RESERVED", "ONGOING", "COMPLETED", "CANCELLED")
OUTPUT_VAT_RATE = 0.12
CREDITABLE_TAX_RATE = 0.02

SALES_RECORD_HEADERS = [
    ("Month", "month"),
    ("Date", "date"),
    ("Service Invoice", "serviceInvoice"),
    ("BS Number", "bsNumber"),
    ("Client", "clients"),
    ("TIN", "tin"),
    ("Description", "description"),
    ("Net Sales", "netSales"),
    ("Output VAT", "outputVat"),
    ("Total", "total"),
    ("Discount", "discount"),
    ("Creditable Tax", "creditableTax"),
    ("Amount Collected", "amountCollected"),
    ("OR No", "orNo"),
    ("Paid Date", "paidDate"),
]


def create_booking_from_quotation(db, quotation: dict, user_id: str, company_id: str) -> dict:
    items = quotation.get("items") or []
    if not items:
        raise InvalidInputError("Quotation has no items to book")
    first = items[0]
    client = quotation.get("client") or {}
    total = sum(float(item.get("item_total_amount") or 0) for item in items)
    stamp = utcnow()
    data = {
        "cancel_reason": "",
        "client": {
            "id": client.get("id") or "",
            "name": client.get("name") or "",
            "company_id": client.get("company_id") or "",
        },
        "company_id": company_id,
        "cost": float(first.get("price") or 0),
        "costDetails": {
            "basePrice": float(first.get("price") or 0),
            "days": int(first.get("duration_days") or quotation.get("duration_days") or 0),
            "discount": float(quotation.get("discount") or 0),
            "total": total,
            "vatAmount": round(total * OUTPUT_VAT_RATE, 2),
            "vatRate": OUTPUT_VAT_RATE,
        },
        "start_date": quotation.get("start_date") or "",
        "end_date": quotation.get("end_date") or "",
        "payment_method": quotation.get("payment_method") or "Manual Payment",
        "product_id": first.get("product_id") or "",
        "product_name": first.get("name") or "",
        "product_owner": quotation.get("product_owner") or "",
        "seller_id": quotation.get("seller_id") or quotation.get("created_by") or "",
        "status": "RESERVED",
        "total_cost": total,
        "type": quotation.get("type") or "RENTAL",
        "user_id": user_id,
        "quotation_id": quotation["id"],
        "created": stamp,
        "updated": stamp,
    }
    return create_document(db, collections.BOOKINGS, data)


def get_booking(db, booking_id: str) -> dict:
    return require_document(db, collections.BOOKINGS, booking_id, "Booking")


def update_booking_status(db, booking_id: str, status: str, cancel_reason: str | None = None) -> dict:
    status = status.upper()
    if status not in BOOKING_STATUSES:
        raise InvalidInputError(f"Invalid booking status: {status}")
    get_booking(db, booking_id)
    changes = {"status": status, "updated": utcnow()}
    if status == "CANCELLED":
        changes["cancel_reason"] = cancel_reason or ""
    update_document(db, collections.BOOKINGS, booking_id, changes)
    return get_booking(db, booking_id)


def list_product_bookings(db, product_id: str) -> list[dict]:
    query = where(db.collection(collections.BOOKINGS), "product_id", "==", product_id)
    return stream_dicts(query.order_by("created", direction=DESCENDING))


def _company_query(db, company_id: str, status: str | None, booking_type: str | None):
    query = where(db.collection(collections.BOOKINGS), "company_id", "==", company_id)
    if status:
        query = where(query, "status", "==", status)
    if booking_type:
        query = where(query, "type", "==", booking_type)
    return query


def list_company_bookings(
    db,
    company_id: str,
    status: str | None = None,
    booking_type: str | None = None,
) -> list[dict]:
    query = _company_query(db, company_id, status, booking_type)
    return stream_dicts(query.order_by("created", direction=DESCENDING))


def list_completed_bookings(
    db,
    company_id: str,
    limit: int = 20,
    last_id: str | None = None,
    status: str | None = None,
    booking_type: str | None = None,
) -> dict:
    query = _company_query(db, company_id, status or "COMPLETED", booking_type)
    query = query.order_by("created", direction=DESCENDING)
    return paginate(db, collections.BOOKINGS, query, limit, last_id)


def count_completed_bookings(
    db,
    company_id: str,
    status: str | None = None,
    booking_type: str | None = None,
) -> int:
    return len(list(_company_query(db, company_id, status or "COMPLETED", booking_type).stream()))


def to_sales_record(booking: dict) -> dict:
    created = booking.get("created") or utcnow()
    net_sales = float(booking.get("total_cost") or booking.get("cost") or 0)
    output_vat = net_sales * OUTPUT_VAT_RATE
    total = net_sales + output_vat
    creditable_tax = net_sales * CREDITABLE_TAX_RATE
    booking_id = booking["id"]
    client = booking.get("client") or {}
    return {
        "id": booking_id,
        "bookingId": booking_id,
        "month": created.strftime("%b"),
        "date": str(created.day),
        "serviceInvoice": f"SI-{booking_id[-6:]}",
        "bsNumber": f"BS-{booking_id[-4:]}",
        "clients": client.get("name") or client.get("id") or "Unknown Client",
        "tin": "",
        "description": f"{booking.get('type', '')} - {booking.get('product_owner', '')}",
        "netSales": net_sales,
        "outputVat": output_vat,
        "total": total,
        "discount": 0,
        "creditableTax": creditable_tax,
        "amountCollected": total - creditable_tax,
        "orNo": f"OR-{booking_id[-4:]}",
        "paidDate": created.date().isoformat(),
        "productOwner": booking.get("product_owner"),
        "paymentMethod": booking.get("payment_method"),
        "productType": booking.get("type"),
        "status": booking.get("status"),
    }


def export_sales_records(records: list[dict]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "SALES RECORDS"
    ws.append([label for label, _ in SALES_RECORD_HEADERS])
    for record in records:
        ws.append([record.get(key) for _, key in SALES_RECORD_HEADERS])
    data = BytesIO()
    wb.save(data)
    return data.getvalue()
