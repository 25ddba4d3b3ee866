from collections import Counter

from ohplus.db import collections
from ohplus.db.firestore import exclude_deleted, require_document, stream_dicts, where
from ohplus.services import loop_timeline, screen_schedules

RESERVED_STATUSES = ("reserved", "to reserve")


def _status_counts(documents: list[dict], upper: bool = False) -> dict[str, int]:
    counts: Counter = Counter()
    for document in documents:
        status = str(document.get("status") or "unknown")
        counts[status.upper() if upper else status.lower()] += 1
    return dict(counts)


def _company_documents(db, collection: str, field: str, company_id: str) -> list[dict]:
    query = where(db.collection(collection), field, "==", company_id)
    return exclude_deleted(stream_dicts(query))


def sales_summary(db, company_id: str) -> dict:
    proposals = _company_documents(db, collections.PROPOSALS, "companyId", company_id)
    quotations = _company_documents(db, collections.QUOTATIONS, "company_id", company_id)
    bookings = _company_documents(db, collections.BOOKINGS, "company_id", company_id)
    return {
        "proposals": {"total": len(proposals), "byStatus": _status_counts(proposals)},
        "quotations": {"total": len(quotations), "byStatus": _status_counts(quotations)},
        "bookings": {"total": len(bookings), "byStatus": _status_counts(bookings, upper=True)},
    }


def conversion_rate(quotations: list[dict]) -> float:
    if not quotations:
        return 0.0
    reserved = sum(
        1
        for quotation in quotations
        if str(quotation.get("status") or "").strip().lower() in RESERVED_STATUSES
    )
    return round(reserved / len(quotations) * 100, 2)


def site_performance(bookings: list[dict]) -> list[dict]:
    sites: dict[str, dict] = {}
    for booking in bookings:
        if str(booking.get("status") or "").upper() == "CANCELLED":
            continue
        product_id = booking.get("product_id") or ""
        if not product_id:
            continue
        site = sites.setdefault(
            product_id,
            {
                "productId": product_id,
                "name": booking.get("product_name") or "",
                "bookings": 0,
                "revenue": 0.0,
            },
        )
        site["bookings"] += 1
        site["revenue"] += float(booking.get("total_cost") or 0)
    return sorted(sites.values(), key=lambda site: (-site["revenue"], -site["bookings"], site["name"]))


def business_summary(db, company_id: str) -> dict:
    bookings = _company_documents(db, collections.BOOKINGS, "company_id", company_id)
    quotations = _company_documents(db, collections.QUOTATIONS, "company_id", company_id)
    products = _company_documents(db, collections.PRODUCTS, "company_id", company_id)
    performance = site_performance(bookings)
    return {
        "totalSites": len(products),
        "bookedSites": len(performance),
        "totalRevenue": sum(site["revenue"] for site in performance),
        "sitePerformance": performance,
        "bestSite": performance[0] if performance else None,
        "worstSite": performance[-1] if performance else None,
        "conversionRate": conversion_rate(quotations),
    }


def cms_summary(db, product_id: str) -> dict:
    product = require_document(db, collections.PRODUCTS, product_id, "Product")
    metrics = loop_timeline.timeline_metrics(product.get("cms"))
    schedules = screen_schedules.list_schedules(db, product_id)
    filled = {schedule.get("spot_number") for schedule in schedules}
    spots = metrics["spots_per_loop"]
    occupied = sum(1 for spot in range(1, spots + 1) if spot in filled)
    return {
        "productId": product_id,
        "name": product.get("name", ""),
        **metrics,
        "filledSpots": occupied,
        "emptySpots": spots - occupied,
        "occupancyRate": round(occupied / spots * 100, 2) if spots else 0.0,
    }
