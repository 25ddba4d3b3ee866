import unittest

from ohplus.db import collections
from ohplus.services import dashboard


class ConversionRateTests(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(dashboard.conversion_rate([]), 0.0)

    def test_reserved_statuses_count(self):
        quotations = [
            {"status": "reserved"},
            {"status": " To Reserve "},
            {"status": "sent"},
        ]
        self.assertEqual(dashboard.conversion_rate(quotations), 66.67)


class SitePerformanceTests(unittest.TestCase):
    def test_ranks_by_revenue_and_skips_cancelled(self):
        bookings = [
            {"product_id": "a", "product_name": "EDSA", "total_cost": 1000, "status": "RESERVED"},
            {"product_id": "b", "product_name": "C5", "total_cost": 5000, "status": "COMPLETED"},
            {"product_id": "a", "product_name": "EDSA", "total_cost": 500, "status": "RESERVED"},
            {"product_id": "c", "product_name": "SLEX", "total_cost": 9000, "status": "cancelled"},
            {"product_name": "Orphan", "total_cost": 100},
        ]
        ranked = dashboard.site_performance(bookings)
        self.assertEqual([site["productId"] for site in ranked], ["b", "a"])
        self.assertEqual(ranked[1]["bookings"], 2)
        self.assertEqual(ranked[1]["revenue"], 1500.0)


def _seed_sales_data(fake_db):
    fake_db.seed(collections.PRODUCTS, "p1", {"name": "EDSA", "company_id": "company-1"})
    fake_db.seed(collections.PRODUCTS, "p2", {"name": "C5", "company_id": "company-1"})
    fake_db.seed(collections.PRODUCTS, "p3", {"name": "Gone", "company_id": "company-1", "deleted": True})
    fake_db.seed(collections.PRODUCTS, "x1", {"name": "Other", "company_id": "company-2"})
    fake_db.seed(collections.PROPOSALS, "pp1", {"companyId": "company-1", "status": "sent"})
    fake_db.seed(collections.PROPOSALS, "pp2", {"companyId": "company-1", "status": "accepted"})
    fake_db.seed(collections.QUOTATIONS, "q1", {"company_id": "company-1", "status": "reserved"})
    fake_db.seed(collections.QUOTATIONS, "q2", {"company_id": "company-1", "status": "draft"})
    fake_db.seed(
        collections.BOOKINGS,
        "b1",
        {"company_id": "company-1", "product_id": "p1", "product_name": "EDSA", "total_cost": 3000, "status": "RESERVED"},
    )
    fake_db.seed(
        collections.BOOKINGS,
        "b2",
        {"company_id": "company-1", "product_id": "p2", "product_name": "C5", "total_cost": 1000, "status": "completed"},
    )


def test_business_summary(fake_db):
    _seed_sales_data(fake_db)
    summary = dashboard.business_summary(fake_db, "company-1")
    assert summary["totalSites"] == 2
    assert summary["bookedSites"] == 2
    assert summary["totalRevenue"] == 4000.0
    assert summary["bestSite"]["name"] == "EDSA"
    assert summary["worstSite"]["name"] == "C5"
    assert summary["conversionRate"] == 50.0


def test_sales_dashboard_endpoint(client, fake_db):
    _seed_sales_data(fake_db)
    res = client.get("/api/dashboard/sales")
    assert res.status_code == 200
    body = res.json()
    assert body["proposals"] == {"total": 2, "byStatus": {"sent": 1, "accepted": 1}}
    assert body["bookings"]["byStatus"] == {"RESERVED": 1, "COMPLETED": 1}

    assert client.get("/api/dashboard/business").status_code == 403


def test_business_dashboard_endpoint(client, fake_db, api_user):
    _seed_sales_data(fake_db)
    api_user["roles"] = ["business"]
    res = client.get("/api/dashboard/business")
    assert res.status_code == 200
    assert res.json()["sitePerformance"][0]["productId"] == "p1"


def test_cms_dashboard_endpoint(client, fake_db, api_user):
    api_user["roles"] = ["cms"]
    fake_db.seed(
        collections.PRODUCTS,
        "led-1",
        {"name": "LED Makati", "cms": {"spot_duration": 15, "spots_per_loop": 4, "loops_per_day": 10}},
    )
    for spot in (1, 3):
        fake_db.seed(
            collections.SCREEN_SCHEDULES,
            f"s{spot}",
            {"product_id": "led-1", "spot_number": spot, "deleted": False},
        )
    fake_db.seed(
        collections.SCREEN_SCHEDULES,
        "s-old",
        {"product_id": "led-1", "spot_number": 2, "deleted": True},
    )

    res = client.get("/api/dashboard/cms/led-1")
    assert res.status_code == 200
    body = res.json()
    assert body["filledSpots"] == 2
    assert body["emptySpots"] == 2
    assert body["occupancyRate"] == 50.0
    assert body["totalSpotsPerDay"] == 40

    assert client.get("/api/dashboard/cms/missing").status_code == 404
