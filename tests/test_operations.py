import pytest

from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.services import notifications, service_assignments


def test_assignment_defaults_and_status_validation(fake_db):
    assignment = service_assignments.create_assignment(
        fake_db, {"projectSiteId": "site-1", "serviceType": "Repair"}, "user-1", "company-1"
    )
    assert assignment["status"] == "pending"
    assert assignment["saNumber"].startswith("SA-")
    assert assignment["requestedBy"] == "user-1"

    with pytest.raises(InvalidInputError):
        service_assignments.create_assignment(fake_db, {"projectSiteId": "site-1", "status": "lost"}, "u", "c")
    with pytest.raises(InvalidInputError):
        service_assignments.update_assignment(fake_db, assignment["id"], {"status": "paused"})


def test_service_assignment_endpoints(client, fake_db, api_user):
    api_user["roles"] = ["logistics"]
    res = client.post(
        "/api/service-assignments",
        json={"projectSiteId": "site-1", "serviceType": "Roll Down", "assignedTo": "crew-a"},
    )
    assert res.status_code == 201
    first = res.json()
    second = client.post("/api/service-assignments", json={"projectSiteId": "site-1"}).json()
    client.post("/api/service-assignments", json={"projectSiteId": "site-2"})

    res = client.patch(f"/api/service-assignments/{second['id']}", json={"status": "Completed"})
    assert res.json()["status"] == "completed"

    assert len(client.get("/api/service-assignments").json()["assignments"]) == 3

    res = client.get("/api/products/site-1/service-assignments")
    assert len(res.json()["assignments"]) == 2
    res = client.get("/api/products/site-1/service-assignments", params={"active_only": True})
    assert [item["id"] for item in res.json()["assignments"]] == [first["id"]]

    assert client.get("/api/service-assignments/missing").status_code == 404


def test_proposal_template_endpoints(client, fake_db):
    res = client.post("/api/proposal-templates", json={"name": "Standard", "content": "<p>Hi</p>"})
    assert res.status_code == 201
    template = res.json()["data"]
    assert template["company_id"] == "company-1"
    assert template["isDefault"] is False

    res = client.patch(f"/api/proposal-templates/{template['id']}", json={"isDefault": True})
    assert res.json()["data"]["isDefault"] is True

    res = client.get("/api/proposal-templates")
    assert [item["name"] for item in res.json()["data"]] == ["Standard"]

    res = client.delete(f"/api/proposal-templates/{template['id']}")
    assert res.json() == {"success": True, "data": {"id": template["id"]}}
    assert client.get("/api/proposal-templates").json()["data"] == []

    res = client.get("/api/proposal-templates/missing")
    assert res.status_code == 404
    assert res.json()["success"] is False


def _seed_notifications(fake_db):
    rows = {
        "n-sales": {"department_to": "Sales", "uid_to": None},
        "n-logistics": {"department_to": "Logistics", "uid_to": None},
        "n-mine": {"department_to": "", "uid_to": "user-1"},
        "n-theirs": {"department_to": "", "uid_to": "user-2"},
        "n-all": {"department_to": "", "uid_to": None},
        "n-other-company": {"department_to": "Sales", "uid_to": None, "company_id": "company-2"},
    }
    for notification_id, fields in rows.items():
        fake_db.seed(
            collections.NOTIFICATIONS,
            notification_id,
            {"company_id": "company-1", "title": notification_id, "viewed": False, **fields},
        )


def test_notification_targeting(fake_db):
    _seed_notifications(fake_db)
    items = notifications.list_notifications(fake_db, "company-1", "user-1", "Sales")
    assert sorted(item["id"] for item in items) == ["n-all", "n-mine", "n-sales"]
    assert notifications.unread_count(fake_db, "company-1", "user-2", "Logistics") == 3


def test_notification_endpoints(client, fake_db):
    _seed_notifications(fake_db)
    body = client.get("/api/notifications").json()
    assert body["unread"] == 3

    assert client.post("/api/notifications/n-sales/read").json() == {"status": "ok"}
    assert client.get("/api/notifications").json()["unread"] == 2
    assert client.post("/api/notifications/read-all").json() == {"updated": 2}
    assert client.get("/api/notifications").json()["unread"] == 0
    assert client.post("/api/notifications/missing/read").status_code == 404

    res = client.post(
        "/api/notifications", json={"type": "Reminder", "title": "Renew", "uid_to": "user-1"}
    )
    assert res.status_code == 201
    assert res.json()["department_from"] == "Sales"
    assert client.get("/api/notifications").json()["unread"] == 1


def test_doctor_reports_missing_integrations(client, monkeypatch):
    monkeypatch.delenv("ALGOLIA_APP_ID", raising=False)
    res = client.get("/api/doctor")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "WARN"
    assert body["email"] == "ERROR"
    assert body["search"] == "ERROR"
    assert body["storage"] == "OK"
