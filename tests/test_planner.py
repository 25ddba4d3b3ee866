from datetime import datetime

import pytest

from ohplus.db import collections
from ohplus.services import planner


def _event(recurrence, start="2024-01-01T09:00:00", end="2024-01-01T10:00:00"):
    return {"id": "evt", "title": "Site visit", "start": start, "end": end, "recurrence": recurrence}


def test_weekly_expansion():
    instances = planner.expand_recurring(
        _event({"type": "weekly", "interval": 1}),
        datetime(2024, 1, 1),
        datetime(2024, 1, 31, 23, 59),
    )
    assert [i["start"].day for i in instances] == [1, 8, 15, 22, 29]
    assert instances[0]["id"] == "evt-instance-0"
    assert instances[0]["originalEventId"] == "evt"
    assert instances[0]["isRecurringInstance"] is True
    assert instances[2]["end"] == datetime(2024, 1, 15, 10, 0)


def test_expansion_respects_count_and_end_date():
    by_count = planner.expand_recurring(
        _event({"type": "daily", "interval": 1, "count": 3}),
        datetime(2024, 1, 1),
        datetime(2024, 12, 31),
    )
    assert len(by_count) == 3

    by_end = planner.expand_recurring(
        _event({"type": "weekly", "interval": 1, "endDate": "2024-01-10"}),
        datetime(2024, 1, 1),
        datetime(2024, 12, 31),
    )
    assert [i["start"].day for i in by_end] == [1, 8]


def test_instances_before_range_are_skipped_but_counted():
    instances = planner.expand_recurring(
        _event({"type": "daily", "interval": 1}),
        datetime(2024, 1, 10),
        datetime(2024, 1, 12, 23, 0),
    )
    assert [i["id"] for i in instances] == ["evt-instance-9", "evt-instance-10", "evt-instance-11"]


def test_monthly_and_yearly_steps():
    monthly = planner.expand_recurring(
        _event({"type": "monthly", "interval": 2}, "2024-01-15T09:00:00", "2024-01-15T10:00:00"),
        datetime(2024, 1, 1),
        datetime(2024, 6, 30),
    )
    assert [i["start"].month for i in monthly] == [1, 3, 5]

    yearly = planner.expand_recurring(
        _event({"type": "yearly", "interval": 1}),
        datetime(2024, 1, 1),
        datetime(2026, 12, 31),
    )
    assert [i["start"].year for i in yearly] == [2024, 2025, 2026]


def test_planner_api(client, fake_db, api_user):
    res = client.post(
        "/api/planner/events",
        json={
            "title": "Client meeting",
            "start": "2024-03-01T09:00:00Z",
            "end": "2024-03-01T10:00:00Z",
            "recurrence": {"type": "daily", "interval": 1, "count": 5},
        },
    )
    assert res.status_code == 201
    event = res.json()
    assert event["status"] == "scheduled"

    notifications = fake_db.data[collections.NOTIFICATIONS].values()
    assert len(notifications) == 7
    assert {n["department_to"] for n in notifications} >= {"Logistics", "I.T."}

    res = client.get(
        "/api/planner/events",
        params={"start": "2024-03-02T00:00:00Z", "end": "2024-03-03T23:59:00Z"},
    )
    assert len(res.json()["events"]) == 2

    api_user["uid"] = "someone-else"
    assert client.get(f"/api/planner/events/{event['id']}").status_code == 403


@pytest.mark.parametrize(
    "payload",
    [
        {"start": "2024-03-01T09:00:00Z", "end": "2024-03-01T08:00:00Z"},
        {
            "start": "2024-03-01T09:00:00Z",
            "end": "2024-03-01T10:00:00Z",
            "recurrence": {"type": "hourly"},
        },
        {"start": "2024-03-01T09:00:00Z", "end": "2024-03-01T10:00:00Z", "status": "maybe"},
    ],
)
def test_invalid_events_rejected(client, payload):
    res = client.post("/api/planner/events", json={"title": "Bad", **payload})
    assert res.status_code == 400
