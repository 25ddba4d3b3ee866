import base64
import os
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.services import emails, invitation_codes, subscriptions

START = datetime(2024, 1, 31, tzinfo=timezone.utc)


class SubscriptionDateTests(unittest.TestCase):
    def test_trial_runs_sixty_days(self):
        dates = subscriptions.calculate_end_date("trial", "N/A", START)
        self.assertEqual(dates["endDate"], START + timedelta(days=60))
        self.assertEqual(dates["trialEndDate"], dates["endDate"])

    def test_monthly_plan_clamps_month_end(self):
        dates = subscriptions.calculate_end_date("solo", "monthly", START)
        self.assertEqual(dates["endDate"], datetime(2024, 2, 29, tzinfo=timezone.utc))

    def test_event_plan_lasts_two_months(self):
        dates = subscriptions.calculate_end_date("graphic-expo-event", "N/A", START)
        self.assertEqual(dates["endDate"], datetime(2024, 3, 31, tzinfo=timezone.utc))

    def test_enterprise_never_ends(self):
        self.assertIsNone(subscriptions.calculate_end_date("enterprise", "N/A", START)["endDate"])

    def test_yearly_plan(self):
        dates = subscriptions.calculate_end_date("membership", "yearly", START)
        self.assertEqual(dates["endDate"], datetime(2025, 1, 31, tzinfo=timezone.utc))

    def test_product_limit(self):
        subscription = {"status": "active", "endDate": None, "maxProducts": 3}
        self.assertTrue(subscriptions.can_add_product(subscription, 2))
        self.assertFalse(subscriptions.can_add_product(subscription, 3))
        expired = {**subscription, "endDate": START}
        self.assertFalse(subscriptions.can_add_product(expired, 0))
        self.assertFalse(subscriptions.can_add_product(None, 0))


class EmailDemoModeTests(unittest.TestCase):
    @pytest.fixture(autouse=True)
    def _use_fake_db(self, fake_db):
        self.db = fake_db

    @patch.dict(os.environ, {}, clear=False)
    def test_demo_mode_records_email(self):
        os.environ.pop("RESEND_API_KEY", None)
        result = emails.send_email(self.db, [" ops@ohplus.ph "], "Hello", "Line 1\nLine 2")
        self.assertEqual(result["mode"], "demo")
        self.assertTrue(result["messageId"].startswith("demo_"))
        record = self.db.data[collections.EMAILS][result["emailId"]]
        self.assertEqual(record["to"], ["ops@ohplus.ph"])
        self.assertEqual(record["status"], "sent")
        self.assertNotIn("cc", record)

    @patch.dict(os.environ, {"RESEND_API_KEY": "re_test"})
    @patch("ohplus.services.emails.resend.Emails.send")
    def test_live_mode_sends_html(self, mock_send):
        mock_send.return_value = {"id": "msg_123"}
        attachment = emails.EmailAttachment("a.pdf", b"%PDF")
        result = emails.send_email(
            self.db, ["ops@ohplus.ph"], "Hello", "Line 1\nLine 2", attachments=[attachment]
        )
        self.assertEqual(result, {"messageId": "msg_123", "mode": "live", "emailId": result["emailId"]})
        params = mock_send.call_args[0][0]
        self.assertEqual(params["html"], "Line 1<br>Line 2")
        self.assertEqual(params["attachments"][0]["content"], base64.b64encode(b"%PDF").decode())

    @patch.dict(os.environ, {"RESEND_API_KEY": "re_test"})
    @patch("ohplus.services.emails.resend.Emails.send")
    def test_live_mode_failure_is_recorded(self, mock_send):
        mock_send.side_effect = RuntimeError("boom")
        with self.assertRaises(emails.EmailError):
            emails.send_email(self.db, ["ops@ohplus.ph"], "Hello", "Body")
        record = next(iter(self.db.data[collections.EMAILS].values()))
        self.assertEqual(record["status"], "failed")

    def test_invalid_type_is_rejected(self):
        with self.assertRaises(ValueError):
            emails.send_email(self.db, ["ops@ohplus.ph"], "Hello", "Body", email_type="spam")


def test_send_email_endpoint(client):
    res = client.post(
        "/api/send-email",
        json={
            "to": ["ops@ohplus.ph"],
            "subject": "Report",
            "email_type": "report",
            "attachments": [
                {"filename": "r.pdf", "content": base64.b64encode(b"report").decode()}
            ],
        },
    )
    assert res.status_code == 200
    assert res.json()["success"] is True

    res = client.get("/api/emails", params={"type": "report"})
    emails_list = res.json()["emails"]
    assert len(emails_list) == 1
    assert emails_list[0]["attachments"][0]["fileSize"] == 6


def test_send_email_rejects_bad_attachment(client):
    res = client.post(
        "/api/send-email",
        json={
            "to": ["ops@ohplus.ph"],
            "subject": "Report",
            "attachments": [{"filename": "r.pdf", "content": "not base64!"}],
        },
    )
    assert res.status_code == 400


def test_subscription_endpoints(client, fake_db, api_user):
    assert len(client.get("/api/subscriptions/plans").json()["plans"]) == 6

    api_user["roles"] = ["admin"]
    res = client.post("/api/subscriptions", json={"planType": "trial"})
    assert res.status_code == 201
    assert res.json()["status"] == "trialing"
    assert res.json()["maxProducts"] == 1

    res = client.get("/api/subscriptions/current")
    body = res.json()
    assert body["isActive"] is True
    assert body["productCount"] == 0
    assert body["canAddProduct"] is True
    assert body["canAddUser"] is True

    fake_db.seed(collections.USERS, "user-1", {"license_key": "LIC-1", "email": "ana@ohplus.ph"})
    assert client.get("/api/subscriptions/current").json()["canAddUser"] is False

    res = client.post("/api/subscriptions", json={"planType": "platinum"})
    assert res.status_code == 400

    api_user.pop("license_key")
    assert client.get("/api/subscriptions/current").status_code == 400


def test_invitation_code_lifecycle(client, fake_db, api_user):
    api_user["roles"] = ["admin"]
    res = client.post("/api/invitation-codes", json={"maxUses": 1, "role": "sales"})
    assert res.status_code == 201
    invitation = res.json()
    code = invitation["code"]

    res = client.post("/api/invitation-codes/validate", json={"code": code.lower()})
    assert res.json() == {"valid": True, "companyId": "company-1", "role": "sales"}

    res = client.post("/api/invitation-codes/redeem", json={"code": code})
    assert res.status_code == 200
    assert fake_db.data[collections.INVITATION_CODES][invitation["id"]]["usedCount"] == 1

    res = client.post("/api/invitation-codes/validate", json={"code": code})
    assert res.json()["error"] == "Invitation code has reached maximum uses"

    res = client.post("/api/invitation-codes/redeem", json={"code": code})
    assert res.status_code == 400

    res = client.post("/api/invitation-codes/validate", json={"code": "NOPE0000"})
    assert res.json() == {"valid": False, "error": "Invalid invitation code"}


def test_redeem_checks_uses_inside_transaction(fake_db):
    fake_db.seed(
        collections.INVITATION_CODES,
        "inv-1",
        {"code": "ABCD1234", "companyId": "company-1", "maxUses": 1, "usedCount": 0},
    )
    stale = {"id": "inv-1", "code": "ABCD1234", "maxUses": 1, "usedCount": 0}
    invitation_codes.use_code(fake_db, "ABCD1234")

    # a second caller that looked the code up before the first redeem committed
    with patch.object(invitation_codes, "get_by_code", return_value=stale):
        with pytest.raises(InvalidInputError):
            invitation_codes.use_code(fake_db, "ABCD1234")
    assert fake_db.data[collections.INVITATION_CODES]["inv-1"]["usedCount"] == 1


def test_expired_invitation_code(client, api_user):
    api_user["roles"] = ["admin"]
    res = client.post(
        "/api/invitation-codes", json={"maxUses": 5, "expiresAt": "2020-01-01T00:00:00Z"}
    )
    res = client.post("/api/invitation-codes/validate", json={"code": res.json()["code"]})
    assert res.json()["error"] == "Invitation code has expired"


def test_send_invitation_email(client, fake_db, api_user):
    api_user["roles"] = ["admin"]
    invitation = client.post("/api/invitation-codes", json={}).json()
    res = client.post(
        f"/api/invitation-codes/{invitation['id']}/send", json={"recipients": ["new@acme.ph"]}
    )
    assert res.status_code == 200
    record = fake_db.data[collections.EMAILS][res.json()["emailId"]]
    assert record["email_type"] == "invitation"
    assert invitation["code"] in record["body"]
