import io
import unittest

import pytest

from ohplus.core.errors import InvalidInputError, NotFoundError
from ohplus.db import collections
from ohplus.services import screen_schedules
from ohplus.services.storage import FileTooLargeError, StorageClient

USER = {"uid": "user-1", "company_id": "company-1"}


class ValidateVideoTests(unittest.TestCase):
    def test_accepts_known_formats(self):
        screen_schedules.validate_video("ad.mp4", "video/mp4", 1024)
        screen_schedules.validate_video("ad.MOV", "video/quicktime")

    def test_rejects_other_types(self):
        with self.assertRaises(InvalidInputError):
            screen_schedules.validate_video("ad.gif", "image/gif")
        with self.assertRaises(InvalidInputError):
            screen_schedules.validate_video("ad.mp4", "application/octet-stream")

    def test_rejects_large_files(self):
        with self.assertRaises(InvalidInputError):
            screen_schedules.validate_video(
                "ad.mp4", "video/mp4", screen_schedules.MAX_VIDEO_BYTES + 1
            )


class ScheduleUpsertTests(unittest.TestCase):
    @pytest.fixture(autouse=True)
    def _use_fake_db(self, fake_db):
        self.db = fake_db
        fake_db.seed(collections.PRODUCTS, "led-1", {"name": "LED", "company_id": "company-9"})

    def test_creates_then_updates_same_spot(self):
        created = screen_schedules.upsert_schedule(self.db, "led-1", 2, {"title": "Promo"}, USER)
        self.assertEqual(created["company_id"], "company-9")
        self.assertEqual(created["seller_id"], "user-1")
        self.assertTrue(created["active"])

        updated = screen_schedules.upsert_schedule(
            self.db, "led-1", 2, {"title": "Promo v2", "media": None}, USER
        )
        self.assertEqual(updated["id"], created["id"])
        self.assertEqual(updated["title"], "Promo v2")
        self.assertEqual(len(screen_schedules.list_schedules(self.db, "led-1")), 1)

    def test_spot_number_must_be_positive(self):
        with self.assertRaises(InvalidInputError):
            screen_schedules.upsert_schedule(self.db, "led-1", 0, {}, USER)

    def test_deleted_schedules_are_hidden(self):
        schedule = screen_schedules.upsert_schedule(self.db, "led-1", 1, {}, USER)
        screen_schedules.delete_schedule(self.db, schedule["id"])
        self.assertEqual(screen_schedules.list_schedules(self.db, "led-1"), [])


def test_local_storage_upload(tmp_path, monkeypatch):
    monkeypatch.setenv("LOCAL_STORAGE", "1")
    monkeypatch.setenv("LOCAL_STORAGE_DIR", str(tmp_path))
    client = StorageClient()
    url, size = client.upload_file(io.BytesIO(b"video-bytes"), "screen_schedules/a.mp4", "video/mp4")
    assert size == 11
    assert url.startswith("file://")
    assert (tmp_path / "screen_schedules" / "a.mp4").read_bytes() == b"video-bytes"
    assert client.generate_signed_url(url) == url

    with pytest.raises(FileTooLargeError):
        client.upload_file(io.BytesIO(b"x" * 10), "screen_schedules/b.mp4", "video/mp4", max_bytes=4)
    assert not (tmp_path / "screen_schedules" / "b.mp4").exists()


def test_upload_for_missing_product_stores_nothing(fake_db, tmp_path, monkeypatch):
    monkeypatch.setenv("LOCAL_STORAGE", "1")
    monkeypatch.setenv("LOCAL_STORAGE_DIR", str(tmp_path))
    fake_db.seed(collections.PRODUCTS, "gone-1", {"name": "Old LED", "deleted": True})
    for product_id, spot_number in (("no-such-product", 1), ("gone-1", 1), ("gone-1", 0)):
        with pytest.raises((NotFoundError, InvalidInputError)):
            screen_schedules.upload_spot_video(
                fake_db, product_id, spot_number, io.BytesIO(b"video"), "a.mp4", "video/mp4", USER
            )
    assert list(tmp_path.rglob("*.mp4")) == []


def test_video_path_sanitizes_filename():
    path = screen_schedules.video_path("led-1", 3, "../My Ad (final).mp4")
    assert path.startswith("screen_schedules/led-1_spot_3_")
    assert path.endswith("_My_Ad__final_.mp4")


def test_cms_schedule_endpoints(client, fake_db, api_user):
    api_user["roles"] = ["cms"]
    fake_db.seed(
        collections.PRODUCTS,
        "led-1",
        {"name": "LED Makati", "cms": {"start_time": "08:00", "spot_duration": 30, "spots_per_loop": 3}},
    )

    res = client.post(
        "/api/cms/products/led-1/schedules/2/video",
        files={"file": ("summer.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")},
        data={"title": "Summer Sale"},
    )
    assert res.status_code == 201
    schedule = res.json()
    assert schedule["title"] == "Summer Sale"
    assert schedule["media"].startswith("file://")

    res = client.get("/api/cms/products/led-1/timeline")
    body = res.json()
    assert [slot["time"] for slot in body["slots"]] == ["08:00", "08:00", "08:01"]
    assert body["slots"][1]["isEmpty"] is False
    assert body["slots"][1]["scheduleId"] == schedule["id"]

    res = client.get(f"/api/cms/schedules/{schedule['id']}/media-url")
    assert res.json()["url"] == schedule["media"]

    res = client.put("/api/cms/products/led-1/schedules/3", json={"title": "Filler", "duration": 15})
    assert res.status_code == 200
    assert len(client.get("/api/cms/products/led-1/schedules").json()["schedules"]) == 2

    assert client.delete(f"/api/cms/schedules/{schedule['id']}").status_code == 204
    assert fake_db.data[collections.SCREEN_SCHEDULES][schedule["id"]]["deleted"] is True
    assert len(client.get("/api/cms/products/led-1/schedules").json()["schedules"]) == 1


def test_cms_video_upload_rejects_images(client, fake_db, api_user):
    api_user["roles"] = ["cms"]
    fake_db.seed(collections.PRODUCTS, "led-1", {"name": "LED Makati"})
    res = client.post(
        "/api/cms/products/led-1/schedules/1/video",
        files={"file": ("photo.png", b"\x89PNG", "image/png")},
    )
    assert res.status_code == 400


def test_cms_requires_content_role(client):
    assert client.get("/api/cms/products/led-1/schedules").status_code == 403
