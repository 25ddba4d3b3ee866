import pytest

from ohplus.core.errors import InvalidInputError
from ohplus.db import collections
from ohplus.services import bookings, clients, products


def test_client_search_matches_name_email_company_and_phone():
    client = {"name": "Ben Cruz", "email": "ben@acme.ph", "company": "Acme", "phone": "0917 555"}
    assert clients.client_matches(client, "cruz")
    assert clients.client_matches(client, "ACME")
    assert clients.client_matches(client, "0917")
    assert not clients.client_matches(client, "globe")
    assert clients.client_matches(client, "  ")


def test_create_client_defaults(fake_db):
    client = clients.create_client(fake_db, {"name": "Acme", "ignored": "x"})
    assert client["status"] == "lead"
    assert client["email"] == ""
    assert "ignored" not in client

    with pytest.raises(InvalidInputError):
        clients.create_client(fake_db, {"name": "Acme", "status": "vip"})


def test_format_content_type_and_location():
    assert products.format_content_type("DYNAMIC") == "Dynamic"
    assert products.format_content_type(None) == ""
    assert products.get_location({"specs_rental": {"location": "EDSA"}, "location": "x"}) == "EDSA"
    assert products.get_location({"location": "C5"}) == "C5"
    assert products.get_thumbnail({"media": [{"url": ""}, {"url": "https://cdn/a.jpg"}]}) == (
        "https://cdn/a.jpg"
    )


def test_clients_api(client, api_user):
    for name in ("Charlie Ads", "Acme Corp", "Bravo Media"):
        res = client.post("/api/clients", json={"name": name, "email": f"{name[0].lower()}@x.ph"})
        assert res.status_code == 201
    created = res.json()
    assert created["uploadedBy"] == api_user["uid"]
    assert created["uploadedByName"] == "Ana Reyes"
    assert created["company_id"] == "company-1"

    res = client.get("/api/clients", params={"limit": 2})
    body = res.json()
    assert [item["name"] for item in body["items"]] == ["Acme Corp", "Bravo Media"]
    assert body["total"] == 3
    assert body["hasMore"] is True

    res = client.get("/api/clients", params={"q": "bravo"})
    assert [item["name"] for item in res.json()["items"]] == ["Bravo Media"]

    res = client.get("/api/clients/by-email", params={"email": "a@x.ph"})
    assert res.json()["client"]["name"] == "Acme Corp"

    res = client.patch(f"/api/clients/{created['id']}", json={"status": "active"})
    assert res.json()["status"] == "active"

    res = client.delete(f"/api/clients/{created['id']}")
    assert res.status_code == 204
    assert client.get(f"/api/clients/{created['id']}").status_code == 404


def test_products_api(client, fake_db):
    res = client.post(
        "/api/products",
        json={
            "name": "LED Screen Makati",
            "content_type": "dynamic",
            "media": [{"url": "https://cdn.ohplus.ph/led.jpg"}],
            "specs_rental": {"location": "Ayala Ave"},
        },
    )
    assert res.status_code == 201
    product = res.json()
    assert product["status"] == "PENDING"
    assert product["thumbnail"] == "https://cdn.ohplus.ph/led.jpg"
    assert product["location"] == "Ayala Ave"
    assert product["contentTypeLabel"] == "Dynamic"

    client.post("/api/products", json={"name": "Static Billboard", "content_type": "static"})

    res = client.get("/api/products/content-type/dynamic")
    assert [item["name"] for item in res.json()["items"]] == ["LED Screen Makati"]

    res = client.get("/api/products/content-type/hologram")
    assert res.status_code == 400

    res = client.get("/api/products", params={"q": "ayala"})
    assert res.json()["total"] == 1

    res = client.delete(f"/api/products/{product['id']}")
    assert res.status_code == 204
    assert fake_db.data[collections.PRODUCTS][product["id"]]["deleted"] is True
    assert client.get(f"/api/products/{product['id']}").status_code == 404
    assert client.get("/api/products").json()["total"] == 1


def test_invalid_product_type(client):
    res = client.post("/api/products", json={"name": "Mug", "type": "service"})
    assert res.status_code == 400


def test_product_without_media_gets_no_image_placeholder(client):
    res = client.post("/api/products", json={"name": "Static Billboard", "media": []})
    assert res.status_code == 201
    product = res.json()
    assert product["thumbnail"] is None
    assert product["thumbnailLabel"] == products.NO_IMAGE_LABEL
    assert products.get_thumbnail({"media": [{"url": ""}]}) is None

    res = client.post(
        "/api/products", json={"name": "LED", "media": [{"url": "https://cdn.ohplus.ph/led.jpg"}]}
    )
    assert res.json()["thumbnailLabel"] is None


def test_product_bookings_only_include_that_product(client, fake_db):
    for doc_id, product_id, created in (
        ("b1", "led-1", 1),
        ("b2", "led-2", 2),
        ("b3", "led-1", 3),
    ):
        fake_db.seed(
            collections.BOOKINGS,
            doc_id,
            {"product_id": product_id, "company_id": "company-1", "created": created},
        )

    assert [b["id"] for b in bookings.list_product_bookings(fake_db, "led-1")] == ["b3", "b1"]

    res = client.get("/api/products/led-2/bookings")
    assert res.status_code == 200
    assert [b["id"] for b in res.json()["bookings"]] == ["b2"]
    assert client.get("/api/products/led-9/bookings").json()["bookings"] == []
