"""Receipts, properties and events."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from tests.factories import (
    auth_headers,
    create_event,
    create_property,
    create_receipt,
    create_temple,
    create_user,
)

pytestmark = pytest.mark.integration


PROPERTY = {
    "property_no": "P-100",
    "survey_no": "S-12/3",
    "ward_no": "7",
    "street_name": "South Car Street",
    "area": "Old Town",
    "city": "Madurai",
    "pincode": "625001",
    "owner_name": "Meenakshi",
    "owner_mobile": "9876543210",
    "tax_amount": "1500.00",
    "tax_year": 2024,
}


class TestReceipts:

    @pytest.fixture
    def headers(self, db_session, temple):
        user = create_user(db_session, temple=temple, role="admin", grants=[("receipts", "edit")])
        return auth_headers(user)

    def test_create(self, client, headers):
        response = client.post(
            "/api/receipts",
            json={"register_no": "R-9", "date": "2024-04-14", "type": "donation", "amount": "501"},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["type"] == "donation"

    def test_list_date_range_and_type(self, client, db_session, headers, temple):
        create_receipt(db_session, temple=temple, type="donation", on=date(2024, 1, 1))
        create_receipt(db_session, temple=temple, type="donation", on=date(2024, 2, 1))
        create_receipt(db_session, temple=temple, type="archana", on=date(2024, 2, 10))

        rows = client.get("/api/receipts?from=2024-01-15&to=2024-02-28", headers=headers).json()
        assert [r["date"] for r in rows] == ["2024-02-10", "2024-02-01"]
        donations = client.get("/api/receipts?type=donation", headers=headers).json()
        assert len(donations) == 2

    def test_view_grant_cannot_create(self, client, db_session, temple):
        viewer = create_user(db_session, temple=temple, role="admin", grants=[("receipts", "view")])
        response = client.post(
            "/api/receipts",
            json={"register_no": "R-9", "date": "2024-04-14", "type": "donation", "amount": "1"},
            headers=auth_headers(viewer),
        )
        assert response.status_code == 403


class TestProperties:

    @pytest.fixture
    def headers(self, db_session, temple):
        user = create_user(
            db_session, temple=temple, role="admin", grants=[("property_registrations", "edit")]
        )
        return auth_headers(user)

    def test_create_defaults_pending_to_tax(self, client, headers):
        response = client.post("/api/properties", json=PROPERTY, headers=headers)
        assert response.status_code == 201
        data = response.json()
        assert data["tax_status"] == "pending"
        assert Decimal(data["pending_amount"]) == Decimal("1500")

    def test_create_paid_has_nothing_pending(self, client, headers):
        response = client.post(
            "/api/properties", json={**PROPERTY, "tax_status": "paid"}, headers=headers
        )
        assert Decimal(response.json()["pending_amount"]) == Decimal("0")

    @pytest.mark.parametrize("field,value", [
        ("pincode", "6250"),
        ("owner_mobile", "12345"),
        ("owner_aadhaar", "abc"),
        ("tax_status", "waived"),
    ])
    def test_validation(self, client, headers, field, value):
        response = client.post("/api/properties", json={**PROPERTY, field: value}, headers=headers)
        assert response.status_code == 400

    def test_list_search_and_status(self, client, db_session, headers, temple):
        create_property(db_session, temple=temple, owner_name="Kannan")
        create_property(db_session, temple=temple, owner_name="Karthik", tax_status="paid")

        assert client.get("/api/properties?search=ka", headers=headers).json()["total"] == 2
        paid = client.get("/api/properties?tax_status=paid", headers=headers).json()
        assert [p["owner_name"] for p in paid["items"]] == ["Karthik"]

    def test_update(self, client, db_session, headers, temple):
        prop = create_property(db_session, temple=temple)
        response = client.put(
            f"/api/properties/{prop.id}",
            json={"tax_status": "partial", "pending_amount": "600"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["tax_status"] == "partial"

    def test_update_rejects_null_owner(self, client, db_session, headers, temple):
        prop = create_property(db_session, temple=temple)
        response = client.put(
            f"/api/properties/{prop.id}", json={"owner_name": None}, headers=headers
        )
        assert response.status_code == 400
        assert response.json() == {"error": "owner_name cannot be empty"}

    def test_delete_needs_full(self, client, db_session, headers, temple):
        prop = create_property(db_session, temple=temple)
        assert client.delete(f"/api/properties/{prop.id}", headers=headers).status_code == 403


class TestEvents:

    @pytest.fixture
    def headers(self, db_session, temple):
        user = create_user(db_session, temple=temple, role="member", grants=[("events", "edit")])
        return auth_headers(user)

    def test_member_with_grant_publishes(self, client, headers):
        tomorrow = (date.today() + timedelta(days=1)).isoformat()
        response = client.post(
            "/api/events",
            json={"title": "Pradosham", "date": tomorrow, "time": "17:30", "location": "Sanctum"},
            headers=headers,
        )
        assert response.status_code == 201

        public = client.get("/api/events/mobile/events").json()
        assert [e["title"] for e in public] == ["Pradosham"]

    def test_bad_time(self, client, headers):
        response = client.post(
            "/api/events",
            json={"title": "Late", "date": "2030-01-01", "time": "25:00", "location": "Hall"},
            headers=headers,
        )
        assert response.status_code == 400

    def test_list_and_search(self, client, db_session, headers, temple):
        create_event(db_session, temple=temple, title="Navaratri")
        create_event(db_session, temple=temple, title="Deepavali")
        create_event(db_session, temple=create_temple(db_session), title="Navaratri elsewhere")

        data = client.get("/api/events?search=nava", headers=headers).json()
        assert [e["title"] for e in data["items"]] == ["Navaratri"]

    def test_update_cannot_clear_title(self, client, db_session, headers, temple):
        event = create_event(db_session, temple=temple)
        response = client.put(f"/api/events/{event.id}", json={"title": None}, headers=headers)
        assert response.status_code == 400

    def test_delete_needs_full(self, client, db_session, headers, temple):
        event = create_event(db_session, temple=temple)
        assert client.delete(f"/api/events/{event.id}", headers=headers).status_code == 403

    def test_delete(self, client, db_session, superadmin_headers, temple):
        event = create_event(db_session, temple=temple)
        assert client.delete(f"/api/events/{event.id}", headers=superadmin_headers).status_code == 204
        assert client.get(f"/api/events/{event.id}", headers=superadmin_headers).status_code == 404
