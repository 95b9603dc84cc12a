"""Ledger endpoints."""

from datetime import date
from decimal import Decimal

import pytest

from tests.factories import auth_headers, create_ledger_entry, create_user

pytestmark = pytest.mark.integration


@pytest.fixture
def accountant(db_session, temple):
    return create_user(
        db_session,
        temple=temple,
        role="admin",
        grants=[("ledger_management", "edit"), ("balance_sheet", "view")],
    )


@pytest.fixture
def headers(accountant):
    return auth_headers(accountant)


@pytest.fixture
def entries(db_session, temple):
    return [
        create_ledger_entry(db_session, temple=temple, type="credit", amount="1000", under="Donations", on=date(2024, 1, 5)),
        create_ledger_entry(db_session, temple=temple, type="debit", amount="300", under="Electricity", on=date(2024, 1, 20)),
        create_ledger_entry(db_session, temple=temple, type="credit", amount="200", under="Hundi", on=date(2024, 2, 2)),
    ]


class TestEntries:

    def test_create(self, client, headers):
        response = client.post(
            "/api/ledger/entries",
            json={"date": "2024-03-01", "name": "Flowers", "type": "debit", "amount": "75.25", "under": "Pooja"},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["under"] == "Pooja"

    def test_invalid_type(self, client, headers):
        response = client.post(
            "/api/ledger/entries",
            json={"date": "2024-03-01", "name": "Flowers", "type": "refund", "amount": "1"},
            headers=headers,
        )
        assert response.status_code == 400

    def test_list_filters(self, client, headers, entries):
        data = client.get("/api/ledger/entries?type=credit", headers=headers).json()
        assert data["total"] == 2
        ranged = client.get(
            "/api/ledger/entries?start_date=2024-01-10&end_date=2024-01-31", headers=headers
        ).json()
        assert [e["name"] for e in ranged["items"]] == [entries[1].name]

    def test_update_cannot_clear_amount(self, client, headers, entries):
        response = client.put(
            f"/api/ledger/entries/{entries[0].id}", json={"amount": None}, headers=headers
        )
        assert response.status_code == 400

    def test_delete_needs_full(self, client, headers, entries):
        assert client.delete(f"/api/ledger/entries/{entries[0].id}", headers=headers).status_code == 403


class TestReports:

    def test_balance(self, client, headers, entries):
        balance = client.get("/api/ledger/balance", headers=headers).json()["balance"]
        assert Decimal(str(balance)) == Decimal("900")

    def test_profit_and_loss(self, client, headers, entries):
        rows = client.get("/api/ledger/profit-and-loss?year=2024", headers=headers).json()
        assert [r["period"] for r in rows] == ["2024-02", "2024-01"]
        assert Decimal(rows[1]["net_profit_loss"]) == Decimal("700")

    @pytest.mark.parametrize("path", ["/api/ledger/profit-and-loss", "/api/ledger/balance-sheet"])
    def test_year_out_of_range(self, client, db_session, temple, entries, path):
        user = create_user(
            db_session, temple=temple, role="admin",
            grants=[("ledger_management", "view"), ("balance_sheet", "view")],
        )
        response = client.get(f"{path}?year=99999", headers=auth_headers(user))
        assert response.status_code == 400

    def test_categories(self, client, headers, entries):
        data = client.get("/api/ledger/categories", headers=headers).json()["data"]
        assert data == ["Donations", "Electricity", "Hundi"]

    def test_balance_sheet(self, client, headers, entries):
        sheet = client.get("/api/ledger/balance-sheet", headers=headers).json()
        assert [c["under"] for c in sheet["income"]] == ["Donations", "Hundi"]
        assert Decimal(sheet["net"]) == Decimal("900")

    def test_balance_sheet_needs_its_own_grant(self, client, db_session, temple, entries):
        user = create_user(
            db_session, temple=temple, role="admin", grants=[("ledger_management", "full")]
        )
        response = client.get("/api/ledger/balance-sheet", headers=auth_headers(user))
        assert response.status_code == 403
