"""Permission catalog and navigation endpoints."""

import pytest

from templeadmin.core.rbac.permissions import PERMISSION_CATALOG

from tests.factories import auth_headers, create_user

pytestmark = pytest.mark.integration


class TestCatalogEndpoint:

    def test_admin_sees_catalog(self, client, admin_headers):
        response = client.get("/api/permissions", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert [p["id"] for p in data["permissions"]] == PERMISSION_CATALOG.ids()

    def test_member_forbidden(self, client, db_session, temple):
        member = create_user(db_session, temple=temple, role="member")
        response = client.get("/api/permissions", headers=auth_headers(member))
        assert response.status_code == 403
        assert response.json() == {"error": "Insufficient permissions"}


class TestNavigation:

    def test_only_granted_entries(self, client, db_session, temple):
        admin = create_user(
            db_session,
            temple=temple,
            role="admin",
            grants=[("members", "edit"), ("events", "view"), ("temple_settings", "full")],
        )
        response = client.get("/api/permissions/navigation", headers=auth_headers(admin))
        assert response.status_code == 200
        items = {i["id"]: i["access_level"] for i in response.json()}
        # temple_settings is not an admin entry even when granted
        assert items == {"members": "edit", "events": "view"}

    def test_member_with_no_grants_sees_nothing(self, client, db_session, temple):
        member = create_user(db_session, temple=temple, role="member")
        response = client.get("/api/permissions/navigation", headers=auth_headers(member))
        assert response.json() == []

    def test_superadmin_sees_everything(self, client, superadmin_headers):
        response = client.get("/api/permissions/navigation", headers=superadmin_headers)
        items = response.json()
        assert [i["id"] for i in items] == PERMISSION_CATALOG.ids()
        assert {i["access_level"] for i in items} == {"full"}
