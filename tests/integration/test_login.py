"""Login, logout and profile flows."""

import pytest

from templeadmin.core.security import CredentialVerifier
from templeadmin.db.models import ActivityLog, SessionLog

from tests.factories import TEST_PASSWORD, auth_headers, create_user

pytestmark = pytest.mark.integration


@pytest.fixture
def member(db_session, temple):
    return create_user(
        db_session,
        temple=temple,
        mobile="9876500001",
        username="devotee",
        grants=[("dashboard", "view"), ("events", "edit")],
    )


def _login(client, **body):
    return client.post("/api/login", json=body, headers={"User-Agent": "pytest"})


class TestLogin:

    def test_login_with_mobile(self, client, member):
        response = _login(client, mobile="9876500001", password=TEST_PASSWORD)
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["token_type"] == "bearer"
        assert data["user"]["id"] == member.id
        assert "password_hash" not in data["user"]
        assert data["temple_name"] == "Sri Ganesh Temple"
        assert sorted((g["permission_id"], g["access_level"]) for g in data["permissions"]) == [
            ("dashboard", "view"),
            ("events", "edit"),
        ]

    def test_token_carries_identity(self, client, member):
        token = _login(client, username="devotee", password=TEST_PASSWORD).json()["token"]
        claims = CredentialVerifier.from_settings().decode(token)
        assert claims.id == member.id
        assert claims.role == "member"
        assert claims.temple_id == member.temple_id
        assert claims.mobile == "9876500001"

    def test_login_records_session(self, client, db_session, member):
        _login(client, mobile="9876500001", password=TEST_PASSWORD)
        session = db_session.query(SessionLog).filter_by(user_id=member.id).one()
        assert session.user_agent == "pytest"
        assert session.logged_out_at is None

    def test_login_stamps_last_login(self, client, db_session, member):
        _login(client, mobile="9876500001", password=TEST_PASSWORD)
        db_session.refresh(member)
        assert member.last_login is not None

    def test_wrong_password(self, client, member):
        response = _login(client, mobile="9876500001", password="nope")
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials."}

    def test_unknown_user(self, client, temple):
        response = _login(client, username="ghost", password=TEST_PASSWORD)
        assert response.status_code == 401

    def test_inactive_user(self, client, db_session, temple):
        create_user(db_session, temple=temple, username="gone", status="inactive")
        response = _login(client, username="gone", password=TEST_PASSWORD)
        assert response.status_code == 401

    @pytest.mark.parametrize("body", [
        {"mobile": "9876500001"},
        {"password": TEST_PASSWORD},
        {},
    ])
    def test_missing_fields(self, client, body):
        response = _login(client, **body)
        assert response.status_code == 400
        assert response.json() == {"error": "Username or mobile and password are required."}


class TestLogout:

    def test_logout_ends_session(self, client, db_session, member):
        token = _login(client, mobile="9876500001", password=TEST_PASSWORD).json()["token"]
        headers = {"Authorization": f"Bearer {token}"}

        response = client.post("/api/logout", headers=headers)
        assert response.status_code == 200

        session = db_session.query(SessionLog).filter_by(user_id=member.id).one()
        db_session.refresh(session)
        assert session.logged_out_at is not None
        assert db_session.query(ActivityLog).filter_by(action="logout").count() == 1

    def test_token_still_verifies_after_logout(self, client, member):
        token = _login(client, mobile="9876500001", password=TEST_PASSWORD).json()["token"]
        headers = {"Authorization": f"Bearer {token}"}
        client.post("/api/logout", headers=headers)
        assert client.get("/api/profile", headers=headers).status_code == 200

    def test_logout_requires_token(self, client):
        assert client.post("/api/logout").status_code == 401


class TestProfile:

    def test_update_profile(self, client, member):
        response = client.put(
            "/api/profile",
            json={"full_name": "Devotee One", "website_link": "https://temple.example"},
            headers=auth_headers(member),
        )
        assert response.status_code == 200
        assert response.json()["full_name"] == "Devotee One"

    def test_change_password(self, client, member):
        response = client.put(
            "/api/profile",
            json={"current_password": TEST_PASSWORD, "new_password": "new-secret"},
            headers=auth_headers(member),
        )
        assert response.status_code == 200
        assert _login(client, mobile="9876500001", password="new-secret").status_code == 200

    def test_change_password_needs_current(self, client, db_session, member):
        response = client.put(
            "/api/profile",
            json={"current_password": "wrong", "new_password": "new-secret"},
            headers=auth_headers(member),
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Current password is incorrect"}
        assert db_session.query(ActivityLog).filter_by(action="password_change_failed").count() == 1

    def test_username_taken(self, client, db_session, temple, member):
        create_user(db_session, temple=temple, username="alpha")
        response = client.put(
            "/api/profile", json={"username": "alpha"}, headers=auth_headers(member)
        )
        assert response.status_code == 409
        assert _login(client, username="alpha", password=TEST_PASSWORD).json()["user"]["id"] != member.id

    def test_invalid_body(self, client, member):
        response = client.put(
            "/api/profile", json={"email": "not-an-email"}, headers=auth_headers(member)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"
        assert response.json()["errors"]
