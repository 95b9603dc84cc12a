"""Tests for token issuing, verification and the session log."""

from datetime import datetime, timedelta

import pytest
from jose import jwt

from templeadmin.core.config import get_settings
from templeadmin.core.security import (
    CredentialVerifier,
    InvalidToken,
    MissingToken,
    TokenClaims,
    create_access_token,
    end_session,
    extract_bearer_token,
    get_password_hash,
    start_session,
    verify_password,
)
from templeadmin.db.models import SessionLog

from tests.factories import create_user

SECRET = "unit-test-secret"


@pytest.fixture
def verifier():
    return CredentialVerifier(
        secret_key=SECRET,
        public_routes=[("POST", r"^/api/login$"), ("GET", r"^/api/temples(\?.*)?$")],
    )


def _token(secret=SECRET, **overrides):
    payload = {
        "sub": "7",
        "role": "admin",
        "temple_id": 3,
        "mobile": "9000000001",
        "username": "office",
        "jti": "abc",
        "exp": datetime.utcnow() + timedelta(hours=1),
    }
    payload.update(overrides)
    return jwt.encode(payload, secret, algorithm="HS256")


class TestVerify:
    """Bearer token verification."""

    def test_valid_token(self, verifier):
        claims = verifier.verify(f"Bearer {_token()}")
        assert claims == TokenClaims(
            id=7, role="admin", temple_id=3, mobile="9000000001", username="office", jti="abc"
        )

    def test_missing_header(self, verifier):
        with pytest.raises(MissingToken) as exc_info:
            verifier.verify(None)
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Access token required"

    def test_header_without_token(self, verifier):
        with pytest.raises(MissingToken):
            verifier.verify("Bearer")

    def test_scheme_word_is_not_checked(self, verifier):
        assert verifier.verify(f"Token {_token()}").id == 7

    def test_wrong_secret(self, verifier):
        with pytest.raises(InvalidToken) as exc_info:
            verifier.verify(f"Bearer {_token(secret='someone-else')}")
        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Invalid or expired token"

    def test_expired(self, verifier):
        expired = _token(exp=datetime.utcnow() - timedelta(seconds=5))
        with pytest.raises(InvalidToken):
            verifier.verify(f"Bearer {expired}")

    def test_garbage(self, verifier):
        with pytest.raises(InvalidToken):
            verifier.verify("Bearer not.a.jwt")

    def test_missing_role_claim(self, verifier):
        token = jwt.encode({"sub": "7", "exp": datetime.utcnow() + timedelta(hours=1)}, SECRET)
        with pytest.raises(InvalidToken):
            verifier.verify(f"Bearer {token}")

    def test_non_numeric_subject(self, verifier):
        with pytest.raises(InvalidToken):
            verifier.verify(f"Bearer {_token(sub='seven')}")


class TestPublicRoutes:

    def test_login_is_public(self, verifier):
        assert verifier.is_public("POST", "/api/login")
        assert not verifier.is_public("GET", "/api/login")

    def test_query_string_is_part_of_target(self, verifier):
        assert verifier.is_public("GET", "/api/temples?city=Madurai")
        assert not verifier.is_public("GET", "/api/templesx")

    def test_from_settings(self):
        verifier = CredentialVerifier.from_settings()
        assert verifier.is_public("POST", "/api/login")
        assert verifier.is_public("GET", "/api/events/mobile/events")
        assert not verifier.is_public("GET", "/api/members")


class TestTokens:

    def test_claims_round_trip(self):
        token, jti, expires_at = create_access_token(
            12, "member", temple_id=4, mobile="9123456789", username="devotee"
        )
        claims = CredentialVerifier.from_settings().decode(token)
        assert claims.id == 12
        assert claims.role == "member"
        assert claims.temple_id == 4
        assert claims.jti == jti
        assert expires_at > datetime.utcnow()

    def test_default_lifetime_from_settings(self):
        _, _, expires_at = create_access_token(1, "admin")
        expected = datetime.utcnow() + timedelta(minutes=get_settings().access_token_expire_minutes)
        assert abs((expected - expires_at).total_seconds()) < 5

    def test_each_token_has_own_jti(self):
        assert create_access_token(1, "admin")[1] != create_access_token(1, "admin")[1]

    def test_extract_bearer_token(self):
        assert extract_bearer_token("Bearer abc") == "abc"
        assert extract_bearer_token("") is None


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = get_password_hash("s3cret!")
        assert hashed != "s3cret!"
        assert verify_password("s3cret!", hashed)
        assert not verify_password("wrong", hashed)


class TestSessionLog:

    def test_start_and_end(self, db_session):
        user = create_user(db_session)
        expires_at = datetime.utcnow() + timedelta(hours=1)
        session = start_session(db_session, user.id, "jti-1", expires_at, ip_address="10.0.0.1")

        assert session.logged_out_at is None
        assert session.duration_seconds is None

        assert end_session("jti-1", db_session) is True
        stored = db_session.query(SessionLog).filter_by(token_jti="jti-1").one()
        assert stored.logged_out_at is not None
        assert stored.duration_seconds >= 0

    def test_end_twice(self, db_session):
        user = create_user(db_session)
        start_session(db_session, user.id, "jti-2", datetime.utcnow() + timedelta(hours=1))
        assert end_session("jti-2", db_session) is True
        assert end_session("jti-2", db_session) is False

    def test_end_unknown(self, db_session):
        assert end_session("nope", db_session) is False
        assert end_session(None, db_session) is False
