"""Credentials: password hashing, JWT issuing and bearer-token verification.

Token verification is stateless. The login session log is written by the
auth endpoints and is never consulted when a token is checked.
"""

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence, Tuple

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from templeadmin.core.config import get_settings
from templeadmin.db.models import SessionLog

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class CredentialError(Exception):
    """Base class for bearer-token failures surfaced at the HTTP boundary."""

    status_code = 401
    message = "Authentication failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class MissingToken(CredentialError):
    """No bearer token was supplied."""

    status_code = 401
    message = "Access token required"


class InvalidToken(CredentialError):
    """Signature check or expiry check failed."""

    status_code = 403
    message = "Invalid or expired token"


@dataclass(frozen=True)
class TokenClaims:
    """Decoded claims attached to an authenticated request."""

    id: int
    role: str
    temple_id: Optional[int] = None
    mobile: Optional[str] = None
    username: Optional[str] = None
    jti: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "TokenClaims":
        user_id = payload.get("sub", payload.get("id"))
        role = payload.get("role")
        if user_id is None or role is None:
            raise InvalidToken()
        try:
            user_id = int(user_id)
            temple_id = payload.get("temple_id")
            temple_id = int(temple_id) if temple_id is not None else None
        except (TypeError, ValueError):
            raise InvalidToken() from None
        return cls(
            id=user_id,
            role=str(role),
            temple_id=temple_id,
            mobile=payload.get("mobile"),
            username=payload.get("username"),
            jti=payload.get("jti"),
        )


@dataclass(frozen=True)
class PublicRoute:
    """An endpoint exempted from credential verification."""

    method: str
    pattern: str

    def matches(self, method: str, target: str) -> bool:
        if self.method != "*" and self.method != method.upper():
            return False
        return re.search(self.pattern, target) is not None


class CredentialVerifier:
    """Validates bearer tokens against the shared secret."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        public_routes: Sequence[Tuple[str, str]] = (),
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.public_routes = tuple(
            route if isinstance(route, PublicRoute) else PublicRoute(route[0].upper(), route[1])
            for route in public_routes
        )

    @classmethod
    def from_settings(cls, settings=None) -> "CredentialVerifier":
        settings = settings or get_settings()
        return cls(
            secret_key=settings.secret_key,
            algorithm=settings.algorithm,
            public_routes=settings.public_routes_list,
        )

    def is_public(self, method: str, target: str) -> bool:
        """Check the allowlist. ``target`` is the path plus any query string."""
        return any(route.matches(method, target) for route in self.public_routes)

    def verify(self, authorization: Optional[str]) -> TokenClaims:
        """
        Verify an Authorization header value.

        Args:
            authorization: Raw header, expected as "Bearer <token>"

        Returns:
            Decoded claims

        Raises:
            MissingToken: No token in the header
            InvalidToken: Bad signature, malformed or expired token
        """
        token = extract_bearer_token(authorization)
        if not token:
            raise MissingToken()
        return self.decode(token)

    def decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise InvalidToken() from None
        return TokenClaims.from_payload(payload)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Second whitespace-separated part of the header, if any."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) < 2:
        return None
    return parts[1]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)


def create_access_token(
    user_id: int,
    role: str,
    *,
    temple_id: Optional[int] = None,
    mobile: Optional[str] = None,
    username: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    settings=None,
) -> Tuple[str, str, datetime]:
    """Create a signed JWT. Returns (token, jti, expires_at)."""
    settings = settings or get_settings()
    if expires_delta is not None:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    jti = str(uuid.uuid4())

    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "temple_id": temple_id,
        "mobile": mobile,
        "username": username,
        "exp": expire,
        "jti": jti,
    }
    token = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    return token, jti, expire


def start_session(
    db: Session,
    user_id: int,
    jti: str,
    expires_at: datetime,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> SessionLog:
    """Record a login in the session log."""
    session = SessionLog(
        user_id=user_id,
        token_jti=jti,
        ip_address=ip_address,
        user_agent=user_agent,
        expires_at=expires_at,
    )
    db.add(session)
    db.commit()
    return session


def end_session(jti: Optional[str], db: Session) -> bool:
    """Stamp the logout time on a session. Returns False if already ended or unknown."""
    if not jti:
        return False
    session = db.query(SessionLog).filter(SessionLog.token_jti == jti).first()
    if session and session.logged_out_at is None:
        session.logged_out_at = datetime.utcnow()
        db.commit()
        return True
    return False
