"""Test data factories.

Each ``create_*`` adds a row to the session and flushes it so the id is
available. Nothing is committed.
"""

import itertools
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from templeadmin.core.security import create_access_token, get_password_hash
from templeadmin.db.models import (
    Event,
    LedgerEntry,
    Member,
    Property,
    Receipt,
    TaxRegistration,
    Temple,
    User,
    UserPermission,
)

TEST_PASSWORD = "correct-horse"
# Hashing is slow; do it once for the whole run
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

_counter = itertools.count(1)


def _next_id() -> int:
    return next(_counter)


# ---------------------------------------------------------------------------
# Temple
# ---------------------------------------------------------------------------


def create_temple(
    session: Session,
    *,
    name: Optional[str] = None,
    city: str = "Madurai",
    status: str = "active",
) -> Temple:
    n = _next_id()
    temple = Temple(
        name=name or f"Temple {n}",
        address=f"{n} Temple Street",
        city=city,
        status=status,
    )
    session.add(temple)
    session.flush()
    return temple


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------


def create_user(
    session: Session,
    *,
    temple: Optional[Temple] = None,
    role: str = "member",
    mobile: Optional[str] = None,
    username: Optional[str] = None,
    password_hash: Optional[str] = None,
    status: str = "active",
    grants: Iterable[Tuple[str, str]] = (),
) -> User:
    """Create a user holding ``grants`` as (permission id, access level) pairs."""
    if temple is None:
        temple = create_temple(session)
    n = _next_id()
    user = User(
        mobile=mobile or f"90000{n:05d}",
        username=username or f"user{n}",
        password_hash=password_hash or TEST_PASSWORD_HASH,
        full_name=f"Test User {n}",
        temple_id=temple.id,
        role=role,
        status=status,
    )
    session.add(user)
    session.flush()

    for permission_id, access_level in grants:
        session.add(UserPermission(
            user_id=user.id,
            permission_id=permission_id,
            access_level=access_level,
        ))
    session.flush()
    return user


def auth_headers(user, **token_kwargs) -> dict:
    """Authorization header carrying a freshly signed token for ``user``."""
    token, _, _ = create_access_token(
        user.id,
        user.role,
        temple_id=user.temple_id,
        mobile=user.mobile,
        username=user.username,
        **token_kwargs,
    )
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Domain records
# ---------------------------------------------------------------------------


def create_member(
    session: Session,
    *,
    temple: Temple,
    name: Optional[str] = None,
    mobile_number: Optional[str] = None,
    village: Optional[str] = None,
    is_blocked: bool = False,
) -> Member:
    n = _next_id()
    member = Member(
        temple_id=temple.id,
        reference_number=f"M-{n}",
        name=name or f"Member {n}",
        mobile_number=mobile_number or f"98000{n:05d}",
        village=village,
        is_blocked=is_blocked,
    )
    session.add(member)
    session.flush()
    return member


def create_tax_registration(
    session: Session,
    *,
    temple: Temple,
    name: Optional[str] = None,
    year: int = 2024,
    tax_amount: str = "500.00",
    amount_paid: str = "0.00",
    aadhaar_number: Optional[str] = None,
    mobile_number: Optional[str] = None,
) -> TaxRegistration:
    n = _next_id()
    tax = Decimal(tax_amount)
    paid = Decimal(amount_paid)
    registration = TaxRegistration(
        temple_id=temple.id,
        reference_number=f"TR-{n}",
        name=name or f"Taxpayer {n}",
        mobile_number=mobile_number or f"97000{n:05d}",
        aadhaar_number=aadhaar_number,
        year=year,
        tax_amount=tax,
        amount_paid=paid,
        outstanding_amount=max(Decimal("0"), tax - paid),
    )
    session.add(registration)
    session.flush()
    return registration


def create_ledger_entry(
    session: Session,
    *,
    temple: Temple,
    type: str = "credit",
    amount: str = "100.00",
    under: Optional[str] = None,
    on: Optional[date] = None,
    name: Optional[str] = None,
) -> LedgerEntry:
    n = _next_id()
    entry = LedgerEntry(
        temple_id=temple.id,
        date=on or date(2024, 1, 15),
        name=name or f"Entry {n}",
        under=under,
        type=type,
        amount=Decimal(amount),
    )
    session.add(entry)
    session.flush()
    return entry


def create_event(
    session: Session,
    *,
    temple: Temple,
    title: Optional[str] = None,
    days_from_today: int = 1,
    time: str = "18:00",
) -> Event:
    n = _next_id()
    event = Event(
        temple_id=temple.id,
        title=title or f"Event {n}",
        date=date.today() + timedelta(days=days_from_today),
        time=time,
        location="Main hall",
    )
    session.add(event)
    session.flush()
    return event


def create_property(
    session: Session,
    *,
    temple: Temple,
    owner_name: Optional[str] = None,
    tax_amount: str = "1200.00",
    tax_status: str = "pending",
) -> Property:
    n = _next_id()
    prop = Property(
        temple_id=temple.id,
        property_no=f"P-{n}",
        survey_no=f"S-{n}",
        ward_no="4",
        street_name="Car Street",
        area="East",
        city="Madurai",
        pincode="625001",
        owner_name=owner_name or f"Owner {n}",
        owner_mobile="9876543210",
        tax_amount=Decimal(tax_amount),
        tax_year=2024,
        tax_status=tax_status,
        pending_amount=Decimal("0") if tax_status == "paid" else Decimal(tax_amount),
    )
    session.add(prop)
    session.flush()
    return prop


def create_receipt(
    session: Session,
    *,
    temple: Temple,
    type: str = "donation",
    amount: str = "250.00",
    on: Optional[date] = None,
) -> Receipt:
    n = _next_id()
    receipt = Receipt(
        temple_id=temple.id,
        register_no=f"R-{n}",
        date=on or date(2024, 3, 1),
        type=type,
        from_person=f"Donor {n}",
        amount=Decimal(amount),
    )
    session.add(receipt)
    session.flush()
    return receipt
