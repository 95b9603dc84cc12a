"""Database seeding for the temple administration API.

Creates a default temple and its superadmin account.
"""

from typing import Optional

from sqlalchemy.orm import Session

from templeadmin.core.rbac.permissions import AccessLevel, Role, get_all_permissions
from templeadmin.core.security import get_password_hash
from templeadmin.db.models import Temple, User, UserPermission


def seed_temple(
    db: Session,
    name: str,
    *,
    address: str = "",
    city: Optional[str] = None,
) -> Temple:
    """
    Create a temple, or return the existing one with the same name.

    Args:
        db: Database session
        name: Temple name
        address: Street address
        city: City

    Returns:
        The temple
    """
    existing = db.query(Temple).filter(Temple.name == name).first()
    if existing:
        return existing

    temple = Temple(name=name, address=address, city=city)
    db.add(temple)
    db.flush()
    return temple


def seed_superadmin(
    db: Session,
    temple: Temple,
    *,
    mobile: str,
    username: str,
    password: str,
) -> User:
    """Create the superadmin user, or return the existing one for ``mobile``."""
    existing = db.query(User).filter(User.mobile == mobile).first()
    if existing:
        return existing

    user = User(
        mobile=mobile,
        username=username,
        password_hash=get_password_hash(password),
        full_name=username,
        temple_id=temple.id,
        role=Role.SUPERADMIN.value,
        status="active",
    )
    db.add(user)
    db.flush()
    return user


def grant_all_permissions(
    db: Session,
    user: User,
    access_level: AccessLevel = AccessLevel.FULL,
) -> int:
    """
    Upsert a grant at ``access_level`` for every catalog permission.

    Returns:
        Number of permissions granted
    """
    existing = {
        p.permission_id: p
        for p in db.query(UserPermission).filter(UserPermission.user_id == user.id).all()
    }
    permission_ids = get_all_permissions()
    for permission_id in permission_ids:
        grant = existing.get(permission_id)
        if grant is None:
            db.add(UserPermission(
                user_id=user.id,
                permission_id=permission_id,
                access_level=access_level.value,
            ))
        else:
            grant.access_level = access_level.value
    db.flush()
    return len(permission_ids)


# CLI script for seeding
if __name__ == "__main__":
    import secrets
    import sys

    from templeadmin.core.config import get_settings
    from templeadmin.db.session import SessionLocal, init_db

    settings = get_settings()
    init_db()

    db = SessionLocal()
    try:
        temple = seed_temple(db, settings.seed_temple_name)
        print(f"Temple: {temple.name} (ID: {temple.id})")

        password = settings.seed_superadmin_password or secrets.token_urlsafe(12)
        user = seed_superadmin(
            db,
            temple,
            mobile=settings.seed_superadmin_mobile,
            username=settings.seed_superadmin_username,
            password=password,
        )
        count = grant_all_permissions(db, user)
        print(f"Superadmin: {user.username} (mobile {user.mobile}), {count} permissions granted")
        if not settings.seed_superadmin_password:
            print(f"Generated password: {password}")

        db.commit()
        print("\nSeeding complete!")

    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()
