"""Role definitions for the temple administration API.

Three fixed roles:
1. Member - Basic dashboard access, everything else through explicit grants
2. Admin - Staff access, still bound by per-feature grants
3. Superadmin - Satisfies every permission check regardless of grants
"""

from typing import Dict, Union

from .permissions import Role


DEFAULT_ROLES: Dict[str, dict] = {
    Role.MEMBER.value: {
        "name": "Member",
        "description": "Temple member with dashboard access",
    },
    Role.ADMIN.value: {
        "name": "Admin",
        "description": "Temple staff; feature access follows granted permissions",
    },
    Role.SUPERADMIN.value: {
        "name": "Superadmin",
        "description": "Full system access with all permissions",
    },
}


def parse_role(value: Union[str, Role, None], default: Role = Role.MEMBER) -> Role:
    """Parse a role string; empty values fall back to ``default``."""
    if value is None or value == "":
        return default
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown role: {value}") from None


def can_assign_role(actor_role: Union[str, Role], target_role: Union[str, Role]) -> bool:
    """Whether ``actor_role`` may create a user with, or promote a user to, ``target_role``.

    Admins cannot hand out the superadmin role.
    """
    actor = parse_role(actor_role)
    target = parse_role(target_role)
    if actor == Role.SUPERADMIN:
        return True
    if actor == Role.ADMIN:
        return target != Role.SUPERADMIN
    return False


def can_modify_user(actor_role: Union[str, Role], subject_role: Union[str, Role]) -> bool:
    """Whether ``actor_role`` may edit an existing user holding ``subject_role``."""
    actor = parse_role(actor_role)
    subject = parse_role(subject_role)
    if actor == Role.SUPERADMIN:
        return True
    if actor == Role.ADMIN:
        return subject != Role.SUPERADMIN
    return False


def can_delete_user(actor_role: Union[str, Role], subject_role: Union[str, Role]) -> bool:
    """Only superadmins delete users, and superadmins are never deleted."""
    return (
        parse_role(actor_role) == Role.SUPERADMIN
        and parse_role(subject_role) != Role.SUPERADMIN
    )
