"""Permission model for the temple administration API.

A user carries a role (member, admin, superadmin) and optionally a list of
per-feature grants. Each grant names a permission from the catalog and an
access level:

  view < edit < full

A grant at a higher level satisfies every lower level. The catalog itself
is compiled in and never changes at runtime.
"""

from enum import Enum
from typing import Iterator, NamedTuple, Optional, Sequence, Tuple, Union


class Role(str, Enum):
    """Coarse-grained identity classes."""

    MEMBER = "member"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class AccessLevel(str, Enum):
    """Ordered capability tiers for a single permission."""

    VIEW = "view"
    EDIT = "edit"
    FULL = "full"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]

    def satisfies(self, required: "AccessLevel") -> bool:
        """True if this level is at least ``required``."""
        return self.rank >= required.rank

    @classmethod
    def parse(cls, value: Union[str, "AccessLevel"]) -> "AccessLevel":
        """Parse an access level string like 'edit'."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid access level: {value}") from None


_LEVEL_RANKS = {
    AccessLevel.VIEW: 1,
    AccessLevel.EDIT: 2,
    AccessLevel.FULL: 3,
}


def level_rank(value: Union[str, AccessLevel, None]) -> int:
    """Rank of an access level; unknown or missing levels rank 0."""
    if value is None:
        return 0
    try:
        return AccessLevel.parse(value).rank
    except ValueError:
        return 0


class PermissionGrant(NamedTuple):
    """A (permission id, access level) pair granted to a user."""
    permission_id: str
    access_level: str

    @classmethod
    def from_record(cls, record) -> "PermissionGrant":
        """Build a grant from a mapping or an object with the same attributes."""
        if isinstance(record, dict):
            return cls(record["permission_id"], record["access_level"])
        return cls(record.permission_id, record.access_level)


class PermissionDefinition(NamedTuple):
    """Static description of one permission, as rendered in navigation."""
    id: str
    name: str
    description: str
    icon: str
    href: str
    roles: Tuple[Role, ...]

    def allows_role(self, role: Union[str, Role, None]) -> bool:
        if role is None:
            return False
        return str(getattr(role, "value", role)) in {r.value for r in self.roles}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "href": self.href,
            "roles": [r.value for r in self.roles],
        }


class PermissionCatalog:
    """Fixed, ordered collection of permission definitions keyed by id."""

    def __init__(self, definitions: Sequence[PermissionDefinition]):
        by_id = {}
        for definition in definitions:
            if definition.id in by_id:
                raise ValueError(f"Duplicate permission id: {definition.id}")
            by_id[definition.id] = definition
        self._definitions = tuple(definitions)
        self._by_id = by_id

    def get(self, permission_id: str) -> Optional[PermissionDefinition]:
        return self._by_id.get(permission_id)

    def for_role(self, role: Union[str, Role]) -> list[PermissionDefinition]:
        """All definitions whose allowed roles include ``role``, in catalog order."""
        return [d for d in self._definitions if d.allows_role(role)]

    def ids(self) -> list[str]:
        return [d.id for d in self._definitions]

    def __iter__(self) -> Iterator[PermissionDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, permission_id: object) -> bool:
        return permission_id in self._by_id


_ALL_ROLES = (Role.MEMBER, Role.ADMIN, Role.SUPERADMIN)
_STAFF_ROLES = (Role.ADMIN, Role.SUPERADMIN)
_SUPERADMIN_ONLY = (Role.SUPERADMIN,)


PERMISSION_CATALOG = PermissionCatalog([
    PermissionDefinition(
        "dashboard", "Dashboard", "View temple dashboard",
        "📊", "/dashboard", _ALL_ROLES,
    ),
    PermissionDefinition(
        "members", "Members", "Manage temple members",
        "👥", "/dashboard/members", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "member_entry", "Member Entry", "Add, edit, and manage member registrations",
        "📝", "/dashboard/members/new", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "member_view", "Member View", "View member list and details",
        "👁️", "/dashboard/members", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "member_management", "Member Management", "Block, unblock and update member accounts",
        "🛡️", "/dashboard/members", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "master_data", "Master Data", "Manage groups, clans, occupations, villages, educations",
        "🗃️", "/dashboard/master-data", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "tax_registrations", "Tax Registrations", "Manage temple tax registrations",
        "🧾", "/dashboard/tax", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "receipts", "Receipts", "Record and list receipts",
        "🧾", "/dashboard/receipts", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "ledger_management", "Ledger Management", "Manage financial records and transactions",
        "📒", "/dashboard/ledger", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "balance_sheet", "Balance Sheet", "View balance sheet and profit and loss",
        "⚖️", "/dashboard/account/balance-sheet", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "property_registrations", "Property Registrations", "Register and manage temple properties",
        "🏠", "/dashboard/property", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "events", "Events", "Publish and manage temple events",
        "📅", "/dashboard/events", _ALL_ROLES,
    ),
    PermissionDefinition(
        "user_management", "User Management", "Create and manage user accounts",
        "🔑", "/dashboard/users", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "session_logs", "Session Logs", "View user login/logout activities",
        "🕒", "/dashboard/session-logs", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "activity_logs", "Activity Logs", "View system activity and audit logs",
        "📜", "/dashboard/activity-logs", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "reports", "Reports", "Generate and view system reports",
        "📈", "/dashboard/reports", _STAFF_ROLES,
    ),
    PermissionDefinition(
        "temple_settings", "Temple Settings", "Manage temple configuration and settings",
        "⚙️", "/dashboard/settings", _SUPERADMIN_ONLY,
    ),
    PermissionDefinition(
        "backup_restore", "Backup & Restore", "Database backup and restore operations",
        "💾", "/dashboard/backup", _SUPERADMIN_ONLY,
    ),
])


def is_valid_permission(permission_id: str) -> bool:
    """Check if a permission id exists in the catalog."""
    return permission_id in PERMISSION_CATALOG


def get_permissions_for_role(role: Union[str, Role]) -> list[PermissionDefinition]:
    """Navigation entries a role is allowed by default."""
    return PERMISSION_CATALOG.for_role(role)


def get_all_permissions() -> list[str]:
    """Get all valid permission ids."""
    return PERMISSION_CATALOG.ids()
