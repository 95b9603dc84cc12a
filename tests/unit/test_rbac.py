"""Tests for the permission catalog and the authorization decision."""

import pytest

from templeadmin.core.rbac import (
    AccessLevel,
    PermissionCatalog,
    PermissionChecker,
    PermissionDefinition,
    PermissionGrant,
    PERMISSION_CATALOG,
    Role,
    has_permission,
)
from templeadmin.core.rbac.permissions import (
    get_all_permissions,
    get_permissions_for_role,
    is_valid_permission,
    level_rank,
)

LEVELS = ["view", "edit", "full"]


class TestAccessLevel:
    """Ordering of access levels."""

    def test_levels_are_ordered(self):
        assert AccessLevel.VIEW.rank < AccessLevel.EDIT.rank < AccessLevel.FULL.rank

    @pytest.mark.parametrize("held", LEVELS)
    @pytest.mark.parametrize("required", LEVELS)
    def test_satisfies_matches_rank(self, held, required):
        expected = LEVELS.index(held) >= LEVELS.index(required)
        assert AccessLevel(held).satisfies(AccessLevel(required)) is expected

    def test_parse_is_case_insensitive(self):
        assert AccessLevel.parse(" Edit ") == AccessLevel.EDIT

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="Invalid access level"):
            AccessLevel.parse("admin")

    def test_unknown_level_ranks_zero(self):
        assert level_rank("owner") == 0
        assert level_rank(None) == 0


class TestCatalog:
    """The compiled-in permission catalog."""

    def test_ids_are_unique(self):
        ids = get_all_permissions()
        assert len(ids) == len(set(ids))

    def test_known_permissions(self):
        for permission_id in ("dashboard", "members", "tax_registrations", "ledger_management", "events"):
            assert is_valid_permission(permission_id)
        assert not is_valid_permission("launch_rockets")

    def test_order_is_stable(self):
        assert get_all_permissions()[0] == "dashboard"
        assert get_all_permissions() == [d.id for d in PERMISSION_CATALOG]

    def test_duplicate_ids_rejected(self):
        definition = PermissionDefinition("x", "X", "", "", "/x", (Role.ADMIN,))
        with pytest.raises(ValueError, match="Duplicate permission id"):
            PermissionCatalog([definition, definition])

    def test_member_role_entries(self):
        ids = [d.id for d in get_permissions_for_role(Role.MEMBER)]
        assert "dashboard" in ids
        assert "events" in ids
        assert "members" not in ids

    def test_superadmin_only_entries(self):
        admin_ids = {d.id for d in get_permissions_for_role("admin")}
        superadmin_ids = {d.id for d in get_permissions_for_role("superadmin")}
        assert "temple_settings" not in admin_ids
        assert "temple_settings" in superadmin_ids
        assert admin_ids < superadmin_ids

    @pytest.mark.parametrize("role", list(Role))
    def test_lookup_agrees_with_role_filter(self, role):
        by_lookup = {
            permission_id for permission_id in PERMISSION_CATALOG.ids()
            if PERMISSION_CATALOG.get(permission_id).allows_role(role)
        }
        assert by_lookup == {d.id for d in PERMISSION_CATALOG.for_role(role)}

    def test_lookup_unknown(self):
        assert PERMISSION_CATALOG.get("nope") is None

    def test_to_dict(self):
        data = PERMISSION_CATALOG.get("members").to_dict()
        assert data["id"] == "members"
        assert data["href"] == "/dashboard/members"
        assert data["roles"] == ["admin", "superadmin"]


class TestHasPermission:
    """The single authorization decision."""

    def test_admin_with_edit_grant_can_view_and_edit(self):
        grants = [PermissionGrant("members", "edit")]
        assert has_permission("admin", grants, "members", "view")
        assert has_permission("admin", grants, "members", "edit")

    def test_tax_registration_scenarios(self):
        assert not has_permission("member", [], "members", "view")
        assert has_permission("admin", [PermissionGrant("tax_registrations", "edit")], "tax_registrations", "view")
        assert not has_permission("admin", [PermissionGrant("tax_registrations", "view")], "tax_registrations", "full")

    def test_admin_with_view_grant_cannot_edit(self):
        grants = [PermissionGrant("members", "view")]
        assert not has_permission("admin", grants, "members", "edit")

    def test_member_with_no_grants_is_denied(self):
        assert not has_permission("member", [], "dashboard", "view")

    def test_superadmin_always_allowed(self):
        for permission_id in get_all_permissions():
            assert has_permission("superadmin", [], permission_id, "full")
        assert has_permission(Role.SUPERADMIN, None, "not_in_catalog", "full")

    def test_default_level_is_view(self):
        assert has_permission("admin", [PermissionGrant("receipts", "view")], "receipts")

    def test_none_grants_mean_no_grants(self):
        assert not has_permission("admin", None, "members")

    def test_grant_for_other_permission_does_not_count(self):
        grants = [PermissionGrant("ledger_management", "full")]
        assert not has_permission("admin", grants, "members", "view")

    def test_unknown_required_level_fails_closed(self):
        grants = [PermissionGrant("members", "full")]
        assert not has_permission("admin", grants, "members", "owner")

    def test_unknown_granted_level_never_satisfies(self):
        grants = [PermissionGrant("members", "root")]
        assert not has_permission("admin", grants, "members", "view")

    @pytest.mark.parametrize("role", ["member", "admin"])
    @pytest.mark.parametrize("held", LEVELS)
    @pytest.mark.parametrize("required", LEVELS)
    def test_grant_rank_decides(self, role, held, required):
        grants = [PermissionGrant("events", held)]
        expected = LEVELS.index(held) >= LEVELS.index(required)
        assert has_permission(role, grants, "events", required) is expected

    def test_grants_from_records(self):
        grant = PermissionGrant.from_record({"permission_id": "events", "access_level": "edit"})
        assert grant == ("events", "edit")


class TestPermissionChecker:
    """Checker wrapping one user's role and grants."""

    def test_denial_reasons(self):
        checker = PermissionChecker("admin", [PermissionGrant("members", "view")])
        assert checker.denial_reason("members", "view") is None
        assert checker.denial_reason("members", "edit") == "Insufficient permission level"
        assert checker.denial_reason("receipts") == "Permission not granted"

    def test_any_and_all(self):
        checker = PermissionChecker("admin", [PermissionGrant("members", "full")])
        assert checker.has_any_permission(["receipts", "members"])
        assert not checker.has_all_permissions(["receipts", "members"])

    def test_accessible_permissions(self):
        checker = PermissionChecker(
            "admin",
            [PermissionGrant("events", "view"), PermissionGrant("receipts", "edit")],
        )
        assert [d.id for d in checker.accessible_permissions()] == ["receipts", "events"]
        assert [d.id for d in checker.accessible_permissions(required_level="edit")] == ["receipts"]

    def test_superadmin_flag(self):
        assert PermissionChecker(Role.SUPERADMIN).is_superadmin
        assert not PermissionChecker("admin").is_superadmin
