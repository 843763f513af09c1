"""Unit tests for roles and the capability table."""

import pytest

from merchant_auth.domain.identity.value_objects import ROLE_PERMISSIONS, Permission, Role


class TestRoleParsing:
    """Tests for Role.parse."""

    @pytest.mark.parametrize("raw", ["merchant", "MERCHANT", "  Merchant "])
    def test_parse_ignores_case_and_blanks(self, raw):
        """Test: role names are normalised."""
        assert Role.parse(raw) is Role.MERCHANT

    def test_parse_unknown_role_fails(self):
        """Test: a role outside the closed set is rejected."""
        with pytest.raises(ValueError):
            Role.parse("owner")

    def test_parse_passes_role_through(self):
        assert Role.parse(Role.AGENT) is Role.AGENT


class TestCapabilities:
    """Tests for the role -> permissions table."""

    def test_every_role_has_an_entry(self):
        assert set(ROLE_PERMISSIONS) == set(Role)

    def test_every_role_can_use_mini_app(self):
        for role in Role:
            assert Permission.USE_MINI_APP in role.permissions

    def test_plain_user_has_no_dashboard(self):
        """Test: app users are not staff."""
        assert Role.USER.permissions == frozenset({Permission.USE_MINI_APP})
        assert Role.USER.is_staff is False

    @pytest.mark.parametrize(
        "role",
        [Role.MERCHANT, Role.AGENT, Role.PLATFORM_SUPPORT, Role.PLATFORM_MANAGER, Role.SUPER_ADMIN],
    )
    def test_staff_roles_reach_dashboard(self, role):
        assert Permission.ACCESS_DASHBOARD in role.permissions
        assert role.is_staff is True

    def test_agent_cannot_handle_support(self):
        assert Permission.HANDLE_SUPPORT not in Role.AGENT.permissions
        assert Permission.HANDLE_SUPPORT in Role.MERCHANT.permissions

    def test_only_super_admin_manages_staff(self):
        holders = [role for role in Role if Permission.MANAGE_STAFF in role.permissions]
        assert holders == [Role.SUPER_ADMIN]
