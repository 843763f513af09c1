"""Unit tests for Identity, SessionClaims and TelegramUser.

Pure domain logic: no database, no clock.
"""

import pytest

from merchant_auth.domain.identity.entities import Identity, SessionClaims, TelegramUser
from merchant_auth.domain.identity.value_objects import Permission, Role


@pytest.fixture
def merchant_identity():
    return Identity(
        user_id="u-1",
        telegram_id="9007199254740993",
        role=Role.MERCHANT,
        security_stamp="stamp-1",
        merchant_id="m-42",
    )


class TestIdentity:
    """Tests for Identity construction and capabilities."""

    def test_permissions_follow_role(self, merchant_identity):
        """Test: permissions are taken from the capability table."""
        assert merchant_identity.permissions == Role.MERCHANT.permissions
        assert merchant_identity.can(Permission.MANAGE_STOREFRONT) is True
        assert merchant_identity.can(Permission.MANAGE_PLATFORM) is False
        assert merchant_identity.role.is_staff is True

    def test_role_string_is_normalised(self):
        identity = Identity(user_id="u-1", telegram_id="1", role="Agent", security_stamp="s")

        assert identity.role is Role.AGENT

    def test_large_telegram_id_kept_exactly(self, merchant_identity):
        """Test: ids above 2**53 survive unchanged."""
        assert merchant_identity.telegram_id == "9007199254740993"

    @pytest.mark.parametrize("telegram_id", ["", "12a", "-5", "1.0"])
    def test_non_decimal_telegram_id_fails(self, telegram_id):
        with pytest.raises(ValueError):
            Identity(user_id="u-1", telegram_id=telegram_id, role=Role.USER, security_stamp="s")

    def test_missing_stamp_fails(self):
        with pytest.raises(ValueError):
            Identity(user_id="u-1", telegram_id="1", role=Role.USER, security_stamp="")

    def test_public_dict_hides_stamp(self, merchant_identity):
        public = merchant_identity.to_public_dict()

        assert "security_stamp" not in public
        assert "stamp-1" not in public.values()
        assert public["telegram_id"] == "9007199254740993"


class TestSessionClaims:
    """Tests for claims <-> identity conversion."""

    def test_round_trip_through_claims(self, merchant_identity):
        claims = SessionClaims.from_identity(merchant_identity)

        assert claims.to_identity() == merchant_identity

    def test_same_subject_ignores_times(self, merchant_identity):
        from datetime import datetime, timezone

        claims = SessionClaims.from_identity(merchant_identity)
        issued = SessionClaims(
            user_id=claims.user_id,
            telegram_id=claims.telegram_id,
            role=claims.role,
            security_stamp=claims.security_stamp,
            merchant_id=claims.merchant_id,
            issued_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            expires_at=datetime(2025, 1, 8, tzinfo=timezone.utc),
        )

        assert claims.same_subject(issued) is True
        assert claims != issued


class TestTelegramUser:
    """Tests for TelegramUser.from_payload."""

    def test_integer_id_becomes_string(self):
        user = TelegramUser.from_payload({"id": 123456789, "first_name": "Ada"})

        assert user.telegram_id == "123456789"
        assert user.first_name == "Ada"

    def test_string_id_accepted(self):
        assert TelegramUser.from_payload({"id": "42"}).telegram_id == "42"

    @pytest.mark.parametrize("raw_id", [None, True, 1.5, "abc", [1]])
    def test_invalid_id_fails(self, raw_id):
        with pytest.raises(ValueError):
            TelegramUser.from_payload({"id": raw_id})
