"""Unit tests for SessionResolver and the auth command handlers.

The user store is an in-memory stub, so failures and timeouts can be
injected without a database.
"""

import asyncio
from datetime import timedelta

import pytest

from merchant_auth.application.auth import (
    AuthenticateTelegramCommand,
    AuthenticateTelegramHandler,
    IssueMagicLinkCommand,
    IssueMagicLinkHandler,
    RedeemMagicLinkCommand,
    RedeemMagicLinkHandler,
    RenewSessionCommand,
    RenewSessionHandler,
    RevokeSessionsCommand,
    RevokeSessionsHandler,
    SessionResolver,
)
from merchant_auth.domain.identity.entities import Identity
from merchant_auth.domain.identity.exceptions import (
    Expired,
    InvalidSignature,
    MalformedInput,
    MissingCredential,
    Revoked,
    StoreUnavailable,
    UserNotFound,
)
from merchant_auth.domain.identity.repositories import UserStore
from merchant_auth.domain.identity.value_objects import Role
from merchant_auth.infrastructure.auth import JWTManager, TelegramInitDataVerifier

SECRET = "unit-test-secret-key-0123456789abcdef"
BOT_TOKEN = "123456:TEST-bot-token"


class StubUserStore(UserStore):
    """Dict-backed store with switchable failures."""

    def __init__(self):
        self.users: dict[str, Identity] = {}
        self.stamp_calls = 0
        self.fail_times = 0
        self.delay = 0.0
        self.used_magic_tokens: set[str] = set()

    async def find_by_telegram_id(self, telegram_id):
        return next((u for u in self.users.values() if u.telegram_id == telegram_id), None)

    async def get_by_id(self, user_id):
        return self.users.get(user_id)

    async def create(self, telegram_user, role=Role.USER, merchant_id=None):
        identity = Identity(
            user_id=f"u-{len(self.users) + 1}",
            telegram_id=telegram_user.telegram_id,
            role=role,
            security_stamp="stamp-0",
            merchant_id=merchant_id,
        )
        self.users[identity.user_id] = identity
        return identity

    async def touch_login(self, user_id, telegram_user):
        pass

    async def get_security_stamp(self, user_id):
        self.stamp_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_times:
            self.fail_times -= 1
            raise StoreUnavailable("database down")
        user = self.users.get(user_id)
        return user.security_stamp if user else None

    async def rotate_security_stamp(self, user_id):
        user = self.users.get(user_id)
        if user is None:
            raise UserNotFound("User not found", user_id=user_id)
        stamp = f"stamp-{self.stamp_calls + 1}-{user.security_stamp}"
        self.users[user_id] = Identity(
            user_id=user.user_id,
            telegram_id=user.telegram_id,
            role=user.role,
            security_stamp=stamp,
            merchant_id=user.merchant_id,
        )
        return stamp

    async def change_role(self, user_id, role):
        raise NotImplementedError

    async def consume_magic_token(self, token_id, user_id, expires_at):
        if token_id in self.used_magic_tokens:
            return False
        self.used_magic_tokens.add(token_id)
        return True

    async def ping(self):
        pass


@pytest.fixture
def store():
    store = StubUserStore()
    store.users["u-1"] = Identity(
        user_id="u-1", telegram_id="111", role=Role.MERCHANT, security_stamp="stamp-0"
    )
    return store


@pytest.fixture
def jwt_manager(clock):
    return JWTManager(secret_key=SECRET, clock=clock)


@pytest.fixture
def resolver(jwt_manager, store):
    return SessionResolver(jwt_manager, store, store_timeout=0.05, store_retries=2, retry_base_delay=0)


class TestResolve:
    """Tests for SessionResolver.resolve / authenticate."""

    @pytest.mark.asyncio
    async def test_valid_token_resolves(self, resolver, jwt_manager, store):
        token = jwt_manager.issue(store.users["u-1"])

        identity = await resolver.resolve(token)

        assert identity == store.users["u-1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, ""])
    async def test_missing_token_is_none(self, resolver, token):
        assert await resolver.resolve(token) is None

    @pytest.mark.asyncio
    async def test_missing_token_raises_in_authenticate(self, resolver):
        with pytest.raises(MissingCredential):
            await resolver.authenticate(None)

    @pytest.mark.asyncio
    async def test_garbled_token_is_none(self, resolver):
        assert await resolver.resolve("garbage") is None
        with pytest.raises(InvalidSignature):
            await resolver.authenticate("garbage")

    @pytest.mark.asyncio
    async def test_expired_token_is_none(self, resolver, jwt_manager, store, clock):
        token = jwt_manager.issue(store.users["u-1"])
        clock.advance(days=8)

        assert await resolver.resolve(token) is None
        with pytest.raises(Expired):
            await resolver.authenticate(token)

    @pytest.mark.asyncio
    async def test_rotated_stamp_revokes(self, resolver, jwt_manager, store):
        """Test: the gate-valid token fails once the stamp is rotated."""
        # Arrange
        token = jwt_manager.issue(store.users["u-1"])
        await store.rotate_security_stamp("u-1")

        # Act & Assert
        jwt_manager.verify(token)  # still signed and unexpired
        assert await resolver.resolve(token) is None
        with pytest.raises(Revoked):
            await resolver.authenticate(token)

    @pytest.mark.asyncio
    async def test_deleted_user_revokes(self, resolver, jwt_manager, store):
        token = jwt_manager.issue(store.users.pop("u-1"))

        with pytest.raises(Revoked):
            await resolver.authenticate(token)


class TestStoreFailures:
    """Store failures never grant access."""

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, resolver, jwt_manager, store):
        token = jwt_manager.issue(store.users["u-1"])
        store.fail_times = 2

        identity = await resolver.resolve(token)

        assert identity is not None
        assert store.stamp_calls == 3

    @pytest.mark.asyncio
    async def test_persistent_failure_raises(self, resolver, jwt_manager, store):
        token = jwt_manager.issue(store.users["u-1"])
        store.fail_times = 10

        with pytest.raises(StoreUnavailable):
            await resolver.resolve(token)
        assert store.stamp_calls == 3

    @pytest.mark.asyncio
    async def test_timeout_becomes_store_unavailable(self, resolver, jwt_manager, store):
        token = jwt_manager.issue(store.users["u-1"])
        store.delay = 1.0

        with pytest.raises(StoreUnavailable):
            await resolver.resolve(token)

    @pytest.mark.asyncio
    async def test_bad_token_never_touches_store(self, resolver, store):
        await resolver.resolve("garbage")

        assert store.stamp_calls == 0


class TestHandlers:
    """Tests for the login, heartbeat and revoke handlers."""

    @pytest.mark.asyncio
    async def test_login_creates_user(self, jwt_manager, store, clock, make_init_data):
        handler = AuthenticateTelegramHandler(
            TelegramInitDataVerifier(BOT_TOKEN, clock=clock), jwt_manager, store
        )

        session = await handler.handle(
            AuthenticateTelegramCommand(init_data=make_init_data(telegram_id=222))
        )

        assert session.created is True
        assert session.identity.telegram_id == "222"
        assert session.identity.role is Role.USER
        assert jwt_manager.verify(session.token).user_id == session.identity.user_id

    @pytest.mark.asyncio
    async def test_login_finds_existing_user(self, jwt_manager, store, clock, make_init_data):
        handler = AuthenticateTelegramHandler(
            TelegramInitDataVerifier(BOT_TOKEN, clock=clock), jwt_manager, store
        )

        session = await handler.handle(
            AuthenticateTelegramCommand(init_data=make_init_data(telegram_id=111), merchant_id="m-9")
        )

        assert session.created is False
        assert session.identity.user_id == "u-1"
        assert session.identity.merchant_id is None

    @pytest.mark.asyncio
    async def test_login_rejects_bad_signature(self, jwt_manager, store, clock, make_init_data):
        handler = AuthenticateTelegramHandler(
            TelegramInitDataVerifier("999:wrong", clock=clock), jwt_manager, store
        )

        with pytest.raises(InvalidSignature):
            await handler.handle(AuthenticateTelegramCommand(init_data=make_init_data()))
        assert len(store.users) == 1

    @pytest.mark.asyncio
    async def test_login_rejects_malformed_input(self, jwt_manager, store, clock):
        handler = AuthenticateTelegramHandler(
            TelegramInitDataVerifier(BOT_TOKEN, clock=clock), jwt_manager, store
        )

        with pytest.raises(MalformedInput):
            await handler.handle(AuthenticateTelegramCommand(init_data=""))

    @pytest.mark.asyncio
    async def test_renew_moves_expiry_forward(self, resolver, jwt_manager, store, clock):
        # Arrange
        token = jwt_manager.issue(store.users["u-1"])
        clock.advance(hours=3)

        # Act
        session = await RenewSessionHandler(resolver, jwt_manager).handle(
            RenewSessionCommand(session_token=token)
        )

        # Assert
        assert session.expires_at == clock.now + timedelta(days=7)
        assert session.expires_at > jwt_manager.verify(token).expires_at
        assert jwt_manager.verify(session.token).security_stamp == "stamp-0"

    @pytest.mark.asyncio
    async def test_renew_refuses_revoked_session(self, resolver, jwt_manager, store):
        token = jwt_manager.issue(store.users["u-1"])
        await store.rotate_security_stamp("u-1")

        with pytest.raises(Revoked):
            await RenewSessionHandler(resolver, jwt_manager).handle(
                RenewSessionCommand(session_token=token)
            )

    @pytest.mark.asyncio
    async def test_revoke_rotates_stamp(self, resolver, jwt_manager, store, clock):
        token = jwt_manager.issue(store.users["u-1"])

        revocation = await RevokeSessionsHandler(resolver, store, clock=clock).handle(
            RevokeSessionsCommand(session_token=token)
        )

        assert revocation.identity.user_id == "u-1"
        assert revocation.revoked_at == clock.now
        assert store.users["u-1"].security_stamp != "stamp-0"
        assert await resolver.resolve(token) is None

    @pytest.mark.asyncio
    async def test_revoke_requires_session(self, resolver, store):
        with pytest.raises(MissingCredential):
            await RevokeSessionsHandler(resolver, store).handle(
                RevokeSessionsCommand(session_token=None)
            )

    @pytest.mark.asyncio
    async def test_revoke_for_deleted_user_is_revoked(self, resolver, jwt_manager, store, monkeypatch):
        """Test: a user removed after the session check gets Revoked, not UserNotFound."""
        token = jwt_manager.issue(store.users["u-1"])
        rotate = store.rotate_security_stamp

        async def delete_then_rotate(user_id):
            store.users.pop(user_id)
            return await rotate(user_id)

        monkeypatch.setattr(store, "rotate_security_stamp", delete_then_rotate)

        with pytest.raises(Revoked):
            await RevokeSessionsHandler(resolver, store).handle(
                RevokeSessionsCommand(session_token=token)
            )


class TestMagicLinkHandlers:
    """Issue and redeem one-time login links."""

    @pytest.fixture
    def redeem(self, jwt_manager, resolver, store):
        return RedeemMagicLinkHandler(jwt_manager, resolver, store)

    @pytest.mark.asyncio
    async def test_issue_for_known_user(self, jwt_manager, store, clock):
        link = await IssueMagicLinkHandler(jwt_manager, store).handle(
            IssueMagicLinkCommand(user_id="u-1")
        )

        assert link.identity.user_id == "u-1"
        assert link.expires_at == clock.now + timedelta(minutes=5)
        assert jwt_manager.verify_magic(link.token).claims.security_stamp == "stamp-0"

    @pytest.mark.asyncio
    async def test_issue_for_unknown_user_fails(self, jwt_manager, store):
        with pytest.raises(UserNotFound):
            await IssueMagicLinkHandler(jwt_manager, store).handle(
                IssueMagicLinkCommand(user_id="missing")
            )

    @pytest.mark.asyncio
    async def test_link_url(self, jwt_manager, store):
        link = await IssueMagicLinkHandler(jwt_manager, store).handle(
            IssueMagicLinkCommand(user_id="u-1")
        )

        url = link.url("https://app.example/", redirect="/dashboard")

        assert url == f"https://app.example/api/auth/magic?token={link.token}&redirect=%2Fdashboard"

    @pytest.mark.asyncio
    async def test_redeem_issues_session(self, redeem, jwt_manager, store, resolver):
        token, _ = jwt_manager.issue_magic(store.users["u-1"])

        session = await redeem.handle(RedeemMagicLinkCommand(token=token))

        assert session.identity.user_id == "u-1"
        assert (await resolver.resolve(session.token)).user_id == "u-1"

    @pytest.mark.asyncio
    async def test_second_redemption_refused(self, redeem, jwt_manager, store):
        token, _ = jwt_manager.issue_magic(store.users["u-1"])
        await redeem.handle(RedeemMagicLinkCommand(token=token))

        with pytest.raises(Revoked):
            await redeem.handle(RedeemMagicLinkCommand(token=token))

    @pytest.mark.asyncio
    async def test_rotated_stamp_kills_unused_link(self, redeem, jwt_manager, store):
        token, link = jwt_manager.issue_magic(store.users["u-1"])
        await store.rotate_security_stamp("u-1")

        with pytest.raises(Revoked):
            await redeem.handle(RedeemMagicLinkCommand(token=token))
        assert link.token_id not in store.used_magic_tokens

    @pytest.mark.asyncio
    async def test_expired_link_refused(self, redeem, jwt_manager, store, clock):
        token, _ = jwt_manager.issue_magic(store.users["u-1"])
        clock.advance(minutes=5)

        with pytest.raises(Expired):
            await redeem.handle(RedeemMagicLinkCommand(token=token))

    @pytest.mark.asyncio
    async def test_session_token_is_not_a_link(self, redeem, jwt_manager, store):
        with pytest.raises(InvalidSignature):
            await redeem.handle(RedeemMagicLinkCommand(token=jwt_manager.issue(store.users["u-1"])))

    @pytest.mark.asyncio
    async def test_missing_token(self, redeem):
        with pytest.raises(MissingCredential):
            await redeem.handle(RedeemMagicLinkCommand(token=""))
