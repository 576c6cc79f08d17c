"""
Tests for the authenticator, the session gate and the role gates.
"""

from datetime import timedelta

import pytest
from jose import jwt
from sqlalchemy import select

from app.core.config import settings
from app.core.errors import (
    AccountNotActive,
    EmailTaken,
    Forbidden,
    InvalidCredentials,
    InvalidToken,
    MalformedToken,
    MissingToken,
    SessionRevoked,
    ValidationError,
    WeakPassword,
)
from app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    resolve_principal,
    verify_password,
)
from app.models import AuditLogEntry, User, UserRole, UserSession, UserStatus
from app.rbac.dependencies import require_admin, require_driver, require_role, require_sponsor
from app.repositories import UserRepository
from app.services import auth_service, user_service

from conftest import DEFAULT_PASSWORD


class TestPasswordHashing:
    def test_round_trip(self):
        digest = hash_password("s3cret-pass")
        assert digest != "s3cret-pass"
        assert verify_password("s3cret-pass", digest)
        assert not verify_password("wrong-pass", digest)

    def test_malformed_digest_is_a_mismatch(self):
        assert verify_password("anything", "not-a-bcrypt-digest") is False


class TestRegister:
    async def test_email_is_normalized(self, make_user):
        user = await make_user("  Mixed.Case@Example.COM ")
        assert user.email == "mixed.case@example.com"
        assert user.status == UserStatus.ACTIVE
        assert user.role == UserRole.DRIVER

    async def test_duplicate_email_is_rejected(self, make_user):
        await make_user("dup@example.com")
        with pytest.raises(EmailTaken):
            await make_user("DUP@example.com")

    async def test_missing_fields(self, transaction):
        with pytest.raises(ValidationError):
            async with transaction() as db:
                await auth_service.register_user("", "pw", db)

    async def test_concurrent_duplicate_is_a_conflict(self, make_user, transaction, monkeypatch):
        await make_user("race@example.com")

        # Both requests passed the pre-check; the unique index decides.
        async def _never_taken(self, email, *, exclude_user_id=None):
            return False

        monkeypatch.setattr(UserRepository, "email_taken", _never_taken)
        with pytest.raises(EmailTaken):
            async with transaction() as db:
                await auth_service.register_user("race@example.com", DEFAULT_PASSWORD, db)

        async with transaction() as db:
            rows = (await db.execute(select(User).where(User.email == "race@example.com"))).scalars().all()
        assert len(rows) == 1

    async def test_multibyte_password_is_measured_in_bytes(self, make_user, login):
        # 30 characters, 60 bytes: fits bcrypt.
        await make_user(password="é" * 30)
        assert (await login(password="é" * 30))["token"]

        # 40 characters, 80 bytes: refused before hashing.
        with pytest.raises(WeakPassword) as exc:
            await make_user("long@example.com", password="é" * 40)
        assert exc.value.status_code == 400


class TestLogin:
    async def test_success_returns_token_and_public_user(self, make_user, login):
        user = await make_user(role=UserRole.SPONSOR)
        result = await login()

        assert result["user"] == {"id": str(user.id), "email": user.email, "role": "SPONSOR"}
        payload = decode_access_token(result["token"])
        assert payload["id"] == str(user.id)
        assert payload["role"] == "SPONSOR"
        assert payload["jti"]
        assert "exp" in payload
        assert "password_hash" not in result["user"]

    async def test_unknown_email_and_wrong_password_fail_identically(self, make_user, login):
        await make_user()

        with pytest.raises(InvalidCredentials) as unknown:
            await login("nobody@example.com", DEFAULT_PASSWORD)
        with pytest.raises(InvalidCredentials) as wrong:
            await login("driver@example.com", "not-the-password")

        assert unknown.value.message == wrong.value.message
        assert unknown.value.error_code == wrong.value.error_code
        assert unknown.value.status_code == wrong.value.status_code == 401

    async def test_failed_login_opens_no_session(self, make_user, login, transaction):
        await make_user()
        with pytest.raises(InvalidCredentials):
            await login("driver@example.com", "nope-nope")

        async with transaction() as db:
            rows = (await db.execute(select(UserSession))).scalars().all()
        assert rows == []

    async def test_disabled_account_is_refused_with_status(self, make_user, login, transaction, as_principal):
        admin = await make_user("admin@example.com", role=UserRole.ADMIN)
        user = await make_user()
        async with transaction() as db:
            await user_service.disable_user(as_principal(admin), user.id, db)

        with pytest.raises(AccountNotActive) as exc:
            await login()
        assert exc.value.status_code == 403
        assert exc.value.message == "Account is DISABLED"

    async def test_status_is_not_revealed_without_the_password(self, make_user, login, transaction, as_principal):
        admin = await make_user("admin@example.com", role=UserRole.ADMIN)
        user = await make_user()
        async with transaction() as db:
            await user_service.disable_user(as_principal(admin), user.id, db)

        with pytest.raises(InvalidCredentials):
            await login("driver@example.com", "wrong-password")


class TestLogout:
    async def test_logout_revokes_only_that_session(self, make_user, login, transaction):
        await make_user()
        first = await login()
        second = await login()

        async with transaction() as db:
            await auth_service.logout(first["token"], db)

        async with transaction() as db:
            with pytest.raises(SessionRevoked):
                await resolve_principal(first["token"], db)
            principal = await resolve_principal(second["token"], db)
        assert principal.session_id == decode_access_token(second["token"])["jti"]

    async def test_logout_is_idempotent(self, make_user, login, transaction):
        await make_user()
        token = (await login())["token"]

        async with transaction() as db:
            assert await auth_service.logout(token, db) is True
        async with transaction() as db:
            assert await auth_service.logout(token, db) is False

    async def test_logout_rejects_bad_tokens(self, transaction):
        async with transaction() as db:
            with pytest.raises(MissingToken):
                await auth_service.logout(None, db)
            with pytest.raises(InvalidToken):
                await auth_service.logout("garbage", db)


class TestSessionGate:
    async def test_valid_token_yields_principal(self, make_user, login, transaction):
        user = await make_user(role=UserRole.SPONSOR)
        token = (await login())["token"]

        async with transaction() as db:
            principal = await resolve_principal(token, db)
        assert principal.id == user.id
        assert principal.role == UserRole.SPONSOR
        assert principal.sponsor_id is None

    async def test_missing_token(self, transaction):
        async with transaction() as db:
            with pytest.raises(MissingToken):
                await resolve_principal(None, db)

    async def test_bad_signature(self, make_user, transaction):
        user = await make_user()
        forged = jwt.encode(
            {"id": str(user.id), "role": "ADMIN", "jti": "x"},
            "some-other-secret",
            algorithm=settings.JWT_ALGORITHM,
        )
        async with transaction() as db:
            with pytest.raises(InvalidToken):
                await resolve_principal(forged, db)

    async def test_expired_token(self, make_user, transaction):
        user = await make_user()
        token = create_access_token(
            {"id": str(user.id), "role": "DRIVER", "jti": "abc"},
            expires_delta=timedelta(seconds=-5),
        )
        async with transaction() as db:
            with pytest.raises(InvalidToken):
                await resolve_principal(token, db)

    async def test_token_without_jti_is_malformed(self, make_user, transaction):
        user = await make_user()
        token = create_access_token({"id": str(user.id), "role": "DRIVER"})
        async with transaction() as db:
            with pytest.raises(MalformedToken):
                await resolve_principal(token, db)

    async def test_evicted_session_is_rejected(self, make_user, login, transaction):
        await make_user()
        first = (await login())["token"]
        await login()
        await login()

        async with transaction() as db:
            with pytest.raises(SessionRevoked):
                await resolve_principal(first, db)


class TestRoleGate:
    async def test_mismatched_role_is_forbidden(self, make_user, as_principal):
        driver = await make_user()
        with pytest.raises(Forbidden) as exc:
            await require_admin(principal=as_principal(driver))
        assert exc.value.message == "Insufficient permissions"

    async def test_allowed_role_passes_through(self, make_user, as_principal):
        sponsor = await make_user("sponsor@example.com", role=UserRole.SPONSOR)
        gate = require_role(UserRole.SPONSOR, UserRole.ADMIN)
        principal = as_principal(sponsor)
        assert await gate(principal=principal) is principal

    async def test_driver_and_sponsor_gates(self, make_user, as_principal):
        driver = as_principal(await make_user())
        sponsor = as_principal(await make_user("sponsor@example.com", role=UserRole.SPONSOR))

        assert await require_driver(principal=driver) is driver
        assert await require_sponsor(principal=sponsor) is sponsor
        with pytest.raises(Forbidden):
            await require_sponsor(principal=driver)
        with pytest.raises(Forbidden):
            await require_driver(principal=sponsor)


class TestCheckCredentials:
    async def test_reports_validity_and_audits(self, make_user, transaction, as_principal):
        admin = await make_user("admin@example.com", role=UserRole.ADMIN)
        await make_user()

        async with transaction() as db:
            good = await auth_service.check_credentials(
                as_principal(admin), "driver@example.com", DEFAULT_PASSWORD, db,
            )
            bad = await auth_service.check_credentials(
                as_principal(admin), "driver@example.com", "wrong-password", db,
            )
        async with transaction() as db:
            entries = (
                await db.execute(select(AuditLogEntry).order_by(AuditLogEntry.id))
            ).scalars().all()
            sessions = (await db.execute(select(UserSession))).scalars().all()

        assert (good, bad) == (True, False)
        assert [e.category for e in entries] == ["ADMIN_TEST_LOGIN", "ADMIN_TEST_LOGIN"]
        assert [e.success for e in entries] == [True, False]
        assert all(DEFAULT_PASSWORD not in e.details for e in entries)
        assert sessions == []

    async def test_non_admin_is_forbidden(self, make_user, transaction, as_principal):
        driver = await make_user()
        async with transaction() as db:
            with pytest.raises(Forbidden):
                await auth_service.check_credentials(
                    as_principal(driver), "driver@example.com", DEFAULT_PASSWORD, db,
                )


class TestForgotUsername:
    async def test_same_answer_for_known_and_unknown(self, make_user, transaction):
        await make_user(username="roadrunner")
        async with transaction() as db:
            known = await auth_service.forgot_username("driver@example.com", db)
            unknown = await auth_service.forgot_username("ghost@example.com", db)
        assert known == unknown == auth_service.FORGOT_USERNAME_MESSAGE

    async def test_production_mails_the_username(self, make_user, transaction, monkeypatch):
        from app.services import email_service

        sent = []

        async def fake_send(to_email, username):
            sent.append((to_email, username))

        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        monkeypatch.setattr(email_service, "send_username_reminder", fake_send)
        await make_user(username="roadrunner")

        async with transaction() as db:
            await auth_service.forgot_username("driver@example.com", db)
            await auth_service.forgot_username("ghost@example.com", db)

        assert sent == [("driver@example.com", "roadrunner")]
