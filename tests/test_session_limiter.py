"""
Tests for the session limiter and session ledger lifecycle.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.core.config import settings
from app.core.errors import SessionLimitMisconfigured
from app.core.security import decode_access_token
from app.models import UserSession
from app.models.base import utcnow
from app.repositories import SessionRepository
from app.services import session_service


def _jti(token):
    return decode_access_token(token)["jti"]


async def _session_by_jti(db, jti):
    return await db.scalar(select(UserSession).where(UserSession.jti == jti))


class TestLoginCreatesSession:
    async def test_login_inserts_live_session_for_token_jti(self, make_user, login, transaction):
        user = await make_user()
        result = await login()

        async with transaction() as db:
            row = await _session_by_jti(db, _jti(result["token"]))

        assert row is not None
        assert row.user_id == user.id
        assert row.revoked_at is None

    async def test_each_login_gets_a_distinct_jti(self, make_user, login):
        await make_user()
        first = await login()
        second = await login()
        assert _jti(first["token"]) != _jti(second["token"])


class TestEviction:
    async def test_third_login_revokes_the_first_session(self, make_user, login, transaction):
        user = await make_user()
        first = await login()
        second = await login()
        third = await login()

        async with transaction() as db:
            repo = SessionRepository(db)
            active = await repo.list_active(user.id)
            oldest = await _session_by_jti(db, _jti(first["token"]))

        assert [s.jti for s in active] == [_jti(second["token"]), _jti(third["token"])]
        assert oldest.revoked_at is not None

    async def test_never_more_than_limit_live_sessions(self, make_user, login, transaction):
        user = await make_user()
        for _ in range(settings.SESSION_LIMIT + 3):
            await login()

        async with transaction() as db:
            active = await session_service.get_active_sessions(user.id, db)
        assert len(active) == settings.SESSION_LIMIT

    async def test_created_at_ties_are_broken_by_id(self, make_user, transaction):
        user = await make_user()
        stamp = utcnow()

        async with transaction() as db:
            repo = SessionRepository(db)
            rows = [
                await repo.create(user.id, f"jti-{n}", stamp + timedelta(hours=1))
                for n in range(3)
            ]
            for row in rows:
                row.created_at = stamp
            await db.flush()

            evicted = await session_service.enforce_session_limit(user.id, db, limit=2)
            remaining = await repo.list_active(user.id)

        assert [s.jti for s in evicted] == ["jti-0", "jti-1"]
        assert [s.jti for s in remaining] == ["jti-2"]

    async def test_no_eviction_below_limit(self, make_user, login, transaction):
        user = await make_user()
        await login()

        async with transaction() as db:
            evicted = await session_service.enforce_session_limit(user.id, db)
        assert evicted == []


class TestMisconfiguredLimit:
    @pytest.mark.parametrize("limit", [0, -1])
    async def test_non_positive_limit_denies_login(self, limit, make_user, login, transaction, monkeypatch):
        user = await make_user()
        monkeypatch.setattr(settings, "SESSION_LIMIT", limit)

        with pytest.raises(SessionLimitMisconfigured):
            await login()

        async with transaction() as db:
            count = await db.scalar(
                select(func.count()).select_from(UserSession).where(UserSession.user_id == user.id)
            )
        assert count == 0


class TestRevocation:
    async def test_revoke_all_only_touches_that_user(self, make_user, login, transaction):
        alice = await make_user("alice@example.com")
        bob = await make_user("bob@example.com")
        await login("alice@example.com")
        await login("alice@example.com")
        await login("bob@example.com")

        async with transaction() as db:
            revoked = await session_service.revoke_all_user_sessions(alice.id, db)
        async with transaction() as db:
            alice_active = await session_service.get_active_sessions(alice.id, db)
            bob_active = await session_service.get_active_sessions(bob.id, db)

        assert revoked == 2
        assert alice_active == []
        assert len(bob_active) == 1

    async def test_revoke_session_reports_whether_anything_changed(self, make_user, login, transaction):
        user = await make_user()
        jti = _jti((await login())["token"])

        async with transaction() as db:
            assert await session_service.revoke_session(user.id, jti, db) is True
        async with transaction() as db:
            assert await session_service.revoke_session(user.id, jti, db) is False
