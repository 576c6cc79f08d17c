import asyncio
import inspect
import os
from contextlib import asynccontextmanager

# Settings are read at import time, so configure them before importing the app.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import bcrypt  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app.core.database import get_db  # noqa: E402
from app.core.security import Principal  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Base, UserRole  # noqa: E402
from app.services import auth_service  # noqa: E402

DEFAULT_PASSWORD = "correct-horse-1"

_real_gensalt = bcrypt.gensalt


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Cheapest bcrypt cost factor so hashing does not dominate the suite."""
    monkeypatch.setattr(bcrypt, "gensalt", lambda rounds=12, prefix=b"2b": _real_gensalt(4, prefix))


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "auth.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return path


@pytest.fixture
def session_factory(db_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)

    # Let SQLAlchemy own BEGIN so SAVEPOINTs nest inside the request transaction.
    @event.listens_for(engine.sync_engine, "connect")
    def _autocommit_driver(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    yield async_sessionmaker(engine, expire_on_commit=False)
    engine.sync_engine.dispose()


@pytest.fixture
def transaction(session_factory):
    """Async context manager with the same commit/rollback contract as `get_db`."""

    @asynccontextmanager
    async def _transaction():
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    return _transaction


@pytest.fixture
def make_user(transaction):
    async def _make_user(
        email="driver@example.com",
        password=DEFAULT_PASSWORD,
        role=UserRole.DRIVER,
        username=None,
    ):
        async with transaction() as db:
            return await auth_service.register_user(email, password, db, role=role, username=username)

    return _make_user


@pytest.fixture
def login(transaction):
    async def _login(email="driver@example.com", password=DEFAULT_PASSWORD):
        async with transaction() as db:
            return await auth_service.authenticate_user(email, password, db)

    return _login


def principal_for(user, session_id="test-session"):
    return Principal(id=user.id, role=user.role, sponsor_id=user.sponsor_id, session_id=session_id)


@pytest.fixture
def as_principal():
    return principal_for


@pytest.fixture
def client_factory(session_factory):
    """Build an `httpx.AsyncClient` bound to the app with `get_db` pointed at the test DB."""

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db

    def _client():
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")

    yield _client
    app.dependency_overrides.clear()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
