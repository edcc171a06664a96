"""
Pytest configuration and fixtures for testing
"""
import os
import tempfile

# Settings are read at import time, so the test environment is fixed first
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="willtank-uploads-")
os.environ["ENV"] = "test"
for _key in ("REDIS_URL", "SMTP_HOST", "OPENAI_API_KEY", "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "RENDER"):
    os.environ.pop(_key, None)

from datetime import datetime, timedelta  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from database import Base, get_db  # noqa: E402
from auth_utils import hash_password, create_jwt  # noqa: E402
from config.settings import settings  # noqa: E402
from crud.user import UserRepository  # noqa: E402

# Create in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "Password123"


@pytest.fixture
async def test_engine():
    """
    A fresh in-memory database per test.
    StaticPool keeps every session on the one connection that holds the tables.
    """
    # Import models to ensure they're registered with Base
    import database_models  # noqa: F401

    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory):
    """
    Fixture that provides an isolated AsyncSession for each test.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@pytest.fixture(autouse=True)
def uploads_dir(tmp_path, monkeypatch):
    """Stored uploads go to a per-test directory."""
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "uploads_dir", str(path))
    return path


@pytest.fixture
async def client(session_factory):
    """
    httpx client bound to the app, with get_db pointed at the test database.
    """
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    # Cleanup: remove dependency overrides
    app.dependency_overrides.clear()


@pytest.fixture
def create_user(session_factory):
    """
    Factory for committed users. Verified by default.
    """
    async def _create_user(email: str = "owner@example.com", password: str = TEST_PASSWORD, verified: bool = True, **fields):
        async with session_factory() as session:
            user = await UserRepository(session).create_user({
                "email": email,
                "hashed_password": hash_password(password),
                "is_email_verified": verified,
                **fields,
            })
            await session.commit()
            return user

    return _create_user


def auth_headers(user) -> dict:
    """Bearer header for a user."""
    return {"Authorization": f"Bearer {create_jwt(str(user.id))}"}


def fresh_code_expiry(minutes: int = 10) -> datetime:
    return datetime.utcnow() + timedelta(minutes=minutes)
