"""Test fixtures and configuration."""

import logging
import os
import sys

# Settings are read at import time; pin them before anything imports src.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ["JWT_SECRET"] = "test-jwt-secret-with-enough-entropy-0123456789"
os.environ["JWT_EXPIRES_IN"] = "60m"
os.environ["JWT_MAXAGE"] = "60"
# Cheap argon2 parameters keep the suite fast; hashes stay real argon2id
os.environ["ARGON2_TIME_COST"] = "1"
os.environ["ARGON2_MEMORY_COST"] = "1024"
os.environ["ARGON2_PARALLELISM"] = "1"
os.environ["RATE_LIMIT_ENABLED"] = "false"
# Redis is optional (only for distributed rate limiting in production)
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import structlog  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.config import settings  # noqa: E402
from src.logger import get_logger  # noqa: E402

logger = get_logger(__name__)

TEST_DATABASE_URL = os.environ["DATABASE_URL"]
TEST_PASSWORD = "correct-horse-battery"


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys capture in tests."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=False),
        foreign_pre_chain=processors[:-1],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()


# --- Rate limiter isolation ---
@pytest.fixture(autouse=True)
def reset_rate_limiters():
    """Clear in-memory rate limit state before and after each test."""
    from src.rate_limit import login_rate_limiter, register_rate_limiter

    login_rate_limiter.clear()
    register_rate_limiter.clear()
    yield
    login_rate_limiter.clear()
    register_rate_limiter.clear()


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a fresh in-memory SQLite database per test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database; the schema is created through init_db.
    """
    from src.database import init_db

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_database_connection(db_engine):
    """Override global database session maker to use the test engine."""
    from src import database

    test_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    previous = database.set_test_session_maker(test_maker)
    yield test_maker
    database.set_test_session_maker(previous)


@pytest_asyncio.fixture(scope="function")
async def db(patch_database_connection):
    """Database session bound to the per-test engine."""
    async with patch_database_connection() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_user(db):
    """Persisted user with a real argon2 hash of TEST_PASSWORD."""
    from src.security import hash_password
    from tests.factories import UserFactory

    return await UserFactory.create_async(db, password_hash=hash_password(TEST_PASSWORD))


@pytest_asyncio.fixture(scope="function")
async def public_client():
    """Create async test client without auth headers."""
    from src.main import app

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client_instance:
        yield client_instance


@pytest_asyncio.fixture(scope="function")
async def client(test_user):
    """Create async test client carrying a bearer token for test_user."""
    from src.main import app
    from src.security import issue_token

    token = issue_token(str(test_user.id), settings.jwt_secret, settings.jwt_expires_in)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as client_instance:
        yield client_instance
