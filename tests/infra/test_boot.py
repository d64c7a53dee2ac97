"""Tests for the startup bootloader."""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from src.boot import Bootloader, BootMode
from src.config import DEFAULT_JWT_SECRET, Settings


def _settings(**overrides) -> Settings:
    values = {
        "jwt_secret": "a-real-secret",
        "jwt_expires_in": "60m",
        "jwt_maxage": 60,
        "environment": "production",
    }
    values.update(overrides)
    return Settings(_env_file=None).model_copy(update=values)


def test_static_config_valid() -> None:
    assert Bootloader.check_static_config(_settings()) == []


def test_static_config_rejects_unparseable_ttl() -> None:
    problems = Bootloader.check_static_config(_settings(jwt_expires_in="sixty"))
    assert problems == ["Invalid duration expression: 'sixty'"]


def test_static_config_rejects_ttl_above_maxage() -> None:
    problems = Bootloader.check_static_config(_settings(jwt_expires_in="2h", jwt_maxage=60))
    assert len(problems) == 1
    assert "exceeds JWT_MAXAGE" in problems[0]


def test_static_config_rejects_non_positive_ttl() -> None:
    assert Bootloader.check_static_config(_settings(jwt_expires_in="0m")) == ["JWT_EXPIRES_IN must be positive"]


def test_static_config_rejects_default_secret_outside_development() -> None:
    problems = Bootloader.check_static_config(_settings(jwt_secret=DEFAULT_JWT_SECRET))
    assert problems == ["JWT_SECRET must be set in production"]


def test_static_config_allows_default_secret_in_development() -> None:
    config = _settings(jwt_secret=DEFAULT_JWT_SECRET, environment="development")
    assert Bootloader.check_static_config(config) == []


@pytest.mark.asyncio
async def test_validate_dry_run_skips_services() -> None:
    assert await Bootloader.validate(BootMode.DRY_RUN, config=_settings()) is True


@pytest.mark.asyncio
async def test_validate_critical_with_reachable_database(db_engine) -> None:
    assert await Bootloader.validate(BootMode.CRITICAL, config=_settings(), engine=db_engine) is True


@pytest.mark.asyncio
async def test_validate_critical_exits_on_bad_config() -> None:
    with pytest.raises(SystemExit) as exc_info:
        await Bootloader.validate(BootMode.CRITICAL, config=_settings(jwt_expires_in="bad"))
    assert exc_info.value.code == 1


@pytest.mark.asyncio
async def test_validate_full_reports_unreachable_database(tmp_path) -> None:
    """A database that cannot be opened fails the check without exiting."""
    missing = tmp_path / "missing" / "auth.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{missing}")
    try:
        result = await Bootloader.validate(BootMode.FULL, config=_settings(redis_url=None), engine=engine)
    finally:
        await engine.dispose()

    assert result is False


@pytest.mark.asyncio
async def test_check_redis_skipped_when_not_configured() -> None:
    status = await Bootloader._check_redis(_settings(redis_url=None))
    assert status.status == "skipped"
