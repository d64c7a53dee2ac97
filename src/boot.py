"""
Environment bootloader.

Validates configuration and backing services before the app accepts traffic.
It is used by:
1. Application startup (main.py) -> mode="critical"
2. CI pipelines -> mode="dry-run"
3. Smoke tests (CLI) -> mode="full"
"""

import asyncio
import sys
import time
from dataclasses import dataclass
from enum import Enum

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.config import DEFAULT_JWT_SECRET, Settings, settings
from src.errors import ConfigurationError
from src.logger import get_logger
from src.security import parse_duration

logger = get_logger(__name__)


class BootMode(str, Enum):
    CRITICAL = "critical"  # Config + DB (fast fail for startup)
    FULL = "full"  # Config + DB + Redis (smoke tests)
    DRY_RUN = "dry-run"  # Static config check only (CI lint)


@dataclass
class ServiceStatus:
    service: str
    status: str  # 'ok', 'warning', 'error', 'skipped'
    message: str
    duration_ms: float = 0.0


class Bootloader:
    """Handles configuration validation and service connectivity checks."""

    @staticmethod
    async def validate(
        mode: BootMode = BootMode.CRITICAL,
        *,
        config: Settings | None = None,
        engine: AsyncEngine | None = None,
    ) -> bool:
        """Run validation checks. Returns True if passed, False if failed.

        If mode is CRITICAL, this calls sys.exit(1) on failure.
        """
        config = config or settings
        logger.info("Bootloader starting validation", mode=mode.value)

        problems = Bootloader.check_static_config(config)
        if problems:
            for problem in problems:
                logger.error("Configuration invalid", problem=problem)
            if mode == BootMode.CRITICAL:
                logger.critical("Static configuration check failed. Refusing to start.")
                sys.exit(1)
            return False

        if mode == BootMode.DRY_RUN:
            logger.info("Dry-run configuration check passed")
            return True

        results = [await Bootloader._check_database(config, engine)]
        if mode == BootMode.FULL:
            results.append(await Bootloader._check_redis(config))

        passed = True
        for res in results:
            if res.status == "error":
                passed = False
                logger.error(
                    "Service check failed",
                    service=res.service,
                    error=res.message,
                    duration_ms=res.duration_ms,
                )
            elif res.status == "skipped":
                logger.info("Service check skipped", service=res.service, message=res.message)
            else:
                logger.info("Service check passed", service=res.service, duration_ms=res.duration_ms)

        if not passed:
            if mode == BootMode.CRITICAL:
                logger.critical("Critical service checks failed. Application cannot start.")
                sys.exit(1)
            return False

        logger.info("Bootloader validation successful")
        return True

    @staticmethod
    def check_static_config(config: Settings) -> list[str]:
        """Return a list of configuration problems (empty when valid)."""
        problems: list[str] = []

        try:
            ttl = parse_duration(config.jwt_expires_in)
        except ConfigurationError as exc:
            problems.append(exc.message)
        else:
            if ttl.total_seconds() <= 0:
                problems.append("JWT_EXPIRES_IN must be positive")
            elif ttl.total_seconds() > config.jwt_maxage * 60:
                problems.append(
                    f"JWT_EXPIRES_IN ({config.jwt_expires_in}) exceeds JWT_MAXAGE ({config.jwt_maxage} minutes)"
                )

        if not config.jwt_secret:
            problems.append("JWT_SECRET is empty")
        elif config.jwt_secret == DEFAULT_JWT_SECRET and config.environment != "development":
            problems.append(f"JWT_SECRET must be set in {config.environment}")

        return problems

    @staticmethod
    async def _check_database(config: Settings, engine: AsyncEngine | None = None) -> ServiceStatus:
        """Verify database connectivity (SELECT 1)."""
        start = time.perf_counter()
        owned = engine is None
        target = engine or create_async_engine(config.database_url, echo=False)
        try:
            async with target.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("database", "error", str(e), duration_ms)
        finally:
            if owned:
                await target.dispose()

        duration_ms = (time.perf_counter() - start) * 1000
        return ServiceStatus("database", "ok", "Connection successful", duration_ms)

    @staticmethod
    async def _check_redis(config: Settings) -> ServiceStatus:
        if not config.redis_url:
            return ServiceStatus("redis", "skipped", "Not configured")

        start = time.perf_counter()
        client = aioredis.from_url(config.redis_url, decode_responses=True)
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("redis", "error", str(e), duration_ms)
        finally:
            await client.aclose()

        duration_ms = (time.perf_counter() - start) * 1000
        return ServiceStatus("redis", "ok", "Ping successful", duration_ms)


if __name__ == "__main__":
    import argparse

    from src.logger import configure_logging

    parser = argparse.ArgumentParser()
    parser.add_argument("--mode", type=str, default="full", choices=["critical", "full", "dry-run"])
    args = parser.parse_args()

    configure_logging()
    try:
        success = asyncio.run(Bootloader.validate(BootMode(args.mode)))
    except KeyboardInterrupt:
        sys.exit(130)

    sys.exit(0 if success else 1)
