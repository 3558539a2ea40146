"""
Environment bootloader.

Used by:
1. Application startup (main.py) -> mode="critical", exits the process on failure
2. CI / manual checks -> ``python -m user_registry.boot --mode dry-run|critical``
"""

import asyncio
import os
import sys
import time
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import text

from user_registry.config import settings
from user_registry.database import create_engine_from_settings
from user_registry.logger import get_logger

logger = get_logger(__name__)


class BootMode(str, Enum):
    CRITICAL = "critical"  # Config + DB (fast fail for startup)
    DRY_RUN = "dry-run"  # Static config check only


@dataclass
class ServiceStatus:
    service: str
    status: str  # 'ok', 'error'
    message: str
    duration_ms: float = 0.0


class Bootloader:
    """Handles environment validation and store connectivity checks."""

    @staticmethod
    async def validate(mode: BootMode = BootMode.CRITICAL) -> bool:
        """Run validation checks. Returns True if passed, False if failed.

        If mode is CRITICAL, this calls sys.exit(1) on failure.
        """
        logger.info("Bootloader starting validation", mode=mode.value)

        if not Bootloader._check_static_config():
            if mode == BootMode.CRITICAL:
                logger.critical("Static configuration check failed. Refusing to start.")
                sys.exit(1)
            return False

        if mode == BootMode.DRY_RUN:
            logger.info("Dry-run configuration check passed")
            return True

        res = await Bootloader._check_database()
        if res.status == "error":
            logger.error(
                "Service check failed",
                service=res.service,
                error=res.message,
                duration_ms=res.duration_ms,
            )
            if mode == BootMode.CRITICAL:
                logger.critical("Database unreachable. Application cannot start.")
                sys.exit(1)
            return False

        logger.info("Service check passed", service=res.service, duration_ms=res.duration_ms)
        logger.info("Bootloader validation successful")
        return True

    @staticmethod
    def print_config() -> None:
        """Print loaded configuration if DEBUG is enabled."""
        if not settings.debug:
            return

        print("\n" + "=" * 60)
        print("Config loaded (DEBUG mode)")
        print("=" * 60)

        safe_fields = [
            "environment",
            "host",
            "port",
            "validation_profile",
            "bcrypt_rounds",
            "db_pool_max",
            "db_pool_acquire_timeout",
            "db_pool_idle_timeout",
            "database_ssl",
        ]
        # Only "set"/"not set" is shown for these
        sensitive_fields = ["database_url_str", "db_password"]

        for field in safe_fields:
            print(f"  {field}: {getattr(settings, field, None)}")

        print("")
        for field in sensitive_fields:
            status = "set" if getattr(settings, field, None) else "not set"
            print(f"  {field}: {status}")

        print("\nFields using defaults:")
        defaults_used = [field for field in safe_fields if not os.getenv(field.upper())]
        for field in defaults_used or ["(none)"]:
            print(f"  - {field}")

        print("=" * 60 + "\n")

    @staticmethod
    def _check_static_config() -> bool:
        """Resolve the derived settings; a bad profile or URL fails here."""
        try:
            _ = settings.database_url
            _ = settings.validation_policy
            return True
        except Exception as e:
            logger.error("Configuration load failed", error=str(e))
            return False

    @staticmethod
    async def _check_database() -> ServiceStatus:
        """Verify database connectivity (SELECT 1)."""
        start = time.perf_counter()
        engine = None
        try:
            engine = create_engine_from_settings(settings)
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("database", "ok", "Connection successful", duration_ms)

        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("database", "error", str(e), duration_ms)
        finally:
            if engine:
                await engine.dispose()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("--mode", type=str, default="critical", choices=["critical", "dry-run"])
    args = parser.parse_args()

    from user_registry.logger import configure_logging

    configure_logging()
    try:
        success = asyncio.run(Bootloader.validate(BootMode(args.mode)))
    except KeyboardInterrupt:
        print("\nAborted.")
        sys.exit(130)

    sys.exit(0 if success else 1)
