"""Test fixtures and configuration."""

import logging
import os
import sys

import pytest
import pytest_asyncio
import structlog
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

# Set before the settings module is imported anywhere
os.environ["ENVIRONMENT"] = "testing"

from user_registry.services.credentials import CredentialStore  # noqa: E402
from user_registry.services.validation import STANDARD_POLICY  # noqa: E402

# bcrypt's minimum work factor keeps the suite fast
TEST_BCRYPT_ROUNDS = 4


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys/caplog capture in tests."""
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
        processor=structlog.dev.ConsoleRenderer(),
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


@pytest_asyncio.fixture
async def store(tmp_path):
    """Credential store backed by a throwaway SQLite file.

    Each test gets its own database file, so no cleanup between tests is needed.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}",
        poolclass=NullPool,
    )
    credential_store = CredentialStore(engine, bcrypt_rounds=TEST_BCRYPT_ROUNDS)
    await credential_store.sync_schema()
    try:
        yield credential_store
    finally:
        await credential_store.dispose()


@pytest.fixture
def policy():
    """Validation profile served to the routers; override per module for strict tests."""
    return STANDARD_POLICY


@pytest_asyncio.fixture
async def client(store, policy):
    """Async test client with the store and policy dependencies overridden."""
    from user_registry.deps import get_credential_store, get_validation_policy
    from user_registry.main import app

    app.dependency_overrides[get_credential_store] = lambda: store
    app.dependency_overrides[get_validation_policy] = lambda: policy
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client_instance:
            yield client_instance
    finally:
        app.dependency_overrides.clear()
