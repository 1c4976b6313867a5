"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory stores
- A recording payment gateway that mimics processor-side state
- A PostgreSQL pool that skips dependent tests when the database is down
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import InMemoryStore
from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings
from tests.fakes import RecordingPaymentGateway


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def gateway() -> RecordingPaymentGateway:
    return RecordingPaymentGateway()


@pytest.fixture(scope="session")
def postgres_pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against DATABASE_URL with migrations applied.

    Tests using it are skipped when PostgreSQL cannot be reached.
    """
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    try:
        pool.wait(timeout=3)
    except Exception as e:
        pool.close()
        pytest.skip(f"PostgreSQL unavailable: {e}")

    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_postgres(postgres_pool: ConnectionPool) -> Generator[ConnectionPool, None, None]:
    """Empty all tables before each test."""
    with postgres_pool.connection() as conn:
        conn.execute("DELETE FROM attendees")
        conn.execute("DELETE FROM events")
        conn.execute("DELETE FROM hosts")
        conn.commit()
    yield postgres_pool
