"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- PostgreSQL connection pool (skips database tests when unavailable)
- Seeding events and reading back ledger state
"""

from collections.abc import Callable, Generator
from uuid import UUID, uuid4

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings


@pytest.fixture(scope="session")
def database_url() -> str:
    """Database URL from settings; skips the test if PostgreSQL is unreachable."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=3):
            pass
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")
    return settings.database_url


@pytest.fixture(scope="session")
def pool(database_url: str) -> Generator[ConnectionPool, None, None]:
    """Create connection pool for database tests, with migrations applied."""
    pool = ConnectionPool(
        conninfo=database_url,
        min_size=1,
        max_size=30,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean ledger tables before each test."""
    with pool.connection() as conn:
        conn.execute('DELETE FROM "EventRegistrationHistory"')
        conn.execute('DELETE FROM "EventRegistrations"')
        conn.execute('DELETE FROM "Events"')
        conn.commit()
    yield


@pytest.fixture
def create_event(pool: ConnectionPool) -> Callable[..., UUID]:
    """Factory inserting an event row; returns its id."""

    def _create(event_id: UUID | None = None, registered_count: int = 0) -> UUID:
        event_id = event_id or uuid4()
        with pool.connection() as conn:
            conn.execute(
                'INSERT INTO "Events" ("Id", "RegisteredCount") VALUES (%s, %s)',
                (event_id, registered_count),
            )
            conn.commit()
        return event_id

    return _create


@pytest.fixture
def registered_count(pool: ConnectionPool) -> Callable[[UUID], int | None]:
    """Reader for an event's RegisteredCount (None if the event does not exist)."""

    def _read(event_id: UUID) -> int | None:
        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute('SELECT "RegisteredCount" FROM "Events" WHERE "Id" = %s', (event_id,))
            row = cursor.fetchone()
        return None if row is None else row[0]

    return _read


@pytest.fixture
def registration_state(pool: ConnectionPool) -> Callable[[UUID, str], str | None]:
    """Reader for the current Action of an (event, user) pair (None if absent)."""

    def _read(event_id: UUID, user_id: str) -> str | None:
        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                'SELECT "Action" FROM "EventRegistrations" WHERE "EventId" = %s AND "UserId" = %s',
                (event_id, user_id),
            )
            row = cursor.fetchone()
        return None if row is None else row[0]

    return _read


@pytest.fixture
def history(pool: ConnectionPool) -> Callable[[UUID, str], list[tuple]]:
    """Reader for the audit history of a pair, oldest first: (Action, MessageId, Sequence)."""

    def _read(event_id: UUID, user_id: str) -> list[tuple]:
        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                """
                SELECT "Action", "MessageId", "Sequence"
                FROM "EventRegistrationHistory"
                WHERE "EventId" = %s AND "UserId" = %s
                ORDER BY "Id"
                """,
                (event_id, user_id),
            )
            return cursor.fetchall()

    return _read
