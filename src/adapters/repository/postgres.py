"""
PostgreSQL ledger adapter - Implements RegistrationLedger protocol.

This module provides the PostgreSQL implementation of the domain's
ledger port using psycopg3 with raw SQL.

Concurrency Design - Event Row Lock:
------------------------------------
Every operation that may change an event's RegisteredCount first takes an
exclusive lock on the event row (SELECT ... FOR UPDATE). Concurrent commands
for the same event therefore run one after another, and the decision
"is this an actual state transition?" is made while holding the lock:

1. **Idempotence**: the counter moves only when the stored state differs
   from the requested one. A redelivered Register finds the pair already
   REGISTERED and commits without touching the counter.

2. **Atomicity**: the registration upsert, the history row and the counter
   update share one transaction. Any failure before COMMIT rolls all of
   them back.

3. **Bounded time**: statement_timeout and lock_timeout are set
   transaction-locally, so a stuck transaction is cancelled by the server
   and surfaces as STORAGE_ERROR.

4. **Ordering**: commands carrying a sequence number are rejected as STALE
   when the stored sequence is greater. An equal sequence asking for the
   stored state is a replay and returns OK; asking for the other state it
   is STALE.
"""

import logging
from pathlib import Path
from uuid import UUID

import psycopg
from psycopg_pool import ConnectionPool

from src.domain.ports import LedgerResult, RegistrationState

logger = logging.getLogger(__name__)

# src/adapters/repository/postgres.py -> <project root>/migrations
MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


class PostgresRegistrationLedger:
    """
    Implements RegistrationLedger protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        transaction_timeout_ms: int = 5000,
        lock_timeout_ms: int = 3000,
    ) -> None:
        """
        Initialize ledger with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            transaction_timeout_ms: statement_timeout applied to each transaction
            lock_timeout_ms: lock_timeout applied to each transaction
        """
        self._pool = pool
        self._transaction_timeout_ms = transaction_timeout_ms
        self._lock_timeout_ms = lock_timeout_ms

    def register(
        self,
        event_id: UUID,
        user_id: str,
        *,
        sequence: int | None = None,
        message_id: str | None = None,
    ) -> LedgerResult:
        """
        Mark the user as registered for the event.

        Locks the event row first; a missing event aborts the transaction
        with no changes. The counter is incremented only when the pair was
        absent or UNREGISTERED.

        Args:
            event_id: Event identifier
            user_id: User identifier
            sequence: Optional command sequence for stale-write rejection
            message_id: Transport message id recorded in the history row

        Returns:
            OK, EVENT_NOT_FOUND, STALE or STORAGE_ERROR
        """
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                self._apply_timeouts(cursor)

                if not self._lock_event(cursor, event_id):
                    conn.rollback()
                    return LedgerResult.EVENT_NOT_FOUND

                current = self._lock_registration(cursor, event_id, user_id)
                if self._is_stale(current, RegistrationState.REGISTERED, sequence):
                    conn.rollback()
                    return LedgerResult.STALE

                if current is not None and current[0] == RegistrationState.REGISTERED.value:
                    # Redelivery or duplicate: state already applied
                    self._record_sequence(cursor, event_id, user_id, sequence)
                    conn.commit()
                    logger.info(
                        "User %s already registered for event %s, counter unchanged",
                        user_id,
                        event_id,
                    )
                    return LedgerResult.OK

                self._upsert_registration(
                    cursor, event_id, user_id, RegistrationState.REGISTERED, sequence
                )
                self._append_history(
                    cursor, event_id, user_id, RegistrationState.REGISTERED, sequence, message_id
                )
                self._adjust_registered_count(cursor, event_id, 1)
                conn.commit()
                return LedgerResult.OK
        except psycopg.Error as e:
            logger.error(
                "Error during registration of user %s for event %s: %s", user_id, event_id, e
            )
            return LedgerResult.STORAGE_ERROR

    def unregister(
        self,
        event_id: UUID,
        user_id: str,
        *,
        sequence: int | None = None,
        message_id: str | None = None,
    ) -> LedgerResult:
        """
        Mark the user as unregistered for the event.

        Locks the event row when it exists, so the counter decrement follows
        the same discipline as register. A pair with no prior row is stored
        as UNREGISTERED. The counter is decremented only when the pair was
        REGISTERED.

        Args:
            event_id: Event identifier
            user_id: User identifier
            sequence: Optional command sequence for stale-write rejection
            message_id: Transport message id recorded in the history row

        Returns:
            OK, STALE or STORAGE_ERROR
        """
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                self._apply_timeouts(cursor)
                self._lock_event(cursor, event_id)

                current = self._lock_registration(cursor, event_id, user_id)
                if self._is_stale(current, RegistrationState.UNREGISTERED, sequence):
                    conn.rollback()
                    return LedgerResult.STALE

                if current is not None and current[0] == RegistrationState.UNREGISTERED.value:
                    self._record_sequence(cursor, event_id, user_id, sequence)
                    conn.commit()
                    logger.info(
                        "User %s already unregistered from event %s, counter unchanged",
                        user_id,
                        event_id,
                    )
                    return LedgerResult.OK

                self._upsert_registration(
                    cursor, event_id, user_id, RegistrationState.UNREGISTERED, sequence
                )
                self._append_history(
                    cursor, event_id, user_id, RegistrationState.UNREGISTERED, sequence, message_id
                )
                if current is not None:
                    self._adjust_registered_count(cursor, event_id, -1)
                conn.commit()
                return LedgerResult.OK
        except psycopg.Error as e:
            logger.error(
                "Error during unregistration of user %s from event %s: %s", user_id, event_id, e
            )
            return LedgerResult.STORAGE_ERROR

    def _apply_timeouts(self, cursor: psycopg.Cursor) -> None:
        """Bound the transaction; is_local=true resets both on commit/rollback."""
        cursor.execute(
            "SELECT set_config('statement_timeout', %s, true), set_config('lock_timeout', %s, true)",
            (f"{self._transaction_timeout_ms}ms", f"{self._lock_timeout_ms}ms"),
        )

    def _lock_event(self, cursor: psycopg.Cursor, event_id: UUID) -> bool:
        """Take the exclusive event row lock. Returns False if the event does not exist."""
        cursor.execute(
            'SELECT "RegisteredCount" FROM "Events" WHERE "Id" = %s FOR UPDATE',
            (event_id,),
        )
        return cursor.fetchone() is not None

    def _lock_registration(
        self, cursor: psycopg.Cursor, event_id: UUID, user_id: str
    ) -> tuple[str, int | None] | None:
        """Fetch and lock the current (state, sequence) of the pair, if any."""
        cursor.execute(
            """
            SELECT "Action", "Sequence"
            FROM "EventRegistrations"
            WHERE "EventId" = %s AND "UserId" = %s
            FOR UPDATE
            """,
            (event_id, user_id),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return row[0], row[1]

    @staticmethod
    def _is_stale(
        current: tuple[str, int | None] | None, state: RegistrationState, sequence: int | None
    ) -> bool:
        """
        Older sequences are stale. An equal sequence is a replay, and stale
        only when it asks for a different state than the one stored.
        """
        if current is None or sequence is None or current[1] is None:
            return False
        if sequence == current[1]:
            return current[0] != state.value
        return sequence < current[1]

    def _record_sequence(
        self, cursor: psycopg.Cursor, event_id: UUID, user_id: str, sequence: int | None
    ) -> None:
        if sequence is None:
            return
        cursor.execute(
            """
            UPDATE "EventRegistrations"
            SET "Sequence" = %s, "UpdatedAt" = NOW()
            WHERE "EventId" = %s AND "UserId" = %s
            """,
            (sequence, event_id, user_id),
        )

    def _upsert_registration(
        self,
        cursor: psycopg.Cursor,
        event_id: UUID,
        user_id: str,
        state: RegistrationState,
        sequence: int | None,
    ) -> None:
        cursor.execute(
            """
            INSERT INTO "EventRegistrations" ("EventId", "UserId", "Action", "Sequence", "UpdatedAt")
            VALUES (%s, %s, %s, %s, NOW())
            ON CONFLICT ("EventId", "UserId") DO UPDATE
            SET "Action" = EXCLUDED."Action",
                "Sequence" = COALESCE(EXCLUDED."Sequence", "EventRegistrations"."Sequence"),
                "UpdatedAt" = NOW()
            """,
            (event_id, user_id, state.value, sequence),
        )

    def _append_history(
        self,
        cursor: psycopg.Cursor,
        event_id: UUID,
        user_id: str,
        state: RegistrationState,
        sequence: int | None,
        message_id: str | None,
    ) -> None:
        cursor.execute(
            """
            INSERT INTO "EventRegistrationHistory" ("EventId", "UserId", "Action", "MessageId", "Sequence")
            VALUES (%s, %s, %s, %s, %s)
            """,
            (event_id, user_id, state.value, message_id, sequence),
        )

    def _adjust_registered_count(self, cursor: psycopg.Cursor, event_id: UUID, delta: int) -> None:
        """Move the event counter by delta, never below zero. Caller holds the event lock."""
        cursor.execute(
            """
            UPDATE "Events"
            SET "RegisteredCount" = GREATEST("RegisteredCount" + %s, 0)
            WHERE "Id" = %s
            """,
            (delta, event_id),
        )


def run_migrations(pool: ConnectionPool, migrations_dir: Path = MIGRATIONS_DIR) -> None:
    """
    Apply every *.sql file in migrations_dir, in filename order.

    Each file is committed on its own, so a failing file leaves the earlier
    ones applied. Files must be idempotent (IF NOT EXISTS).

    Raises:
        RuntimeError: A migration file failed to execute
    """
    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        logger.warning("No migrations found in %s", migrations_dir)
        return

    with pool.connection() as conn:
        for sql_file in sql_files:
            try:
                conn.execute(sql_file.read_text())
                conn.commit()
            except psycopg.Error as e:
                conn.rollback()
                logger.error("Migration %s failed: %s", sql_file.name, e)
                raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
            logger.info("Applied migration %s", sql_file.name)
