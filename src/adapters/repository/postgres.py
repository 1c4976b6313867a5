"""
PostgreSQL repository adapters - Implement the domain's repository protocols.

This module provides the PostgreSQL implementations of the event, attendee
and host ports using psycopg3 with raw SQL.

Consistency Design - Duplicate Registrations:
--------------------------------------------
The registration workflow checks for an existing attendee before it starts
a payment authorization, but that check cannot hold a lock across the
user-paced confirmation step. Two attempts for the same (event, email) can
both pass it.

1. **UNIQUE (event_id, email)**: the attendees table constraint is the
   authoritative guard. It holds regardless of caller behavior.

2. **ON CONFLICT DO NOTHING RETURNING**: the commit insert reports a
   conflict as "no row returned" instead of an exception, so the domain
   can treat a lost race as an ordinary duplicate.

3. **Conditional status update**: attendance changes use
   ``WHERE status = <expected>`` so concurrent toggles cannot clobber
   each other and no other column is touched.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from uuid import UUID

from psycopg_pool import ConnectionPool

from src.domain.ports import Attendee, AttendeeStatus, Event, EventStatus

logger = logging.getLogger(__name__)

_EVENT_COLUMNS = "id, host_id, title, event_date, deposit_amount, location, status, created_at"
_ATTENDEE_COLUMNS = "id, event_id, email, name, status, authorization_id, created_at"


def _as_uuid(value: str) -> UUID | None:
    """Parse an identifier, returning None for anything that is not a UUID."""
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _event_from_row(row: tuple) -> Event:
    return Event(
        id=str(row[0]),
        host_id=str(row[1]),
        title=row[2],
        event_date=row[3],
        deposit_amount=Decimal(row[4]),
        location=row[5],
        status=EventStatus(row[6]),
        created_at=row[7],
    )


def _attendee_from_row(row: tuple) -> Attendee:
    return Attendee(
        id=str(row[0]),
        event_id=str(row[1]),
        email=row[2],
        name=row[3],
        status=AttendeeStatus(row[4]),
        authorization_id=row[5],
        created_at=row[6],
    )


class PostgresEventRepository:
    """
    Implements EventRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create_event(
        self,
        host_id: str,
        title: str,
        event_date: datetime,
        deposit_amount: Decimal,
        location: str | None,
    ) -> Event:
        sql = f"""
            INSERT INTO events (host_id, title, event_date, deposit_amount, location, status)
            VALUES (%s, %s, %s, %s, %s, 'active')
            RETURNING {_EVENT_COLUMNS}
        """
        host_uuid = _as_uuid(host_id)
        if host_uuid is None:
            raise ValueError(f"Invalid host id: {host_id}")

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (host_uuid, title, event_date, deposit_amount, location))
            row = cursor.fetchone()
            conn.commit()
        return _event_from_row(row)

    def get_event(self, event_id: str) -> Event | None:
        event_uuid = _as_uuid(event_id)
        if event_uuid is None:
            return None

        sql = f"SELECT {_EVENT_COLUMNS} FROM events WHERE id = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (event_uuid,))
            row = cursor.fetchone()
        return _event_from_row(row) if row is not None else None

    def list_events(self, host_id: str) -> list[Event]:
        host_uuid = _as_uuid(host_id)
        if host_uuid is None:
            return []

        sql = f"""
            SELECT {_EVENT_COLUMNS} FROM events
            WHERE host_id = %s
            ORDER BY event_date ASC
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (host_uuid,))
            rows = cursor.fetchall()
        return [_event_from_row(row) for row in rows]

    def update_status(self, event_id: str, status: EventStatus) -> Event | None:
        event_uuid = _as_uuid(event_id)
        if event_uuid is None:
            return None

        sql = f"""
            UPDATE events SET status = %s
            WHERE id = %s
            RETURNING {_EVENT_COLUMNS}
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (status.value, event_uuid))
            row = cursor.fetchone()
            conn.commit()
        return _event_from_row(row) if row is not None else None


class PostgresAttendeeRepository:
    """
    Implements AttendeeRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def exists(self, event_id: str, email: str) -> bool:
        event_uuid = _as_uuid(event_id)
        if event_uuid is None:
            return False

        sql = "SELECT 1 FROM attendees WHERE event_id = %s AND email = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (event_uuid, email))
            return cursor.fetchone() is not None

    def add(
        self,
        event_id: str,
        email: str,
        name: str | None,
        authorization_id: str,
    ) -> Attendee | None:
        """
        Atomically insert a REGISTERED attendee.

        The UNIQUE (event_id, email) constraint decides concurrent races:
        exactly one insert returns a row, the others return None.

        Returns:
            The new Attendee, or None if the pair is already registered
        """
        event_uuid = _as_uuid(event_id)
        if event_uuid is None:
            raise ValueError(f"Invalid event id: {event_id}")

        sql = f"""
            INSERT INTO attendees (event_id, email, name, status, authorization_id)
            VALUES (%s, %s, %s, 'registered', %s)
            ON CONFLICT (event_id, email) DO NOTHING
            RETURNING {_ATTENDEE_COLUMNS}
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (event_uuid, email, name, authorization_id))
            row = cursor.fetchone()
            conn.commit()
        return _attendee_from_row(row) if row is not None else None

    def get(self, attendee_id: str) -> Attendee | None:
        attendee_uuid = _as_uuid(attendee_id)
        if attendee_uuid is None:
            return None

        sql = f"SELECT {_ATTENDEE_COLUMNS} FROM attendees WHERE id = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (attendee_uuid,))
            row = cursor.fetchone()
        return _attendee_from_row(row) if row is not None else None

    def list_for_event(self, event_id: str) -> list[Attendee]:
        event_uuid = _as_uuid(event_id)
        if event_uuid is None:
            return []

        sql = f"""
            SELECT {_ATTENDEE_COLUMNS} FROM attendees
            WHERE event_id = %s
            ORDER BY created_at DESC
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (event_uuid,))
            rows = cursor.fetchall()
        return [_attendee_from_row(row) for row in rows]

    def count_by_event(self, event_ids: Iterable[str]) -> dict[str, int]:
        uuids = [u for u in (_as_uuid(e) for e in event_ids) if u is not None]
        if not uuids:
            return {}

        sql = """
            SELECT event_id, COUNT(*) FROM attendees
            WHERE event_id = ANY(%s)
            GROUP BY event_id
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (uuids,))
            rows = cursor.fetchall()
        return {str(row[0]): row[1] for row in rows}

    def update_status(
        self,
        attendee_id: str,
        expected: AttendeeStatus,
        status: AttendeeStatus,
    ) -> Attendee | None:
        attendee_uuid = _as_uuid(attendee_id)
        if attendee_uuid is None:
            return None

        sql = f"""
            UPDATE attendees SET status = %s
            WHERE id = %s AND status = %s
            RETURNING {_ATTENDEE_COLUMNS}
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (status.value, attendee_uuid, expected.value))
            row = cursor.fetchone()
            conn.commit()
        return _attendee_from_row(row) if row is not None else None


class PostgresHostRepository:
    """Implements HostRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create_host(self, email: str, password_hash: str) -> str | None:
        sql = """
            INSERT INTO hosts (email, password_hash)
            VALUES (%s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING id
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email, password_hash))
            row = cursor.fetchone()
            conn.commit()
        return str(row[0]) if row is not None else None

    def get_credentials(self, email: str) -> tuple[str, str] | None:
        sql = "SELECT id, password_hash FROM hosts WHERE email = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return (str(row[0]), row[1]) if row is not None else None


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
