"""
In-memory repository adapters - Process-local storage for development.

Selected with ``STORAGE_BACKEND=memory``. Every store shares one lock so
that the (event_id, email) uniqueness rule and the conditional status
update behave atomically under the threadpool that serves sync routes,
mirroring the guarantees of the PostgreSQL constraints.
"""

import threading
import uuid
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

from src.domain.ports import Attendee, AttendeeStatus, Event, EventStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryEventRepository:
    """Implements EventRepository protocol with a dict."""

    def __init__(self, lock: threading.Lock) -> None:
        self._lock = lock
        self._events: dict[str, Event] = {}

    def create_event(
        self,
        host_id: str,
        title: str,
        event_date: datetime,
        deposit_amount: Decimal,
        location: str | None,
    ) -> Event:
        event = Event(
            id=str(uuid.uuid4()),
            host_id=host_id,
            title=title,
            event_date=event_date,
            deposit_amount=deposit_amount,
            location=location,
            status=EventStatus.ACTIVE,
            created_at=_now(),
        )
        with self._lock:
            self._events[event.id] = event
        return event

    def get_event(self, event_id: str) -> Event | None:
        with self._lock:
            return self._events.get(event_id)

    def list_events(self, host_id: str) -> list[Event]:
        with self._lock:
            owned = [e for e in self._events.values() if e.host_id == host_id]
        return sorted(owned, key=lambda e: e.event_date)

    def update_status(self, event_id: str, status: EventStatus) -> Event | None:
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                return None
            event = replace(event, status=status)
            self._events[event_id] = event
            return event


class InMemoryAttendeeRepository:
    """
    Implements AttendeeRepository protocol with a dict plus a uniqueness index.

    The (event_id, email) index is checked and written under the lock,
    so concurrent add() calls for the same pair yield exactly one row.
    """

    def __init__(self, lock: threading.Lock) -> None:
        self._lock = lock
        self._attendees: dict[str, Attendee] = {}
        self._by_pair: dict[tuple[str, str], str] = {}

    def exists(self, event_id: str, email: str) -> bool:
        with self._lock:
            return (event_id, email) in self._by_pair

    def add(
        self,
        event_id: str,
        email: str,
        name: str | None,
        authorization_id: str,
    ) -> Attendee | None:
        with self._lock:
            if (event_id, email) in self._by_pair:
                return None
            attendee = Attendee(
                id=str(uuid.uuid4()),
                event_id=event_id,
                email=email,
                name=name,
                status=AttendeeStatus.REGISTERED,
                authorization_id=authorization_id,
                created_at=_now(),
            )
            self._attendees[attendee.id] = attendee
            self._by_pair[(event_id, email)] = attendee.id
            return attendee

    def get(self, attendee_id: str) -> Attendee | None:
        with self._lock:
            return self._attendees.get(attendee_id)

    def list_for_event(self, event_id: str) -> list[Attendee]:
        with self._lock:
            rows = [a for a in self._attendees.values() if a.event_id == event_id]
        return sorted(rows, key=lambda a: a.created_at, reverse=True)

    def count_by_event(self, event_ids: Iterable[str]) -> dict[str, int]:
        wanted = set(event_ids)
        counts: dict[str, int] = {}
        with self._lock:
            for attendee in self._attendees.values():
                if attendee.event_id in wanted:
                    counts[attendee.event_id] = counts.get(attendee.event_id, 0) + 1
        return counts

    def update_status(
        self,
        attendee_id: str,
        expected: AttendeeStatus,
        status: AttendeeStatus,
    ) -> Attendee | None:
        with self._lock:
            attendee = self._attendees.get(attendee_id)
            if attendee is None or attendee.status != expected:
                return None
            attendee = replace(attendee, status=status)
            self._attendees[attendee_id] = attendee
            return attendee


class InMemoryHostRepository:
    """Implements HostRepository protocol with a dict keyed by email."""

    def __init__(self, lock: threading.Lock) -> None:
        self._lock = lock
        self._hosts: dict[str, tuple[str, str]] = {}

    def create_host(self, email: str, password_hash: str) -> str | None:
        with self._lock:
            if email in self._hosts:
                return None
            host_id = str(uuid.uuid4())
            self._hosts[email] = (host_id, password_hash)
            return host_id

    def get_credentials(self, email: str) -> tuple[str, str] | None:
        with self._lock:
            return self._hosts.get(email)


class InMemoryStore:
    """Bundle of in-memory repositories sharing one lock."""

    def __init__(self) -> None:
        lock = threading.Lock()
        self.events = InMemoryEventRepository(lock)
        self.attendees = InMemoryAttendeeRepository(lock)
        self.hosts = InMemoryHostRepository(lock)
