"""
Event management domain service - Host dashboard and check-in.

Hosts create events, list them with attendee counts, close them and
mark attendance. Ownership is checked here: an event or attendee that
belongs to another host is reported as not found.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .attendance import check_toggle
from .exceptions import (
    AttendeeNotFound,
    EventNotFound,
    EventValidationError,
    InvalidStatusTransition,
)
from .ports import (
    Attendee,
    AttendeeRepository,
    AttendeeStatus,
    Event,
    EventRepository,
    EventStatus,
)

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 100
LOCATION_MAX_LENGTH = 200


@dataclass(frozen=True)
class EventSummary:
    event: Event
    attendee_count: int


@dataclass
class EventService:
    """Domain service for host-side event and attendee management."""

    events: EventRepository
    attendees: AttendeeRepository

    def create_event(
        self,
        host_id: str,
        title: str,
        event_date: datetime,
        deposit_amount: Decimal,
        location: str | None = None,
    ) -> Event:
        """
        Create an ACTIVE event owned by the host.

        Raises:
            EventValidationError: Date without UTC offset, blank/long title,
                negative or over-precise deposit, long location
        """
        if event_date.tzinfo is None or event_date.utcoffset() is None:
            raise EventValidationError("event_date must include a UTC offset")

        clean_title = (title or "").strip()
        if not clean_title:
            raise EventValidationError("title is required")
        if len(clean_title) > TITLE_MAX_LENGTH:
            raise EventValidationError(f"title exceeds {TITLE_MAX_LENGTH} characters")

        deposit = deposit_amount if isinstance(deposit_amount, Decimal) else Decimal(str(deposit_amount))
        if deposit < 0:
            raise EventValidationError("deposit must not be negative")
        if deposit.as_tuple().exponent < -2:
            raise EventValidationError("deposit has more than 2 decimal places")

        clean_location = (location or "").strip() or None
        if clean_location is not None and len(clean_location) > LOCATION_MAX_LENGTH:
            raise EventValidationError(f"location exceeds {LOCATION_MAX_LENGTH} characters")

        event = self.events.create_event(
            host_id=host_id,
            title=clean_title,
            event_date=event_date,
            deposit_amount=deposit,
            location=clean_location,
        )
        logger.info("Event %s created by host %s", event.id, host_id)
        return event

    def list_events(self, host_id: str) -> list[EventSummary]:
        """Host's events, soonest first, each with its attendee count."""
        events = self.events.list_events(host_id)
        counts = self.attendees.count_by_event([e.id for e in events]) if events else {}
        return [EventSummary(event=e, attendee_count=counts.get(e.id, 0)) for e in events]

    def get_public_event(self, event_id: str) -> Event:
        """Event as shown on the public registration page."""
        event = self.events.get_event(event_id)
        if event is None:
            raise EventNotFound(event_id)
        return event

    def update_event_status(self, host_id: str, event_id: str, status: EventStatus) -> Event:
        self._owned_event(host_id, event_id)
        updated = self.events.update_status(event_id, status)
        if updated is None:
            raise EventNotFound(event_id)
        logger.info("Event %s status set to %s", event_id, status.value)
        return updated

    def list_attendees(self, host_id: str, event_id: str) -> list[Attendee]:
        self._owned_event(host_id, event_id)
        return self.attendees.list_for_event(event_id)

    def set_attendance(
        self, host_id: str, attendee_id: str, desired: AttendeeStatus
    ) -> Attendee:
        """
        Apply the host's attendance toggle.

        Only the status field changes. Setting the current status again
        returns the record unchanged.

        Raises:
            AttendeeNotFound: Missing attendee or event owned by another host
            InvalidStatusTransition: desired is NO_SHOW, current is NO_SHOW,
                or the status changed concurrently
        """
        attendee = self.attendees.get(attendee_id)
        if attendee is None:
            raise AttendeeNotFound(attendee_id)
        event = self.events.get_event(attendee.event_id)
        if event is None or event.host_id != host_id:
            raise AttendeeNotFound(attendee_id)

        check_toggle(attendee.status, desired)
        if attendee.status == desired:
            return attendee

        updated = self.attendees.update_status(attendee_id, attendee.status, desired)
        if updated is None:
            raise InvalidStatusTransition("attendee status changed concurrently")
        logger.info(
            "Attendee %s status %s -> %s",
            attendee_id,
            attendee.status.value,
            desired.value,
        )
        return updated

    def _owned_event(self, host_id: str, event_id: str) -> Event:
        event = self.events.get_event(event_id)
        if event is None or event.host_id != host_id:
            raise EventNotFound(event_id)
        return event
