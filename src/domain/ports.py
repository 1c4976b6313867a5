"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the records the domain works with and the interfaces
(ports) it requires from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol

from .exceptions import OrphanedAuthorization


class EventStatus(str, Enum):
    """Lifecycle of a hosted event. Only the status is mutable after creation."""

    ACTIVE = "active"
    COMPLETED = "completed"


class AttendeeStatus(str, Enum):
    """
    Attendance states for a registration.

    The host toggle moves between REGISTERED and CHECKED_IN only.
    NO_SHOW is reserved for a deposit capture/reconciliation process
    outside this service and is never produced by the toggle.
    """

    REGISTERED = "registered"
    CHECKED_IN = "checked_in"
    NO_SHOW = "no_show"


class AuthorizationStatus(str, Enum):
    """
    Normalized state of a payment authorization.

    REQUIRES_CAPTURE and SUCCEEDED both mean the funds are held.
    PENDING covers processor states still waiting on the payer.
    """

    SUCCEEDED = "succeeded"
    REQUIRES_CAPTURE = "requires_capture"
    PENDING = "pending"
    FAILED = "failed"

    @property
    def is_held(self) -> bool:
        return self in (AuthorizationStatus.SUCCEEDED, AuthorizationStatus.REQUIRES_CAPTURE)


@dataclass(frozen=True)
class Event:
    id: str
    host_id: str
    title: str
    event_date: datetime
    deposit_amount: Decimal
    location: str | None
    status: EventStatus
    created_at: datetime


@dataclass(frozen=True)
class Attendee:
    id: str
    event_id: str
    email: str
    name: str | None
    status: AttendeeStatus
    authorization_id: str
    created_at: datetime


@dataclass(frozen=True)
class AuthorizationIntent:
    """Client-confirmable authorization returned by the payment processor."""

    authorization_id: str
    client_secret: str
    amount_minor: int
    currency: str


@dataclass(frozen=True)
class AuthorizationResult:
    """Observed state of an authorization plus the metadata it was tagged with."""

    authorization_id: str
    status: AuthorizationStatus
    metadata: Mapping[str, str]


class EventRepository(Protocol):
    """Port interface for event persistence."""

    def create_event(
        self,
        host_id: str,
        title: str,
        event_date: datetime,
        deposit_amount: Decimal,
        location: str | None,
    ) -> Event:
        """Persist a new ACTIVE event and return it."""
        ...

    def get_event(self, event_id: str) -> Event | None:
        """Return the event, or None if it does not exist."""
        ...

    def list_events(self, host_id: str) -> list[Event]:
        """Return the host's events ordered by event_date ascending."""
        ...

    def update_status(self, event_id: str, status: EventStatus) -> Event | None:
        """Set the event status. Returns None if the event does not exist."""
        ...


class AttendeeRepository(Protocol):
    """
    Port interface for attendee persistence.

    Implementations MUST enforce uniqueness of (event_id, email) themselves;
    exists() is only a fast-path check for callers.
    """

    def exists(self, event_id: str, email: str) -> bool:
        """
        Check whether a registration exists for the pair.

        Args:
            event_id: Event identifier
            email: Normalized email address

        Returns:
            True if a registration exists
        """
        ...

    def add(
        self,
        event_id: str,
        email: str,
        name: str | None,
        authorization_id: str,
    ) -> Attendee | None:
        """
        Atomically record a REGISTERED attendee.

        Args:
            event_id: Event identifier
            email: Normalized email address
            name: Attendee display name, if known
            authorization_id: Held authorization backing the registration

        Returns:
            The new Attendee, or None if (event_id, email) is already taken

        Raises:
            Any storage error other than the uniqueness conflict
        """
        ...

    def get(self, attendee_id: str) -> Attendee | None:
        """Return the attendee, or None if it does not exist."""
        ...

    def list_for_event(self, event_id: str) -> list[Attendee]:
        """Return the event's attendees, newest registration first."""
        ...

    def count_by_event(self, event_ids: Iterable[str]) -> dict[str, int]:
        """Return attendee counts keyed by event id (events with none are omitted)."""
        ...

    def update_status(
        self,
        attendee_id: str,
        expected: AttendeeStatus,
        status: AttendeeStatus,
    ) -> Attendee | None:
        """
        Change status only if the current status still equals `expected`.

        Returns:
            The updated Attendee, or None if missing or the status moved
        """
        ...


class HostRepository(Protocol):
    """Port interface for host account persistence."""

    def create_host(self, email: str, password_hash: str) -> str | None:
        """Create a host. Returns the new host id, or None if the email is taken."""
        ...

    def get_credentials(self, email: str) -> tuple[str, str] | None:
        """Return (host_id, password_hash) for the email, or None."""
        ...


class PaymentGateway(Protocol):
    """
    Port interface for the payment processor.

    All methods raise PaymentGatewayError on processor failures.
    """

    def create_authorization(
        self,
        amount_minor: int,
        currency: str,
        customer_email: str,
        metadata: Mapping[str, str],
        description: str,
    ) -> AuthorizationIntent:
        """Create a manual-capture authorization (funds held, not charged)."""
        ...

    def confirm_authorization(
        self, authorization_id: str, payment_method: str
    ) -> AuthorizationResult:
        """Confirm an authorization server-side with a payment method id."""
        ...

    def retrieve_authorization(self, authorization_id: str) -> AuthorizationResult:
        """Fetch the current state of an authorization."""
        ...


class ReconciliationReporter(Protocol):
    """Port interface for flagging held authorizations with no registration."""

    def report_orphaned_authorization(self, orphan: OrphanedAuthorization) -> None:
        ...
