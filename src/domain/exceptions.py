"""
Domain exceptions - Semantic error types for events and registrations.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""

from datetime import datetime


class DomainError(Exception):
    """Base class for all domain errors."""

    pass


class RegistrationError(DomainError):
    """Base class for registration workflow errors."""

    pass


class RegistrationValidationError(RegistrationError):
    """Name or email missing or blank."""

    pass


class AlreadyRegistered(RegistrationError):
    """A registration already exists for this event and email."""

    pass


class PaymentStartFailed(RegistrationError):
    """
    Deposit authorization could not be started.

    Covers a missing event, a non-positive deposit and processor failures.
    The reason is kept for logs; callers present a single message.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConfirmationFailed(RegistrationError):
    """Authorization is not in a held state or does not belong to this attempt."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class OrphanedAuthorization(RegistrationError):
    """
    Funds are held but the registration could not be recorded.

    Carries everything a reconciliation job needs to find and release
    the authorization. The hold is never released by this code path.
    """

    def __init__(
        self,
        authorization_id: str,
        event_id: str,
        email: str,
        occurred_at: datetime,
    ) -> None:
        super().__init__(f"authorization {authorization_id} held without registration")
        self.authorization_id = authorization_id
        self.event_id = event_id
        self.email = email
        self.occurred_at = occurred_at


class InvalidTransition(RegistrationError):
    """Signal is not valid for the current registration phase."""

    pass


class EventValidationError(DomainError):
    """Event fields violate creation rules."""

    pass


class EventNotFound(DomainError):
    """Event does not exist or is not visible to the caller."""

    pass


class AttendeeNotFound(DomainError):
    """Attendee does not exist or is not visible to the caller."""

    pass


class InvalidStatusTransition(DomainError):
    """Attendance status change is not allowed."""

    pass


class HostAlreadyExists(DomainError):
    """A host account already uses this email."""

    pass


class PaymentGatewayError(DomainError):
    """Payment processor call failed."""

    pass


class HostValidationError(DomainError):
    """Host account fields violate sign-up rules."""

    pass
