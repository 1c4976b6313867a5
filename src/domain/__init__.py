"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for deposit-backed event
registration. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .events import EventService, EventSummary
from .exceptions import (
    AlreadyRegistered,
    AttendeeNotFound,
    ConfirmationFailed,
    DomainError,
    EventNotFound,
    EventValidationError,
    HostAlreadyExists,
    HostValidationError,
    InvalidStatusTransition,
    InvalidTransition,
    OrphanedAuthorization,
    PaymentGatewayError,
    PaymentStartFailed,
    RegistrationError,
    RegistrationValidationError,
)
from .hosts import HostService
from .ports import (
    Attendee,
    AttendeeRepository,
    AttendeeStatus,
    AuthorizationIntent,
    AuthorizationResult,
    AuthorizationStatus,
    Event,
    EventRepository,
    EventStatus,
    HostRepository,
    PaymentGateway,
    ReconciliationReporter,
)
from .registration import RegistrationService, normalize_email, to_minor_units
from .workflow import Phase, RegistrationAttempt

__all__ = [
    "AlreadyRegistered",
    "Attendee",
    "AttendeeNotFound",
    "AttendeeRepository",
    "AttendeeStatus",
    "AuthorizationIntent",
    "AuthorizationResult",
    "AuthorizationStatus",
    "ConfirmationFailed",
    "DomainError",
    "Event",
    "EventNotFound",
    "EventRepository",
    "EventService",
    "EventStatus",
    "EventSummary",
    "EventValidationError",
    "HostAlreadyExists",
    "HostValidationError",
    "HostRepository",
    "HostService",
    "InvalidStatusTransition",
    "InvalidTransition",
    "OrphanedAuthorization",
    "PaymentGateway",
    "PaymentGatewayError",
    "PaymentStartFailed",
    "Phase",
    "ReconciliationReporter",
    "RegistrationAttempt",
    "RegistrationError",
    "RegistrationService",
    "RegistrationValidationError",
    "normalize_email",
    "to_minor_units",
]
