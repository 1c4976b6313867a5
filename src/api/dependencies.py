"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from psycopg_pool import ConnectionPool

from src.adapters.alerts.console import ConsoleReconciliationReporter
from src.adapters.payments.stripe_gateway import StripePaymentGateway
from src.adapters.repository.memory import InMemoryStore
from src.adapters.repository.postgres import (
    PostgresAttendeeRepository,
    PostgresEventRepository,
    PostgresHostRepository,
)
from src.config.settings import get_settings
from src.domain.events import EventService
from src.domain.hosts import HostService
from src.domain.ports import (
    AttendeeRepository,
    EventRepository,
    HostRepository,
    PaymentGateway,
    ReconciliationReporter,
)
from src.domain.registration import RegistrationService

# Module-level singleton - ConsoleReconciliationReporter is stateless
_reporter = ConsoleReconciliationReporter()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_store(request: Request) -> InMemoryStore | None:
    """In-memory store from app state, set when STORAGE_BACKEND=memory."""
    return getattr(request.app.state, "store", None)


def get_event_repository(request: Request) -> EventRepository:
    store = get_store(request)
    if store is not None:
        return store.events
    return PostgresEventRepository(get_pool(request))


def get_attendee_repository(request: Request) -> AttendeeRepository:
    store = get_store(request)
    if store is not None:
        return store.attendees
    return PostgresAttendeeRepository(get_pool(request))


def get_host_repository(request: Request) -> HostRepository:
    store = get_store(request)
    if store is not None:
        return store.hosts
    return PostgresHostRepository(get_pool(request))


def get_payment_gateway() -> PaymentGateway:
    """Stripe gateway configured with the secret key from settings."""
    return StripePaymentGateway(get_settings().stripe_secret_key)


def get_reconciliation_reporter() -> ReconciliationReporter:
    """Get console reconciliation reporter (singleton)."""
    return _reporter


def get_registration_service(
    request: Request,
    payments: PaymentGateway = Depends(get_payment_gateway),
    reporter: ReconciliationReporter = Depends(get_reconciliation_reporter),
) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the event and attendee stores, the payment gateway
    and the reconciliation reporter for the domain service.
    """
    return RegistrationService(
        events=get_event_repository(request),
        attendees=get_attendee_repository(request),
        payments=payments,
        reporter=reporter,
        currency=get_settings().currency,
    )


def get_event_service(request: Request) -> EventService:
    return EventService(
        events=get_event_repository(request),
        attendees=get_attendee_repository(request),
    )


def get_host_service(request: Request) -> HostService:
    return HostService(
        repository=get_host_repository(request),
        bcrypt_cost=get_settings().bcrypt_cost,
    )


# HTTP BASIC AUTH security scheme for host endpoints
http_basic = HTTPBasic()


def get_current_host(
    credentials: HTTPBasicCredentials = Depends(http_basic),
    hosts: HostService = Depends(get_host_service),
) -> str:
    """
    Authenticate the host from the HTTP BASIC AUTH header.

    FastAPI's HTTPBasic automatically returns 401 for a missing or
    malformed Authorization header.

    Returns:
        Authenticated host id
    """
    host_id = hosts.authenticate(credentials.username, credentials.password)
    if host_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return host_id
