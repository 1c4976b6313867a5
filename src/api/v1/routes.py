"""
API v1 routes.

Defines REST endpoints for hosts, events, deposit-backed registration
and attendance check-in.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import (
    get_current_host,
    get_event_service,
    get_host_service,
    get_registration_service,
)
from src.api.models import (
    AttendanceUpdateRequest,
    AttendeeResponse,
    ErrorResponse,
    EventCreateRequest,
    EventResponse,
    EventStatusUpdateRequest,
    EventSummaryResponse,
    HostSignupRequest,
    HostSignupResponse,
    PaymentConfigResponse,
    RegistrationConfirmRequest,
    RegistrationStartRequest,
    RegistrationStartResponse,
)
from src.config.settings import get_settings
from src.domain.events import EventService
from src.domain.exceptions import (
    AlreadyRegistered,
    AttendeeNotFound,
    ConfirmationFailed,
    EventNotFound,
    EventValidationError,
    HostAlreadyExists,
    HostValidationError,
    InvalidStatusTransition,
    OrphanedAuthorization,
    PaymentStartFailed,
    RegistrationValidationError,
)
from src.domain.hosts import HostService
from src.domain.ports import Attendee, Event
from src.domain.registration import RegistrationService, normalize_email

router = APIRouter(tags=["v1"])

ALREADY_REGISTERED = "Already registered for this event"
ORPHANED_DETAIL = "Deposit authorized but registration could not be recorded"


def _public_url(event_id: str) -> str:
    return f"{get_settings().public_base_url.rstrip('/')}/event/{event_id}"


def _event_response(event: Event) -> EventResponse:
    return EventResponse(
        id=event.id,
        title=event.title,
        event_date=event.event_date,
        deposit_amount=event.deposit_amount,
        location=event.location,
        status=event.status,
        public_url=_public_url(event.id),
        created_at=event.created_at,
    )


def _attendee_response(attendee: Attendee) -> AttendeeResponse:
    return AttendeeResponse(
        id=attendee.id,
        event_id=attendee.event_id,
        email=attendee.email,
        name=attendee.name,
        status=attendee.status,
        authorization_id=attendee.authorization_id,
        created_at=attendee.created_at,
    )


@router.post(
    "/hosts",
    response_model=HostSignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already has an account"},
        422: {"description": "Validation error"},
    },
    summary="Create a host account",
)
def sign_up_host(
    request_data: HostSignupRequest,
    hosts: HostService = Depends(get_host_service),
) -> HostSignupResponse:
    try:
        host_id = hosts.sign_up(request_data.email, request_data.password)
    except HostValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from None
    except HostAlreadyExists:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Sign-up failed",
        ) from None
    return HostSignupResponse(id=host_id, email=normalize_email(request_data.email))


@router.post(
    "/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        422: {"description": "Validation error"},
    },
    summary="Create an event",
    description="Create an event with a refundable deposit. "
    "The response includes the public registration link to share with guests.",
)
def create_event(
    request_data: EventCreateRequest,
    host_id: str = Depends(get_current_host),
    events: EventService = Depends(get_event_service),
) -> EventResponse:
    try:
        event = events.create_event(
            host_id=host_id,
            title=request_data.title,
            event_date=request_data.event_date,
            deposit_amount=request_data.deposit_amount,
            location=request_data.location,
        )
    except EventValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from None
    return _event_response(event)


@router.get(
    "/events",
    response_model=list[EventSummaryResponse],
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="List the host's events",
)
def list_events(
    host_id: str = Depends(get_current_host),
    events: EventService = Depends(get_event_service),
) -> list[EventSummaryResponse]:
    return [
        EventSummaryResponse(
            **_event_response(summary.event).model_dump(),
            attendee_count=summary.attendee_count,
        )
        for summary in events.list_events(host_id)
    ]


@router.get(
    "/events/{event_id}",
    response_model=EventResponse,
    responses={404: {"model": ErrorResponse, "description": "Event not found"}},
    summary="Get public event details",
)
def get_event(
    event_id: str,
    events: EventService = Depends(get_event_service),
) -> EventResponse:
    try:
        event = events.get_public_event(event_id)
    except EventNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        ) from None
    return _event_response(event)


@router.patch(
    "/events/{event_id}",
    response_model=EventResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        404: {"model": ErrorResponse, "description": "Event not found"},
    },
    summary="Change event status",
)
def update_event_status(
    event_id: str,
    request_data: EventStatusUpdateRequest,
    host_id: str = Depends(get_current_host),
    events: EventService = Depends(get_event_service),
) -> EventResponse:
    try:
        event = events.update_event_status(host_id, event_id, request_data.status)
    except EventNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        ) from None
    return _event_response(event)


@router.get(
    "/events/{event_id}/attendees",
    response_model=list[AttendeeResponse],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        404: {"model": ErrorResponse, "description": "Event not found"},
    },
    summary="List event attendees",
)
def list_attendees(
    event_id: str,
    host_id: str = Depends(get_current_host),
    events: EventService = Depends(get_event_service),
) -> list[AttendeeResponse]:
    try:
        attendees = events.list_attendees(host_id, event_id)
    except EventNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        ) from None
    return [_attendee_response(a) for a in attendees]


@router.post(
    "/events/{event_id}/registrations",
    response_model=RegistrationStartResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Could not start payment"},
        409: {"model": ErrorResponse, "description": "Already registered"},
        422: {"description": "Validation error"},
    },
    summary="Start a registration",
    description="Check for an existing registration and create the deposit "
    "authorization. Confirm it with the returned client secret, then call "
    "the confirm endpoint.",
)
def start_registration(
    event_id: str,
    request_data: RegistrationStartRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationStartResponse:
    """
    Start a deposit-backed registration.

    - **name**: Attendee name
    - **email**: Attendee email
    """
    try:
        attempt = service.start(event_id, request_data.name, request_data.email)
    except RegistrationValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from None
    except AlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=ALREADY_REGISTERED,
        ) from None
    except PaymentStartFailed:
        # Missing event, zero deposit and processor errors share one message
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not start payment",
        ) from None

    return RegistrationStartResponse(
        event_id=attempt.event_id,
        email=attempt.email,
        phase=attempt.phase,
        authorization_id=attempt.authorization_id,
        client_secret=attempt.client_secret,
        amount_minor=attempt.amount_minor,
        currency=attempt.currency,
    )


@router.post(
    "/events/{event_id}/registrations/confirm",
    response_model=AttendeeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {"model": ErrorResponse, "description": "Authorization not confirmed"},
        409: {"model": ErrorResponse, "description": "Already registered"},
        422: {"description": "Validation error"},
        500: {
            "model": ErrorResponse,
            "description": "Deposit held but registration not recorded",
        },
    },
    summary="Complete a registration",
    description="Verify that the deposit is held and record the attendee.",
)
def confirm_registration(
    event_id: str,
    request_data: RegistrationConfirmRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> AttendeeResponse:
    try:
        attendee = service.complete(
            event_id,
            request_data.email,
            request_data.authorization_id,
            payment_method=request_data.payment_method,
        )
    except RegistrationValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from None
    except ConfirmationFailed:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="Payment authorization was not confirmed",
        ) from None
    except AlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=ALREADY_REGISTERED,
        ) from None
    except OrphanedAuthorization as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=ORPHANED_DETAIL,
            headers={"X-Authorization-Id": e.authorization_id},
        ) from e
    return _attendee_response(attendee)


@router.patch(
    "/attendees/{attendee_id}",
    response_model=AttendeeResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        404: {"model": ErrorResponse, "description": "Attendee not found"},
        409: {"model": ErrorResponse, "description": "Status change not allowed"},
    },
    summary="Set attendance",
    description="Toggle an attendee between registered and checked_in.",
)
def update_attendance(
    attendee_id: str,
    request_data: AttendanceUpdateRequest,
    host_id: str = Depends(get_current_host),
    events: EventService = Depends(get_event_service),
) -> AttendeeResponse:
    try:
        attendee = events.set_attendance(host_id, attendee_id, request_data.status)
    except AttendeeNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Attendee not found",
        ) from None
    except InvalidStatusTransition as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from None
    return _attendee_response(attendee)


@router.get(
    "/payments/config",
    response_model=PaymentConfigResponse,
    summary="Get payment client configuration",
    description="Publishable key and currency for initializing the payment form.",
)
def payment_config() -> PaymentConfigResponse:
    settings = get_settings()
    return PaymentConfigResponse(
        publishable_key=settings.stripe_publishable_key,
        currency=settings.currency,
    )
