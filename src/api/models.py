"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, EmailStr, Field, field_validator

from src.domain.hosts import PASSWORD_MAX_BYTES
from src.domain.ports import AttendeeStatus, EventStatus
from src.domain.workflow import Phase


class HostSignupRequest(BaseModel):
    """Request model for host account creation."""

    email: EmailStr
    password: str = Field(..., min_length=8, description="Host password (min 8 characters)")

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode()) > PASSWORD_MAX_BYTES:
            raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes")
        return value


class HostSignupResponse(BaseModel):
    id: str
    email: str


class EventCreateRequest(BaseModel):
    """Request model for event creation."""

    title: str = Field(..., min_length=1, max_length=100)
    event_date: AwareDatetime
    deposit_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Refundable deposit held per attendee",
    )
    location: str | None = Field(default=None, max_length=200)


class EventStatusUpdateRequest(BaseModel):
    status: EventStatus


class EventResponse(BaseModel):
    """Event as shown to hosts and on the public registration page."""

    id: str
    title: str
    event_date: datetime
    deposit_amount: Decimal
    location: str | None
    status: EventStatus
    public_url: str
    created_at: datetime


class EventSummaryResponse(EventResponse):
    attendee_count: int


class RegistrationStartRequest(BaseModel):
    """Request model for starting a deposit-backed registration."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr


class RegistrationStartResponse(BaseModel):
    """
    Registration attempt awaiting payment confirmation.

    The client keeps this while the payer confirms the hold with
    client_secret, then sends email and authorization_id back.
    """

    event_id: str
    email: str
    phase: Phase
    authorization_id: str
    client_secret: str
    amount_minor: int
    currency: str


class RegistrationConfirmRequest(BaseModel):
    """Request model for completing a registration after confirmation."""

    email: EmailStr
    authorization_id: str = Field(..., min_length=1)
    payment_method: str | None = Field(
        default=None,
        description="Payment method id to confirm server-side; omit if confirmed client-side",
    )


class AttendeeResponse(BaseModel):
    id: str
    event_id: str
    email: str
    name: str | None
    status: AttendeeStatus
    authorization_id: str
    created_at: datetime


class AttendanceUpdateRequest(BaseModel):
    """Request model for the host attendance toggle."""

    status: AttendeeStatus


class PaymentConfigResponse(BaseModel):
    publishable_key: str
    currency: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
