"""
Registration domain service - Deposit-backed registration workflow.

This module contains the core business logic for registering an attendee
to an event behind a refundable deposit hold.

Workflow
========

1. Duplicate-check gate: a fast-path lookup on (event, normalized email).
   It is racy by nature; the attendee store's uniqueness constraint is the
   authoritative guard.
2. Authorization-intent creation: the event's deposit is converted to minor
   units and a manual-capture authorization is requested, tagged with the
   event and email for auditing.
3. Confirmation handoff: the payer confirms the hold with the client secret
   (or the server confirms with a supplied payment method). The service
   only proceeds once the processor reports the funds as held.
4. Post-confirmation commit: the attendee row is written. This write is not
   atomic with the authorization. A storage failure here leaves a held
   authorization with no registration, which is reported as an orphan and
   left for reconciliation. It is never released automatically.

No step is retried automatically. Every failure surfaces as a domain
exception so the caller can decide whether to start a new attempt.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import (
    AlreadyRegistered,
    ConfirmationFailed,
    OrphanedAuthorization,
    PaymentGatewayError,
    PaymentStartFailed,
    RegistrationValidationError,
)
from .ports import (
    Attendee,
    AttendeeRepository,
    AuthorizationIntent,
    AuthorizationResult,
    EventRepository,
    PaymentGateway,
    ReconciliationReporter,
)
from .workflow import Action, Phase, RegistrationAttempt, Signal

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def to_minor_units(amount: Decimal | int | float | str) -> int:
    """
    Convert a currency amount to the processor's integer minor units.

    Uses Decimal arithmetic with half-up rounding so that two-decimal
    amounts convert exactly (12.50 -> 1250, 0.30 -> 30) on every call.
    Floats go through str() to avoid binary representation drift.
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class RegistrationService:
    """
    Domain service for deposit-backed event registration.

    Orchestrates the duplicate check, authorization-intent creation,
    confirmation verification and the final attendee write.
    """

    events: EventRepository
    attendees: AttendeeRepository
    payments: PaymentGateway
    reporter: ReconciliationReporter
    currency: str = "eur"

    def start(self, event_id: str, name: str, email: str) -> RegistrationAttempt:
        """
        Begin a registration: duplicate check, then create the deposit hold intent.

        Args:
            event_id: Event to register for
            name: Attendee display name
            email: Attendee email (will be normalized)

        Returns:
            RegistrationAttempt in AWAITING_CONFIRMATION carrying the client secret

        Raises:
            RegistrationValidationError: Blank name or email
            AlreadyRegistered: A registration exists for this event and email
            PaymentStartFailed: Missing event, non-positive deposit or processor error
        """
        clean_name = (name or "").strip()
        normalized_email = normalize_email(email or "")
        if not clean_name or not normalized_email:
            raise RegistrationValidationError("name and email are required")

        attempt = RegistrationAttempt(event_id=event_id, email=normalized_email, name=clean_name)

        if self.attendees.exists(event_id, normalized_email):
            attempt, action = attempt.apply(Signal.ALREADY_REGISTERED)
        else:
            attempt, action = attempt.apply(Signal.NOT_REGISTERED)

        if action is not Action.CREATE_INTENT:
            logger.info(
                "Registration blocked: event=%s email=%s phase=%s",
                event_id,
                normalized_email,
                attempt.phase.value,
            )
            raise AlreadyRegistered(normalized_email)

        try:
            intent = self._create_intent(attempt)
        except PaymentStartFailed as e:
            attempt, _ = attempt.apply(Signal.INTENT_FAILED)
            logger.warning(
                "Could not start payment: event=%s email=%s reason=%s phase=%s",
                event_id,
                normalized_email,
                e.reason,
                attempt.phase.value,
            )
            raise

        attempt, action = attempt.apply(
            Signal.INTENT_CREATED,
            authorization_id=intent.authorization_id,
            client_secret=intent.client_secret,
            amount_minor=intent.amount_minor,
            currency=intent.currency,
        )
        logger.info(
            "Authorization %s created for event=%s email=%s amount=%d %s, next=%s",
            intent.authorization_id,
            event_id,
            normalized_email,
            intent.amount_minor,
            intent.currency,
            action.value,
        )
        return attempt

    def complete(
        self,
        event_id: str,
        email: str,
        authorization_id: str,
        payment_method: str | None = None,
    ) -> Attendee:
        """
        Verify the deposit hold and record the registration.

        Args:
            event_id: Event the attempt was started for
            email: Attendee email (will be normalized)
            authorization_id: Authorization returned by start()
            payment_method: Optional payment method id to confirm server-side

        Returns:
            The new REGISTERED Attendee

        Raises:
            RegistrationValidationError: Blank email or authorization id
            ConfirmationFailed: Funds not held, or authorization belongs elsewhere
            AlreadyRegistered: The store rejected the write as a duplicate
            OrphanedAuthorization: Funds held but the write failed
        """
        normalized_email = normalize_email(email or "")
        if not normalized_email or not authorization_id:
            raise RegistrationValidationError("email and authorization are required")

        attempt = RegistrationAttempt(
            event_id=event_id,
            email=normalized_email,
            name="",
            phase=Phase.AWAITING_CONFIRMATION,
            authorization_id=authorization_id,
        )

        cause: Exception | None = None
        name = None
        try:
            if payment_method:
                result = self.payments.confirm_authorization(authorization_id, payment_method)
            else:
                result = self.payments.retrieve_authorization(authorization_id)
        except PaymentGatewayError as e:
            reason: str | None = "processor_error"
            cause = e
        else:
            reason = self._confirmation_problem(result, event_id, normalized_email)
            name = result.metadata.get("attendee_name") or None

        if reason is None:
            attempt, action = attempt.apply(Signal.CONFIRMED, name=name or "")
        else:
            attempt, action = attempt.apply(Signal.CONFIRMATION_FAILED)

        if action is not Action.COMMIT:
            logger.warning(
                "Authorization %s not accepted for event=%s email=%s: %s",
                authorization_id,
                event_id,
                normalized_email,
                reason,
            )
            raise ConfirmationFailed(reason or attempt.phase.value) from cause

        attendee = None
        try:
            attendee = self.attendees.add(event_id, normalized_email, name, authorization_id)
        except Exception as e:
            cause = e
            attempt, action = attempt.apply(Signal.COMMIT_FAILED)
        else:
            signal = Signal.COMMITTED if attendee is not None else Signal.COMMIT_CONFLICT
            attempt, action = attempt.apply(signal)

        if action is Action.REPORT_ORPHAN:
            orphan = OrphanedAuthorization(
                authorization_id=authorization_id,
                event_id=event_id,
                email=normalized_email,
                occurred_at=datetime.now(timezone.utc),
            )
            self._report_orphan(orphan)
            raise orphan from cause

        if attempt.phase is Phase.DUPLICATE:
            # Hold stays in place; reconciliation releases authorizations without attendees
            logger.warning(
                "[DUPLICATE_COMMIT] Event: %s Email: %s Authorization: %s",
                event_id,
                normalized_email,
                authorization_id,
            )
            raise AlreadyRegistered(normalized_email)

        logger.info(
            "Registered attendee %s for event=%s authorization=%s",
            attendee.id,
            event_id,
            authorization_id,
        )
        return attendee

    def _create_intent(self, attempt: RegistrationAttempt) -> AuthorizationIntent:
        event = self.events.get_event(attempt.event_id)
        if event is None:
            raise PaymentStartFailed("event_not_found")

        amount_minor = to_minor_units(event.deposit_amount)
        if amount_minor <= 0:
            raise PaymentStartFailed("invalid_deposit")

        metadata = {
            "event_id": event.id,
            "event_title": event.title,
            "user_email": attempt.email,
            "attendee_name": attempt.name,
        }
        try:
            return self.payments.create_authorization(
                amount_minor=amount_minor,
                currency=self.currency,
                customer_email=attempt.email,
                metadata=metadata,
                description=f"Deposit for event: {event.title}",
            )
        except PaymentGatewayError as e:
            raise PaymentStartFailed("processor_error") from e

    def _confirmation_problem(
        self, result: AuthorizationResult, event_id: str, email: str
    ) -> str | None:
        """Return why the authorization cannot back this registration, or None."""
        if not result.status.is_held:
            return f"status_{result.status.value}"
        if result.metadata.get("event_id") != event_id:
            return "event_mismatch"
        if result.metadata.get("user_email") != email:
            return "email_mismatch"
        return None

    def _report_orphan(self, orphan: OrphanedAuthorization) -> None:
        try:
            self.reporter.report_orphaned_authorization(orphan)
        except Exception:
            # The orphan itself is still raised to the caller
            logger.exception(
                "[ORPHANED_AUTHORIZATION] Reporter failed for authorization %s",
                orphan.authorization_id,
            )
