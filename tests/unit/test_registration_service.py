"""
Unit tests for RegistrationService domain logic.

Tests domain logic with mocked ports to verify:
- Email normalization before the duplicate check and the write
- Duplicate-check gate blocks intent creation
- Deposit conversion to minor units
- Authorization intent creation and its failure modes
- Confirmation verification before any attendee write
- Commit conflicts and orphaned authorizations
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock

import pytest

from src.domain import workflow
from src.domain.exceptions import (
    AlreadyRegistered,
    ConfirmationFailed,
    OrphanedAuthorization,
    PaymentGatewayError,
    PaymentStartFailed,
    RegistrationValidationError,
)
from src.domain.ports import (
    Attendee,
    AttendeeStatus,
    AuthorizationIntent,
    AuthorizationResult,
    AuthorizationStatus,
    Event,
    EventStatus,
)
from src.domain.registration import RegistrationService, normalize_email, to_minor_units
from src.domain.workflow import Action, Phase, Signal, Step

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_event(deposit: str = "25.00", event_id: str = "evt-1") -> Event:
    return Event(
        id=event_id,
        host_id="host-1",
        title="Birthday dinner",
        event_date=NOW,
        deposit_amount=Decimal(deposit),
        location=None,
        status=EventStatus.ACTIVE,
        created_at=NOW,
    )


def make_attendee(email: str = "a@x.com", authorization_id: str = "pi_1") -> Attendee:
    return Attendee(
        id="att-1",
        event_id="evt-1",
        email=email,
        name="Ana",
        status=AttendeeStatus.REGISTERED,
        authorization_id=authorization_id,
        created_at=NOW,
    )


def held(
    authorization_id: str = "pi_1",
    event_id: str = "evt-1",
    email: str = "a@x.com",
    status: AuthorizationStatus = AuthorizationStatus.REQUIRES_CAPTURE,
) -> AuthorizationResult:
    return AuthorizationResult(
        authorization_id=authorization_id,
        status=status,
        metadata={"event_id": event_id, "user_email": email, "attendee_name": "Ana"},
    )


def make_service(
    event: Event | None = None,
    exists: bool = False,
) -> tuple[RegistrationService, Mock, Mock, Mock, Mock]:
    events = Mock()
    events.get_event.return_value = event if event is not None else make_event()
    attendees = Mock()
    attendees.exists.return_value = exists
    attendees.add.return_value = make_attendee()
    payments = Mock()
    payments.create_authorization.return_value = AuthorizationIntent(
        authorization_id="pi_1",
        client_secret="pi_1_secret",
        amount_minor=2500,
        currency="eur",
    )
    payments.retrieve_authorization.return_value = held()
    reporter = Mock()
    service = RegistrationService(
        events=events,
        attendees=attendees,
        payments=payments,
        reporter=reporter,
        currency="eur",
    )
    return service, events, attendees, payments, reporter


class TestEmailNormalization:
    """Tests for email normalization."""

    def test_normalize_email_strips_and_lowercases(self) -> None:
        assert normalize_email("  User@Example.COM  ") == "user@example.com"

    def test_duplicate_check_uses_normalized_email(self) -> None:
        """The pre-check sees the same normalized email the write will use."""
        service, _, attendees, _, _ = make_service()

        service.start("evt-1", "Ana", "  A@X.COM ")

        attendees.exists.assert_called_once_with("evt-1", "a@x.com")

    def test_commit_uses_normalized_email(self) -> None:
        service, _, attendees, _, _ = make_service()

        service.complete("evt-1", " A@x.com", "pi_1")

        attendees.add.assert_called_once_with("evt-1", "a@x.com", "Ana", "pi_1")


class TestMinorUnits:
    """Tests for deposit conversion to processor minor units."""

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (Decimal("12.50"), 1250),
            (Decimal("25.00"), 2500),
            (Decimal("0.30"), 30),
            (Decimal("19.99"), 1999),
            (Decimal("0.01"), 1),
            (Decimal("0"), 0),
        ],
    )
    def test_decimal_amounts_convert_exactly(self, amount: Decimal, expected: int) -> None:
        assert to_minor_units(amount) == expected

    def test_float_drift_does_not_leak(self) -> None:
        """0.1 + 0.2 style binary drift must not change the cents value."""
        assert to_minor_units(0.1 + 0.2) == 30
        assert to_minor_units(1.005) == 101

    def test_repeated_conversion_is_stable(self) -> None:
        results = {to_minor_units(Decimal("33.33")) for _ in range(100)}
        assert results == {3333}

    def test_string_amount(self) -> None:
        assert to_minor_units("7.5") == 750


class TestStartValidation:
    """Validation errors are raised before any external call."""

    @pytest.mark.parametrize(("name", "email"), [("", "a@x.com"), ("Ana", "   "), ("  ", "")])
    def test_blank_fields_rejected(self, name: str, email: str) -> None:
        service, events, attendees, payments, _ = make_service()

        with pytest.raises(RegistrationValidationError):
            service.start("evt-1", name, email)

        attendees.exists.assert_not_called()
        events.get_event.assert_not_called()
        payments.create_authorization.assert_not_called()


class TestDuplicateCheckGate:
    """Tests for the duplicate-check gate."""

    def test_existing_registration_raises_already_registered(self) -> None:
        service, _, _, _, _ = make_service(exists=True)

        with pytest.raises(AlreadyRegistered) as exc_info:
            service.start("evt-1", "Ana", "A@X.com")

        assert "a@x.com" in str(exc_info.value)

    def test_existing_registration_creates_no_authorization(self) -> None:
        service, events, _, payments, _ = make_service(exists=True)

        with pytest.raises(AlreadyRegistered):
            service.start("evt-1", "Ana", "a@x.com")

        payments.create_authorization.assert_not_called()
        events.get_event.assert_not_called()


class TestAuthorizationIntentCreation:
    """Tests for starting the deposit authorization."""

    def test_start_returns_attempt_awaiting_confirmation(self) -> None:
        service, _, _, _, _ = make_service()

        attempt = service.start("evt-1", " Ana ", "a@x.com")

        assert attempt.phase == Phase.AWAITING_CONFIRMATION
        assert attempt.authorization_id == "pi_1"
        assert attempt.client_secret == "pi_1_secret"
        assert attempt.amount_minor == 2500
        assert attempt.currency == "eur"
        assert attempt.name == "Ana"

    def test_authorization_requested_for_deposit_in_minor_units(self) -> None:
        service, _, _, payments, _ = make_service(event=make_event("12.50"))

        service.start("evt-1", "Ana", "a@x.com")

        kwargs = payments.create_authorization.call_args.kwargs
        assert kwargs["amount_minor"] == 1250
        assert kwargs["currency"] == "eur"
        assert kwargs["customer_email"] == "a@x.com"

    def test_authorization_tagged_with_event_and_email(self) -> None:
        service, _, _, payments, _ = make_service()

        service.start("evt-1", "Ana", "A@x.com")

        kwargs = payments.create_authorization.call_args.kwargs
        assert kwargs["metadata"] == {
            "event_id": "evt-1",
            "event_title": "Birthday dinner",
            "user_email": "a@x.com",
            "attendee_name": "Ana",
        }
        assert "Birthday dinner" in kwargs["description"]

    def test_missing_event_fails_to_start(self) -> None:
        service, events, _, payments, _ = make_service()
        events.get_event.return_value = None

        with pytest.raises(PaymentStartFailed) as exc_info:
            service.start("evt-404", "Ana", "a@x.com")

        assert exc_info.value.reason == "event_not_found"
        payments.create_authorization.assert_not_called()

    @pytest.mark.parametrize("deposit", ["0", "0.00", "0.004"])
    def test_non_positive_deposit_fails_to_start(self, deposit: str) -> None:
        service, _, _, payments, _ = make_service(event=make_event(deposit))

        with pytest.raises(PaymentStartFailed) as exc_info:
            service.start("evt-1", "Ana", "a@x.com")

        assert exc_info.value.reason == "invalid_deposit"
        payments.create_authorization.assert_not_called()

    def test_processor_error_fails_to_start(self) -> None:
        service, _, attendees, payments, _ = make_service()
        payments.create_authorization.side_effect = PaymentGatewayError("card network down")

        with pytest.raises(PaymentStartFailed) as exc_info:
            service.start("evt-1", "Ana", "a@x.com")

        assert exc_info.value.reason == "processor_error"
        attendees.add.assert_not_called()

    def test_concurrent_starts_are_not_deduplicated(self) -> None:
        """Two starts before either commits create two independent authorizations."""
        service, _, _, payments, _ = make_service()

        service.start("evt-1", "Ana", "a@x.com")
        service.start("evt-1", "Ana", "a@x.com")

        assert payments.create_authorization.call_count == 2


class TestConfirmationHandoff:
    """No attendee is written unless the processor reports funds held."""

    @pytest.mark.parametrize(
        "status", [AuthorizationStatus.PENDING, AuthorizationStatus.FAILED]
    )
    def test_unheld_authorization_is_rejected(self, status: AuthorizationStatus) -> None:
        service, _, attendees, payments, _ = make_service()
        payments.retrieve_authorization.return_value = held(status=status)

        with pytest.raises(ConfirmationFailed):
            service.complete("evt-1", "a@x.com", "pi_1")

        attendees.add.assert_not_called()

    @pytest.mark.parametrize(
        "status", [AuthorizationStatus.REQUIRES_CAPTURE, AuthorizationStatus.SUCCEEDED]
    )
    def test_held_authorization_commits(self, status: AuthorizationStatus) -> None:
        service, _, attendees, payments, _ = make_service()
        payments.retrieve_authorization.return_value = held(status=status)

        attendee = service.complete("evt-1", "a@x.com", "pi_1")

        assert attendee.status == AttendeeStatus.REGISTERED
        attendees.add.assert_called_once()

    def test_authorization_for_other_event_is_rejected(self) -> None:
        service, _, attendees, payments, _ = make_service()
        payments.retrieve_authorization.return_value = held(event_id="evt-2")

        with pytest.raises(ConfirmationFailed) as exc_info:
            service.complete("evt-1", "a@x.com", "pi_1")

        assert exc_info.value.reason == "event_mismatch"
        attendees.add.assert_not_called()

    def test_authorization_for_other_email_is_rejected(self) -> None:
        service, _, attendees, payments, _ = make_service()
        payments.retrieve_authorization.return_value = held(email="b@x.com")

        with pytest.raises(ConfirmationFailed) as exc_info:
            service.complete("evt-1", "a@x.com", "pi_1")

        assert exc_info.value.reason == "email_mismatch"
        attendees.add.assert_not_called()

    def test_processor_error_during_lookup(self) -> None:
        service, _, attendees, payments, _ = make_service()
        payments.retrieve_authorization.side_effect = PaymentGatewayError("timeout")

        with pytest.raises(ConfirmationFailed):
            service.complete("evt-1", "a@x.com", "pi_1")

        attendees.add.assert_not_called()

    def test_payment_method_confirms_server_side(self) -> None:
        service, _, _, payments, _ = make_service()
        payments.confirm_authorization.return_value = held()

        service.complete("evt-1", "a@x.com", "pi_1", payment_method="pm_card_visa")

        payments.confirm_authorization.assert_called_once_with("pi_1", "pm_card_visa")
        payments.retrieve_authorization.assert_not_called()

    def test_blank_authorization_rejected(self) -> None:
        service, _, _, payments, _ = make_service()

        with pytest.raises(RegistrationValidationError):
            service.complete("evt-1", "a@x.com", "")

        payments.retrieve_authorization.assert_not_called()


class TestPostConfirmationCommit:
    """Tests for the attendee write after a held authorization."""

    def test_commit_records_authorization_and_name(self) -> None:
        service, _, attendees, _, _ = make_service()

        service.complete("evt-1", "a@x.com", "pi_1")

        attendees.add.assert_called_once_with("evt-1", "a@x.com", "Ana", "pi_1")

    def test_store_conflict_reported_as_duplicate(self, caplog: pytest.LogCaptureFixture) -> None:
        """A lost race at the store is a duplicate, not an unexpected error."""
        service, _, attendees, _, reporter = make_service()
        attendees.add.return_value = None

        with caplog.at_level(logging.WARNING), pytest.raises(AlreadyRegistered):
            service.complete("evt-1", "a@x.com", "pi_1")

        reporter.report_orphaned_authorization.assert_not_called()
        assert "[DUPLICATE_COMMIT]" in caplog.text
        assert "pi_1" in caplog.text

    def test_store_failure_raises_orphaned_authorization(self) -> None:
        service, _, attendees, _, _ = make_service()
        attendees.add.side_effect = RuntimeError("connection reset")

        with pytest.raises(OrphanedAuthorization) as exc_info:
            service.complete("evt-1", "A@x.com", "pi_1")

        orphan = exc_info.value
        assert orphan.authorization_id == "pi_1"
        assert orphan.event_id == "evt-1"
        assert orphan.email == "a@x.com"
        assert orphan.occurred_at.tzinfo is not None
        assert isinstance(orphan.__cause__, RuntimeError)

    def test_orphan_is_distinct_from_ordinary_failures(self) -> None:
        assert not issubclass(OrphanedAuthorization, ConfirmationFailed)
        assert not issubclass(OrphanedAuthorization, PaymentStartFailed)
        assert not issubclass(OrphanedAuthorization, AlreadyRegistered)

    def test_store_failure_is_reported_for_reconciliation(self) -> None:
        service, _, attendees, _, reporter = make_service()
        attendees.add.side_effect = RuntimeError("connection reset")

        with pytest.raises(OrphanedAuthorization) as exc_info:
            service.complete("evt-1", "a@x.com", "pi_1")

        reporter.report_orphaned_authorization.assert_called_once_with(exc_info.value)

    def test_store_failure_does_not_release_authorization(self) -> None:
        """The held authorization is left for reconciliation, not released here."""
        service, _, attendees, payments, _ = make_service()
        attendees.add.side_effect = RuntimeError("connection reset")

        with pytest.raises(OrphanedAuthorization):
            service.complete("evt-1", "a@x.com", "pi_1")

        called = {name for name, _, _ in payments.mock_calls}
        assert called == {"retrieve_authorization"}

    def test_reporter_failure_still_raises_orphan(self, caplog: pytest.LogCaptureFixture) -> None:
        service, _, attendees, _, reporter = make_service()
        attendees.add.side_effect = RuntimeError("connection reset")
        reporter.report_orphaned_authorization.side_effect = RuntimeError("log sink down")

        with caplog.at_level(logging.ERROR), pytest.raises(OrphanedAuthorization):
            service.complete("evt-1", "a@x.com", "pi_1")

        assert "[ORPHANED_AUTHORIZATION]" in caplog.text


class TestPhaseMachineDrivesWorkflow:
    """The service makes the external call named by the transition table, and only that."""

    def test_no_intent_unless_table_says_create_intent(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setitem(
            workflow._TRANSITIONS,
            (Phase.STARTED, Signal.NOT_REGISTERED),
            Step(Phase.DUPLICATE, Action.NONE),
        )
        service, _, _, payments, _ = make_service()

        with pytest.raises(AlreadyRegistered):
            service.start("evt-1", "Ana", "a@x.com")

        payments.create_authorization.assert_not_called()

    def test_no_commit_unless_table_says_commit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(
            workflow._TRANSITIONS,
            (Phase.AWAITING_CONFIRMATION, Signal.CONFIRMED),
            Step(Phase.FAILED, Action.NONE),
        )
        service, _, attendees, _, _ = make_service()

        with pytest.raises(ConfirmationFailed):
            service.complete("evt-1", "a@x.com", "pi_1")

        attendees.add.assert_not_called()
