"""
Stripe payment gateway adapter - Implements PaymentGateway protocol.

Deposits are held with manual-capture PaymentIntents: the payer's funds
are reserved but not charged. Capture and release happen outside this
service. Every Stripe error is logged and re-raised as the domain's
PaymentGatewayError; nothing here retries.
"""

import logging
from collections.abc import Mapping
from typing import Any, NoReturn

import stripe

from src.domain.exceptions import PaymentGatewayError
from src.domain.ports import AuthorizationIntent, AuthorizationResult, AuthorizationStatus

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    "requires_capture": AuthorizationStatus.REQUIRES_CAPTURE,
    "succeeded": AuthorizationStatus.SUCCEEDED,
    "processing": AuthorizationStatus.PENDING,
    "requires_action": AuthorizationStatus.PENDING,
    "requires_confirmation": AuthorizationStatus.PENDING,
    "requires_payment_method": AuthorizationStatus.FAILED,
    "canceled": AuthorizationStatus.FAILED,
}


def _metadata(intent: Any) -> dict[str, str]:
    metadata = getattr(intent, "metadata", None) or {}
    if hasattr(metadata, "to_dict"):
        metadata = metadata.to_dict()
    return {str(key): str(value) for key, value in dict(metadata).items()}


def _result(intent: Any) -> AuthorizationResult:
    return AuthorizationResult(
        authorization_id=intent.id,
        status=_STATUS_MAP.get(intent.status, AuthorizationStatus.FAILED),
        metadata=_metadata(intent),
    )


class StripePaymentGateway:
    """
    Implements PaymentGateway protocol via the Stripe API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The secret key is passed per request rather than set on the module.
    """

    def __init__(self, secret_key: str) -> None:
        self._api_key = secret_key

    def create_authorization(
        self,
        amount_minor: int,
        currency: str,
        customer_email: str,
        metadata: Mapping[str, str],
        description: str,
    ) -> AuthorizationIntent:
        """
        Create a manual-capture PaymentIntent for the deposit.

        Reuses the Stripe customer with this email if one exists,
        otherwise creates one.
        """
        try:
            customer_id = self._customer_for(customer_email)
            intent = stripe.PaymentIntent.create(
                amount=amount_minor,
                currency=currency.lower(),
                customer=customer_id,
                capture_method="manual",
                automatic_payment_methods={"enabled": True},
                metadata=dict(metadata),
                description=description,
                api_key=self._api_key,
            )
        except stripe.StripeError as e:
            self._raise_gateway_error("create_authorization", e)

        logger.info("PaymentIntent created: %s status=%s", intent.id, intent.status)
        return AuthorizationIntent(
            authorization_id=intent.id,
            client_secret=intent.client_secret,
            amount_minor=amount_minor,
            currency=currency.lower(),
        )

    def confirm_authorization(
        self, authorization_id: str, payment_method: str
    ) -> AuthorizationResult:
        try:
            intent = stripe.PaymentIntent.confirm(
                authorization_id,
                payment_method=payment_method,
                api_key=self._api_key,
            )
        except stripe.StripeError as e:
            self._raise_gateway_error("confirm_authorization", e)

        logger.info("PaymentIntent confirmed: %s status=%s", intent.id, intent.status)
        return _result(intent)

    def retrieve_authorization(self, authorization_id: str) -> AuthorizationResult:
        try:
            intent = stripe.PaymentIntent.retrieve(authorization_id, api_key=self._api_key)
        except stripe.StripeError as e:
            self._raise_gateway_error("retrieve_authorization", e)

        return _result(intent)

    def _customer_for(self, email: str) -> str:
        customers = stripe.Customer.list(email=email, limit=1, api_key=self._api_key)
        if customers.data:
            return customers.data[0].id
        return stripe.Customer.create(email=email, api_key=self._api_key).id

    @staticmethod
    def _raise_gateway_error(operation: str, error: stripe.StripeError) -> NoReturn:
        logger.error(
            "Stripe %s failed: code=%s message=%s",
            operation,
            getattr(error, "code", None),
            error,
        )
        raise PaymentGatewayError(f"{operation} failed: {error}") from error
