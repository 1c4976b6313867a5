"""Payment adapters - Payment processor implementations."""

from .stripe_gateway import StripePaymentGateway

__all__ = ["StripePaymentGateway"]
