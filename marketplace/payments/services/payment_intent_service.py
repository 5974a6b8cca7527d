"""
Payment Intent Service (Stripe)
===============================

Creates Stripe PaymentIntents for course checkout and reads them back for
payment verification before an enrollment is granted.

Behaviour
---------
- Missing, non-numeric or non-positive amounts are replaced by the
  PAYMENT_MINIMUM_AMOUNT floor, so a garbage client amount can never create a
  zero-value intent.
- Currency is fixed (DEFAULT_CURRENCY); automatic payment methods are enabled
  and redirects disabled.
- Calls are bounded by STRIPE_TIMEOUT_SECONDS and never retried here; intents
  are cheap to recreate, so retrying is the client's decision.
- Any `stripe.StripeError` (including connection timeouts) is surfaced as
  PaymentProviderError.

Dependencies
------------
- stripe (official Python SDK)

Author: Marketplace Development Team
Version: 1.0.0
"""

import logging
from typing import Any, Dict, Optional

import stripe
from django.conf import settings

from ...exceptions import PaymentProviderError

logger = logging.getLogger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY
stripe.max_network_retries = 0
stripe.default_http_client = stripe.RequestsClient(
    timeout=settings.STRIPE_TIMEOUT_SECONDS
)


class PaymentIntentService:
    """
    Thin wrapper around `stripe.PaymentIntent`.

    Args:
        api_key: Stripe secret key (defaults to settings.STRIPE_SECRET_KEY)
        currency: ISO currency code (defaults to settings.DEFAULT_CURRENCY)
        minimum_amount: Floor amount in minor units
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        currency: Optional[str] = None,
        minimum_amount: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.currency = currency or settings.DEFAULT_CURRENCY
        self.minimum_amount = (
            minimum_amount
            if minimum_amount is not None
            else settings.PAYMENT_MINIMUM_AMOUNT
        )

    def normalize_amount(self, amount: Any) -> int:
        """Return `amount` as int, or the floor amount if it is missing or <= 0."""
        if isinstance(amount, bool):
            amount = None
        try:
            value = int(amount)
        except (TypeError, ValueError):
            value = 0

        if value <= 0:
            logger.info(
                "Payment amount %r missing or not positive, using floor %s",
                amount,
                self.minimum_amount,
            )
            return self.minimum_amount
        return value

    def create_intent(
        self, amount: Any = None, metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Create a PaymentIntent and return its client secret.

        Args:
            amount: Amount in minor units; floored when missing or <= 0
            metadata: Optional Stripe metadata (e.g. user_id, course_id)

        Raises:
            PaymentProviderError: If Stripe rejects the call or times out
        """
        value = self.normalize_amount(amount)
        try:
            intent = stripe.PaymentIntent.create(
                amount=value,
                currency=self.currency,
                automatic_payment_methods={
                    "enabled": True,
                    "allow_redirects": "never",
                },
                metadata=metadata or {},
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.exception("Stripe PaymentIntent creation failed (amount=%s)", value)
            raise PaymentProviderError(
                "Could not create payment intent",
                details={"stripe_error": getattr(e, "user_message", None) or str(e)},
            ) from e

        logger.info("Created PaymentIntent %s (amount=%s %s)", intent.id, value, self.currency)
        return intent.client_secret

    def retrieve_intent(self, intent_id: str):
        """
        Fetch a PaymentIntent from Stripe.

        Raises:
            PaymentProviderError: If Stripe rejects the call or times out
        """
        try:
            return stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.exception("Stripe PaymentIntent retrieval failed (pi=%s)", intent_id)
            raise PaymentProviderError(
                "Could not verify payment with the payment provider",
                details={
                    "payment_intent": intent_id,
                    "stripe_error": getattr(e, "user_message", None) or str(e),
                },
            ) from e

    @staticmethod
    def publishable_key() -> str:
        """Publishable key matching the active Stripe mode."""
        return (
            settings.STRIPE_LIVE_PUBLISHABLE_KEY
            if settings.STRIPE_LIVE_MODE
            else settings.STRIPE_TEST_PUBLISHABLE_KEY
        )
