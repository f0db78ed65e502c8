"""Stripe payment gateway adapter for coin purchases."""

import stripe

from .config import config
from .errors import InvalidInput, PaymentGatewayError
from .logging import logger

# Initialize Stripe with secret key from environment
stripe.api_key = config.STRIPE_SECRET_KEY


def to_cents(amount) -> int:
    return int(round(float(amount) * 100))


class StripeGateway:
    """Creates PaymentIntents; confirmation arrives later as an external event."""

    def __init__(self, currency: str = None):
        self.currency = (currency or config.PAYMENT_CURRENCY).lower()

    def create_payment_intent(self, amount, correlation_id: str, email: str, coins: int) -> dict:
        """Create a Stripe PaymentIntent for a coin purchase.

        The purchaser and the number of coins bought are fixed in the
        intent's metadata, so a later confirmation cannot change them.

        Args:
            amount: Amount in the major currency unit (e.g. dollars)
            correlation_id: Identifier echoed back in the confirmation event
            email: Purchasing user's email
            coins: Coins credited once the payment succeeds

        Returns:
            dict: {'clientSecret': ..., 'paymentIntentId': ...}

        Raises:
            PaymentGatewayError: If the Stripe API fails
        """
        amount_cents = to_cents(amount)
        if amount_cents <= 0:
            raise InvalidInput("Amount must be positive")

        try:
            payment_intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=self.currency,
                payment_method_types=['card'],
                metadata={
                    'correlation_id': correlation_id,
                    'email': email,
                    'coins': str(coins),
                }
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating payment intent for {email}: {e}")
            raise PaymentGatewayError("Payment gateway unavailable") from e

        return {
            'clientSecret': payment_intent.client_secret,
            'paymentIntentId': payment_intent.id,
        }

    def verify_payment(self, payment_intent_id: str, amount) -> dict:
        """Check that a PaymentIntent succeeded for the expected amount.

        Returns:
            dict: the intent's metadata (correlation_id, email, coins)

        Raises:
            InvalidInput: The intent did not succeed or the amount differs
            PaymentGatewayError: If the Stripe API fails
        """
        try:
            payment_intent = stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe error retrieving {payment_intent_id}: {e}")
            raise PaymentGatewayError("Payment gateway unavailable") from e

        if payment_intent.status != 'succeeded':
            raise InvalidInput(f"Payment {payment_intent_id} has status {payment_intent.status}")
        if payment_intent.amount != to_cents(amount):
            raise InvalidInput(f"Payment {payment_intent_id} amount does not match")
        return dict(payment_intent.metadata or {})
