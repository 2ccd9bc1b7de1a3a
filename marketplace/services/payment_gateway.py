# marketplace/services/payment_gateway.py
import json

import stripe

from marketplace.domain.errors import PaymentGatewayError, ValidationError
from marketplace.utils.retry import gateway_retry
from marketplace.utils.settings import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _intent_dict(intent) -> dict:
    metadata = intent.get("metadata") or {}
    return {
        "id": intent["id"],
        "status": intent["status"],
        "client_secret": intent.get("client_secret"),
        "amount": intent["amount"],
        "currency": intent["currency"],
        "metadata": dict(metadata),
        "last_payment_error": intent.get("last_payment_error"),
    }


class PaymentGateway:
    """
    Thin wrapper over the Stripe SDK.
    Returns plain dicts so the services never see Stripe objects, and turns
    every Stripe failure into PaymentGatewayError.
    """

    def __init__(self, api_key: str | None = None, webhook_secret: str | None = None):
        self.api_key = api_key if api_key is not None else STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else STRIPE_WEBHOOK_SECRET

    def _check_configured(self) -> None:
        if not self.api_key:
            raise PaymentGatewayError("Payment gateway is not configured")

    @gateway_retry()
    def _create(self, amount: int, currency: str, metadata: dict):
        return stripe.PaymentIntent.create(
            amount=amount,
            currency=currency,
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
            api_key=self.api_key,
        )

    def create_intent(self, amount: int, currency: str, metadata: dict) -> dict:
        self._check_configured()
        try:
            intent = self._create(amount, currency, metadata)
        except stripe.StripeError as e:
            logger.error(f"Stripe create intent failed: {e}")
            raise PaymentGatewayError("Payment intent creation failed") from e

        logger.info(f"Stripe intent {intent['id']} created for {amount} {currency}")
        return _intent_dict(intent)

    @gateway_retry()
    def _retrieve(self, payment_id: str):
        return stripe.PaymentIntent.retrieve(payment_id, api_key=self.api_key)

    def retrieve_intent(self, payment_id: str) -> dict:
        self._check_configured()
        try:
            intent = self._retrieve(payment_id)
        except stripe.InvalidRequestError as e:
            raise ValidationError("Unknown payment") from e
        except stripe.StripeError as e:
            logger.error(f"Stripe retrieve {payment_id} failed: {e}")
            raise PaymentGatewayError("Payment lookup failed") from e
        return _intent_dict(intent)

    @gateway_retry()
    def _refund(self, payment_id: str):
        return stripe.Refund.create(payment_intent=payment_id, api_key=self.api_key)

    def refund(self, payment_id: str) -> dict:
        self._check_configured()
        try:
            refund = self._refund(payment_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe refund of {payment_id} failed: {e}")
            raise PaymentGatewayError("Refund failed") from e

        logger.info(f"Stripe refund {refund['id']} for {payment_id}: {refund['status']}")
        return {"id": refund["id"], "status": refund["status"]}

    def construct_event(self, payload: bytes, signature: str | None) -> dict:
        """Verifies the Stripe-Signature header, then returns the event as a dict."""
        if not self.webhook_secret:
            raise ValidationError("Webhook secret is not configured")
        if not signature:
            raise ValidationError("Missing webhook signature")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Rejected webhook: {e}")
            raise ValidationError("Invalid webhook signature") from e

        return json.loads(payload)
