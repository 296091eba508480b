# localpress/services/payments.py
import math
import logging
from typing import Optional

import stripe

from localpress import config
from localpress.exceptions import ConfigurationError, PaymentError, ValidationError
from localpress.services import mailer

logger = logging.getLogger("localpress.payments")

PAID_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")


def format_usd(amount_cents: int) -> str:
    return f"${amount_cents / 100:,.2f}"


def validate_amount(raw) -> int:
    try:
        value = float(raw or 0)
    except OverflowError:
        # integers too large for a float
        value = math.inf if raw > 0 else -math.inf
    except (TypeError, ValueError):
        value = 0.0
    if math.isnan(value):
        value = 0.0
    # infinities fall through to the bound checks unrounded
    amount_cents = round(value) if math.isfinite(value) else value
    if amount_cents < config.MIN_AMOUNT_CENTS:
        raise ValidationError(f"Minimum amount is ${config.MIN_AMOUNT_CENTS // 100}")
    if amount_cents > config.MAX_AMOUNT_CENTS:
        raise ValidationError(f"Maximum amount is ${config.MAX_AMOUNT_CENTS // 100}")
    return amount_cents


# ------------------------------
# Checkout
# ------------------------------
def create_checkout_session(amount_cents: int, origin: str, customer_email: Optional[str] = None) -> str:
    """Create a one-time Stripe Checkout session and return its hosted URL."""
    if not config.STRIPE_SECRET_KEY:
        raise ConfigurationError("Stripe is not configured")

    params = dict(
        mode="payment",
        line_items=[
            {
                "quantity": 1,
                "price_data": {
                    "currency": "usd",
                    "unit_amount": amount_cents,
                    "product_data": {
                        "name": f"Support {config.SITE_NAME}",
                        "description": "One-time contribution to independent, neighborhood-first reporting.",
                        "images": [f"{origin}/favicon.ico"],
                    },
                },
            }
        ],
        success_url=f"{origin}/support?success=true",
        cancel_url=f"{origin}/support?canceled=true",
        allow_promotion_codes=True,
        api_key=config.STRIPE_SECRET_KEY,
    )
    if customer_email:
        params["customer_email"] = customer_email

    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        raise PaymentError(e.user_message or str(e))
    return session.url


# ------------------------------
# Webhook
# ------------------------------
def construct_event(payload: bytes, signature: str):
    """
    Verify the Stripe-Signature header and parse the event.

    Raises ValueError or stripe.SignatureVerificationError on bad input.
    """
    if not config.STRIPE_WEBHOOK_SECRET:
        raise ConfigurationError("Webhook not configured")
    return stripe.Webhook.construct_event(payload, signature, config.STRIPE_WEBHOOK_SECRET)


def _receipt_url(payment_intent) -> Optional[str]:
    if not payment_intent:
        return None
    intent_id = payment_intent if isinstance(payment_intent, str) else payment_intent.get("id")
    try:
        intent = stripe.PaymentIntent.retrieve(
            intent_id, expand=["latest_charge"], api_key=config.STRIPE_SECRET_KEY
        )
        charge = intent.get("latest_charge")
        if charge and not isinstance(charge, str):
            return charge.get("receipt_url")
    except Exception as e:
        logger.warning("Could not retrieve receipt URL: %s", e)
    return None


def handle_event(event) -> bool:
    """
    Act on a verified event. Returns True when a thank-you email was sent.

    Only fully paid checkout sessions trigger mail; everything else is
    acknowledged and ignored. Email failures are logged, never raised, so
    Stripe does not retry the delivery.
    """
    if event["type"] not in PAID_EVENTS:
        return False

    checkout = event["data"]["object"]
    if checkout.get("payment_status") != "paid":
        return False

    details = checkout.get("customer_details") or {}
    customer_email = checkout.get("customer_email") or details.get("email")
    if not customer_email:
        logger.warning("No customer email for session %s", checkout.get("id"))
        return False

    amount = format_usd(checkout.get("amount_total") or 0)
    receipt_url = _receipt_url(checkout.get("payment_intent"))

    subject, text, html_body = mailer.thank_you_email(amount, receipt_url)
    try:
        return mailer.send_email(customer_email, subject, text, html_body)
    except Exception as e:
        logger.error("Failed to send thank-you email: %s", e)
        return False
