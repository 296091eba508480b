# localpress/routers/support.py

import logging

import stripe
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from localpress import config
from localpress.exceptions import ConfigurationError, ValidationError
from localpress.services import payments

logger = logging.getLogger("localpress.payments")

router = APIRouter()


# ------------------------------
# One-time contribution checkout
# ------------------------------
@router.post("/support/create-checkout-session")
def create_checkout_session(data: dict, request: Request):
    if not config.STRIPE_SECRET_KEY:
        return JSONResponse({"error": "Stripe is not configured"}, status_code=500)

    try:
        amount_cents = payments.validate_amount(data.get("amountCents"))
    except ValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    customer_email = data.get("customerEmail")
    if not isinstance(customer_email, str) or not customer_email.strip():
        customer_email = None
    else:
        customer_email = customer_email.strip()

    origin = request.headers.get("origin") or str(request.base_url).rstrip("/")

    try:
        url = payments.create_checkout_session(amount_cents, origin, customer_email)
    except Exception as e:
        logger.error("Stripe Checkout error: %s", e)
        return JSONResponse({"error": str(e) or "Payment setup failed"}, status_code=500)
    return {"url": url}


# ------------------------------
# Stripe webhook
# ------------------------------
@router.post("/webhooks/stripe")
async def stripe_webhook(request: Request):
    if not config.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET is not set")
        return JSONResponse({"error": "Webhook not configured"}, status_code=500)

    signature = request.headers.get("stripe-signature")
    if not signature:
        return JSONResponse({"error": "Missing signature"}, status_code=400)

    raw_body = await request.body()
    try:
        event = payments.construct_event(raw_body, signature)
    except ConfigurationError as e:
        return JSONResponse({"error": str(e)}, status_code=500)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.error("Stripe webhook signature verification failed: %s", e)
        return JSONResponse({"error": "Invalid signature"}, status_code=400)

    payments.handle_event(event)
    return {"received": True}
