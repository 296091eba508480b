import hashlib
import hmac
import json
import time
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from localpress import config
from localpress.exceptions import ValidationError
from localpress.services import mailer, payments

WEBHOOK_SECRET = "whsec_test"


def _signed(payload: dict, secret: str = WEBHOOK_SECRET):
    body = json.dumps(payload)
    timestamp = int(time.time())
    digest = hmac.new(secret.encode(), f"{timestamp}.{body}".encode(), hashlib.sha256).hexdigest()
    return body, f"t={timestamp},v1={digest}"


def _checkout_event(**session_fields) -> dict:
    checkout = {
        "id": "cs_test_1",
        "object": "checkout.session",
        "payment_status": "paid",
        "amount_total": 2500,
        "customer_email": None,
        "customer_details": {"email": "donor@example.com"},
        "payment_intent": None,
    }
    checkout.update(session_fields)
    return {
        "id": "evt_test_1",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": checkout},
    }


@pytest.fixture
def stripe_keys(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)


# =============================================================================
# Amounts
# =============================================================================

def test_amount_bounds():
    assert payments.validate_amount(500) == 500
    assert payments.validate_amount("2500") == 2500
    assert payments.validate_amount(100_000) == 100_000

    with pytest.raises(ValidationError, match=r"Minimum amount is \$5"):
        payments.validate_amount(499)
    with pytest.raises(ValidationError, match=r"Maximum amount is \$1000"):
        payments.validate_amount(100_001)
    with pytest.raises(ValidationError):
        payments.validate_amount("lots")


def test_non_finite_amounts_hit_the_bounds():
    with pytest.raises(ValidationError, match="Maximum"):
        payments.validate_amount(float("inf"))
    with pytest.raises(ValidationError, match="Maximum"):
        payments.validate_amount(10 ** 400)
    with pytest.raises(ValidationError, match="Minimum"):
        payments.validate_amount("-1e400")
    with pytest.raises(ValidationError, match="Minimum"):
        payments.validate_amount(float("nan"))


def test_checkout_rejects_overflowing_amount(client, stripe_keys):
    response = client.post(
        "/api/support/create-checkout-session",
        content='{"amountCents": 1e400}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Maximum amount is $1000"}


def test_format_usd():
    assert payments.format_usd(2500) == "$25.00"
    assert payments.format_usd(123456) == "$1,234.56"


# =============================================================================
# Checkout
# =============================================================================

def test_checkout_without_stripe_key(client):
    response = client.post("/api/support/create-checkout-session", json={"amountCents": 1000})

    assert response.status_code == 500
    assert response.json() == {"error": "Stripe is not configured"}


def test_checkout_rejects_small_amount(client, stripe_keys):
    response = client.post("/api/support/create-checkout-session", json={"amountCents": 100})

    assert response.status_code == 400
    assert response.json() == {"error": "Minimum amount is $5"}


def test_checkout_returns_hosted_url(client, stripe_keys):
    fake = SimpleNamespace(url="https://checkout.stripe.com/c/pay/cs_test_1")

    with patch("localpress.services.payments.stripe.checkout.Session.create", return_value=fake) as create:
        response = client.post(
            "/api/support/create-checkout-session",
            json={"amountCents": 2500, "customerEmail": " donor@example.com "},
            headers={"Origin": "https://news.example.com"},
        )

    assert response.json() == {"url": fake.url}
    kwargs = create.call_args.kwargs
    assert kwargs["mode"] == "payment"
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 2500
    assert kwargs["success_url"] == "https://news.example.com/support?success=true"
    assert kwargs["customer_email"] == "donor@example.com"


def test_checkout_surfaces_stripe_errors(client, stripe_keys):
    with patch("localpress.services.payments.stripe.checkout.Session.create", side_effect=RuntimeError("card api down")):
        response = client.post("/api/support/create-checkout-session", json={"amountCents": 2500})

    assert response.status_code == 500
    assert response.json() == {"error": "card api down"}


# =============================================================================
# Webhook
# =============================================================================

def test_webhook_not_configured(client):
    response = client.post("/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "t=1,v1=x"})

    assert response.status_code == 500
    assert response.json() == {"error": "Webhook not configured"}


def test_webhook_missing_signature(client, stripe_keys):
    response = client.post("/api/webhooks/stripe", content=b"{}")

    assert response.status_code == 400
    assert response.json() == {"error": "Missing signature"}


def test_webhook_bad_signature(client, stripe_keys):
    body, header = _signed(_checkout_event(), secret="whsec_other")

    response = client.post("/api/webhooks/stripe", content=body, headers={"stripe-signature": header})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature"}


def test_paid_checkout_sends_thank_you(client, stripe_keys, monkeypatch):
    send = MagicMock(return_value=True)
    monkeypatch.setattr(mailer, "send_email", send)
    body, header = _signed(_checkout_event())

    response = client.post("/api/webhooks/stripe", content=body, headers={"stripe-signature": header})

    assert response.json() == {"received": True}
    to_email, subject, text, html_body = send.call_args.args
    assert to_email == "donor@example.com"
    assert "Amount: $25.00" in text
    assert "$25.00" in html_body


def test_unpaid_and_other_events_are_acknowledged_quietly(client, stripe_keys, monkeypatch):
    send = MagicMock(return_value=True)
    monkeypatch.setattr(mailer, "send_email", send)

    for event in (_checkout_event(payment_status="unpaid"), dict(_checkout_event(), type="invoice.paid")):
        body, header = _signed(event)
        response = client.post("/api/webhooks/stripe", content=body, headers={"stripe-signature": header})
        assert response.json() == {"received": True}

    send.assert_not_called()


def test_email_failure_does_not_fail_webhook(client, stripe_keys, monkeypatch):
    monkeypatch.setattr(mailer, "send_email", MagicMock(side_effect=RuntimeError("sendgrid down")))
    body, header = _signed(_checkout_event(customer_email="first@example.com"))

    response = client.post("/api/webhooks/stripe", content=body, headers={"stripe-signature": header})

    assert response.status_code == 200
    assert response.json() == {"received": True}
