# localpress/services/mailer.py
import html
import logging
from typing import Optional

import requests

from localpress import config
from localpress.exceptions import EmailDeliveryError

logger = logging.getLogger("localpress.mailer")


def _links() -> dict:
    return {
        "site": config.SITE_URL,
        "tos": f"{config.SITE_URL}/terms-of-service",
        "privacy": f"{config.SITE_URL}/privacy-policy",
        "contact": f"{config.SITE_URL}/contact",
        "subscribe": f"{config.SITE_URL}/subscribe",
    }


def _wrap(title: str, body_html: str) -> str:
    links = _links()
    name = html.escape(config.SITE_NAME)
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{html.escape(title)}</title>
</head>
<body style="margin:0; padding:0; font-family: 'Red Hat Display', system-ui, sans-serif; background-color: #e8e8e8;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color: #e8e8e8;">
    <tr>
      <td align="center" style="padding: 24px 20px 32px;">
        <h1 style="margin: 0; font-size: 28px; font-weight: 700; color: #000000;">{name}</h1>
      </td>
    </tr>
    <tr>
      <td align="center" style="padding: 0 20px 40px;">
        <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width: 640px; background: #ffffff; border: 1px solid #d0d0d0;">
          <tr>
            <td style="padding: 40px 48px 32px;">
              <h2 style="margin: 0 0 20px; font-size: 24px; font-weight: 700; color: #000000;">{html.escape(title)}</h2>
              {body_html}
              <p style="margin: 0; font-size: 15px; color: #333333;">The {name} team</p>
            </td>
          </tr>
        </table>
        <p style="margin: 24px 0 0; font-size: 13px; color: #666666; text-align: center;">
          <a href="{links['site']}" style="color: #000000;">{name}</a>
          &nbsp;|&nbsp;
          <a href="{links['tos']}" style="color: #000000;">Terms of Service</a>
          &nbsp;|&nbsp;
          <a href="{links['privacy']}" style="color: #000000;">Privacy Policy</a>
        </p>
      </td>
    </tr>
  </table>
</body>
</html>"""


def _p(text: str) -> str:
    return f'<p style="margin: 0 0 16px; font-size: 16px; line-height: 1.65; color: #1a1a1a;">{text}</p>'


# ------------------------------
# Templates
# ------------------------------
def welcome_email() -> tuple:
    subject = f"Thank you for Subscribing! - {config.SITE_NAME}"
    title = f"Welcome to the {config.SITE_NAME} Newsletter"
    lead = (
        "You're part of a group that gets the news first. As a subscriber, you'll be among the "
        "first to know when new articles publish, with access to premium stories and exclusive "
        "neighborhood coverage."
    )
    weekly = "We'll send you our weekly briefing and timely updates. No spam, just what matters to you and your community."
    links = _links()
    text = (
        f"{title}.\n\n{lead}\n\n{weekly}\n\nThe {config.SITE_NAME} team\n\n"
        f"{config.SITE_NAME}: {links['site']}\nTerms of Service: {links['tos']}\nPrivacy Policy: {links['privacy']}"
    )
    body = _p(f"<strong>{html.escape(lead)}</strong>") + _p(html.escape(weekly))
    return subject, text, _wrap(title, body)


def departure_email() -> tuple:
    subject = f"We're sorry to see you go - {config.SITE_NAME}"
    title = "We're sorry to see you go"
    links = _links()
    line = f"You've been unsubscribed from the {config.SITE_NAME} newsletter."
    text = (
        f"{title}.\n\n{line} If you change your mind, you can resubscribe at {links['subscribe']}.\n\n"
        f"The {config.SITE_NAME} team"
    )
    body = _p(html.escape(line)) + _p(
        f'We hope to see you again soon. You can always resubscribe at <a href="{links["subscribe"]}">{links["subscribe"]}</a>.'
    )
    return subject, text, _wrap(title, body)


def thank_you_email(amount: str, receipt_url: Optional[str]) -> tuple:
    subject = f"Thank you for supporting {config.SITE_NAME}"
    title = "Thank you for your contribution"
    links = _links()
    if receipt_url:
        receipt_html = _p(f'<a href="{html.escape(receipt_url)}">View your receipt</a>')
        receipt_text = f"View your receipt: {receipt_url}\n\n"
    else:
        receipt_html = _p("A receipt for your payment has been sent by our payment processor.")
        receipt_text = ""
    text = (
        f"Thank you for your contribution to {config.SITE_NAME}.\n\nAmount: {amount}\n\n{receipt_text}"
        f"The {config.SITE_NAME} team\n\n{config.SITE_NAME}: {links['site']}\n"
        f"Terms of Service: {links['tos']}\nPrivacy Policy: {links['privacy']}\nContact Us: {links['contact']}"
    )
    body = (
        _p("Your support helps us keep independent, neighborhood-first reporting going.")
        + _p(f"Amount contributed: <strong>{html.escape(amount)}</strong>")
        + receipt_html
    )
    return subject, text, _wrap(title, body)


# ------------------------------
# Delivery
# ------------------------------
def send_email(to_email: str, subject: str, text: str, html_body: str) -> bool:
    """
    Send one message through the SendGrid v3 API.

    Returns False without sending when no API key is configured. Raises
    EmailDeliveryError when SendGrid answers with a non-2xx status.
    """
    if not config.SENDGRID_API_KEY:
        logger.warning("SENDGRID_API_KEY not set; skipping email %r", subject)
        return False

    payload = {
        "personalizations": [{"to": [{"email": to_email.strip()}], "subject": subject}],
        "from": {"email": config.SENDGRID_FROM_EMAIL, "name": config.SENDGRID_FROM_NAME},
        "content": [
            {"type": "text/plain", "value": text},
            {"type": "text/html", "value": html_body},
        ],
    }
    try:
        res = requests.post(
            config.SENDGRID_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {config.SENDGRID_API_KEY}"},
            timeout=config.HTTP_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error("SendGrid request failed: %s", e)
        raise EmailDeliveryError(f"SendGrid request failed: {e}")
    if not res.ok:
        logger.error("SendGrid error: %s %s", res.status_code, res.text)
        raise EmailDeliveryError(f"SendGrid returned {res.status_code}", status_code=res.status_code)
    return True
