# localpress/services/contact.py
import logging

import requests

from localpress import config
from localpress.exceptions import ConfigurationError, RelayError

logger = logging.getLogger("localpress.contact")


def relay_contact_form(name: str, email: str, message: str, subject: str = "") -> None:
    """Forward a contact form submission to Formspree."""
    if not config.FORMSPREE_ENDPOINT:
        raise ConfigurationError("Contact form is not configured")

    try:
        res = requests.post(
            config.FORMSPREE_ENDPOINT,
            json={"name": name, "email": email, "subject": subject, "message": message},
            headers={"Accept": "application/json"},
            timeout=config.HTTP_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error("Formspree request failed: %s", e)
        raise RelayError("Failed to send message")

    if not res.ok:
        logger.error("Formspree error: %s %s", res.status_code, res.text)
        raise RelayError("Failed to send message")
