# localpress/exceptions.py
"""
Exception types raised by the service layer.

Routers translate these into HTTP responses; services never build responses.
"""


class LocalPressError(Exception):
    """Base exception for all LocalPress errors."""
    pass


class ConfigurationError(LocalPressError):
    """Raised when a required setting (API key, secret, endpoint) is missing."""
    pass


class ValidationError(LocalPressError):
    """Raised when user input fails a business rule."""
    pass


class NotFoundError(LocalPressError):
    pass


class UsernameTakenError(ValidationError):
    pass


# =============================================================================
# Third-party failures
# =============================================================================

class EmailDeliveryError(LocalPressError):
    """Raised when the email API answers with a non-success status."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class PaymentError(LocalPressError):
    pass


class RelayError(LocalPressError):
    """Raised when a form submission cannot be relayed."""
    pass
