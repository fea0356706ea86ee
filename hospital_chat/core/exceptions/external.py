"""
External API-related exceptions.
"""

from .common import HospitalChatError


class ExternalAPIError(HospitalChatError):
    """Base exception for external API errors."""
    pass


class WhatsAppAPIError(ExternalAPIError):
    """Exception raised when WhatsApp API calls fail."""

    def __init__(self, message: str, status_code: int = None, code=None):
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class TransportNotConfigured(WhatsAppAPIError):
    """Exception raised when WhatsApp credentials are absent."""
    pass
