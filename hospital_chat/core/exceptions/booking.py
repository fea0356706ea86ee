"""
Booking and flow exceptions.
"""

from .common import NotFoundError


class BookingNotFoundError(NotFoundError):
    """Exception raised when a booking record cannot be found."""
    pass


class FlowNotFoundError(NotFoundError):
    """Exception raised when a flow definition cannot be found."""
    pass
