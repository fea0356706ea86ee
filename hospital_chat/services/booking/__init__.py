"""
Booking services.
"""

from .service import BookingService, select_checkin_candidates

__all__ = [
    "BookingService",
    "select_checkin_candidates",
]
