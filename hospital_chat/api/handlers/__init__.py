"""
REST handlers.
"""

from .health import HealthHandler
from .patients import PatientsHandler
from .doctors import DoctorsHandler
from .flows import FlowsHandler
from .bookings import BookingsHandler
from .prescriptions import PrescriptionsHandler

__all__ = [
    "HealthHandler",
    "PatientsHandler",
    "DoctorsHandler",
    "FlowsHandler",
    "BookingsHandler",
    "PrescriptionsHandler",
]
