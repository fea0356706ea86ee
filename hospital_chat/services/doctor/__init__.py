"""
Doctor services.
"""

from .service import DoctorService

__all__ = ["DoctorService"]
