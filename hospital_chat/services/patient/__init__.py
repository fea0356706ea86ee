"""
Patient services.
"""

from .service import PatientService

__all__ = ["PatientService"]
