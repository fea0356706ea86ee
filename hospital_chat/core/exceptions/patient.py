"""
Patient and doctor exceptions.
"""

from .common import NotFoundError


class PatientNotFoundError(NotFoundError):
    """Exception raised when a patient record cannot be found."""
    pass


class DoctorNotFoundError(NotFoundError):
    """Exception raised when a doctor record cannot be found."""
    pass
