"""
Errors shared across the service layer and the REST boundary.
"""

from typing import Iterable, List


class HospitalChatError(Exception):
    """Base exception for the hospital chat backend."""
    pass


class ValidationFailed(HospitalChatError):
    """Raised when a request is missing required fields."""

    def __init__(self, missing: Iterable[str], message: str = "Missing required fields"):
        self.missing: List[str] = list(missing)
        self.message = message
        super().__init__(f"{message}: {', '.join(self.missing)}")


class NotFoundError(HospitalChatError):
    """Raised when a referenced entity does not exist."""
    pass


class ConflictError(HospitalChatError):
    """Raised when an entity with the same identity already exists."""

    def __init__(self, message: str, existing: dict = None):
        self.existing = existing
        super().__init__(message)


class StoreError(HospitalChatError):
    """Raised when the document store cannot complete an operation."""
    pass
