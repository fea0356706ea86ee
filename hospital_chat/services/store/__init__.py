"""
Document store backends.
"""

from .base import DocumentStore, CollectionRef, Query, Document
from .memory import InMemoryDocumentStore
from .sqlite import SQLiteDocumentStore
from ...config import DatabaseConfig


class Collections:
    """Logical collection names."""

    PATIENTS = "patients"
    DOCTORS = "doctors"
    BOOKINGS = "bookings"
    PENDING_BOOKINGS = "pendingBookings"
    FLOWS = "flows"
    FLOW_RESPONSES = "flowResponses"
    FLOW_TRACKINGS = "flowTrackings"
    MESSAGES = "messages"
    PATIENT_AUDITS = "patientAudits"
    WEBHOOK_MESSAGES = "webhookMessages"
    MEDICATIONS = "medications"
    LABS = "labs"


def create_store(config: DatabaseConfig) -> DocumentStore:
    """Build the configured store backend."""
    if config.backend == "sqlite":
        return SQLiteDocumentStore(config.path)
    return InMemoryDocumentStore()


__all__ = [
    "DocumentStore",
    "CollectionRef",
    "Query",
    "Document",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "Collections",
    "create_store",
]
