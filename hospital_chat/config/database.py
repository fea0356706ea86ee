"""
Document store configuration.
"""

from pydantic import BaseModel

from .settings import Settings


class DatabaseConfig(BaseModel):
    """Document store configuration settings."""

    backend: str = "memory"
    path: str = "hospital_store.db"

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseConfig":
        return cls(backend=settings.store_backend, path=settings.store_path)

    def is_persistent(self) -> bool:
        """Whether documents survive a process restart."""
        return self.backend == "sqlite"
