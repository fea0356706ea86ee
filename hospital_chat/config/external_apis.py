"""
External API configuration.
"""

from typing import Optional
from pydantic import BaseModel

from .settings import Settings


class WhatsAppConfig(BaseModel):
    """WhatsApp Cloud API configuration settings."""

    access_token: Optional[str] = None
    phone_number_id: Optional[str] = None
    api_version: str = "v22.0"
    api_base: str = "https://graph.facebook.com"
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "WhatsAppConfig":
        return cls(
            access_token=settings.whatsapp_access_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            api_version=settings.whatsapp_api_version,
            api_base=settings.whatsapp_api_base,
            timeout=settings.whatsapp_timeout,
        )

    def is_configured(self) -> bool:
        """Check if WhatsApp API credentials are present."""
        return bool(self.access_token and self.phone_number_id)

    def get_messages_url(self) -> Optional[str]:
        """Get the Graph API messages URL if configured."""
        if not self.is_configured():
            return None
        return f"{self.api_base}/{self.api_version}/{self.phone_number_id}/messages"

    def auth_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
