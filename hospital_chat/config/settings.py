"""
Application settings and configuration.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Hospital Chat"
    app_version: str = "1.0.0"
    debug: bool = False

    # Document store
    store_backend: str = "memory"
    store_path: str = "hospital_store.db"

    # WhatsApp Cloud API
    whatsapp_access_token: Optional[str] = None
    whatsapp_phone_number_id: Optional[str] = None
    whatsapp_api_version: str = "v22.0"
    whatsapp_api_base: str = "https://graph.facebook.com"
    whatsapp_verify_token: Optional[str] = None
    whatsapp_timeout: float = 10.0

    # Conversation
    registration_flow_id: str = "1366099374850695"
    default_country_code: str = "91"
    checkin_window_hours: int = 6
    row_title_limit: int = 24

    # Timezone
    timezone: str = "Asia/Kolkata"

    # Logging
    log_level: str = "INFO"
    event_log_path: str = "hospital_event_log.jsonl"


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
