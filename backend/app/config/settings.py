"""
Application configuration and settings.

This module uses pydantic-settings for configuration management with environment variables.
Loads .env files from both root and backend directories before the settings are read.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from config.env_loader import load_env

load_env()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = "Support Chat API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # API server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # LLM settings (any OpenAI-compatible provider)
    llm_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    llm_base_url: Optional[str] = None
    ai_classification_enabled: bool = True
    ai_blend_threshold: float = 0.7  # Formatted responses below this confidence get an AI reply

    # Conversation memory
    context_ttl_seconds: int = 480

    # Shopify settings
    shopify_store_domain: Optional[str] = None
    shopify_access_token: Optional[str] = None
    shopify_api_version: str = "2024-01"
    product_listing_limit: int = 6

    # Kustomer settings
    kustomer_subdomain: Optional[str] = None
    kustomer_api_key: Optional[str] = None

    # Escalation policy
    escalate_on_negative_sentiment: bool = False

    # Outbound HTTP
    http_timeout_seconds: float = 10.0

    # CORS settings
    allow_origins: list = ["*"]
    allow_credentials: bool = True
    allow_methods: list = ["*"]
    allow_headers: list = ["*"]

    @property
    def shopify_configured(self) -> bool:
        return bool(self.shopify_store_domain and self.shopify_access_token)

    @property
    def kustomer_configured(self) -> bool:
        return bool(self.kustomer_subdomain and self.kustomer_api_key)


# Global settings instance
settings = Settings()
