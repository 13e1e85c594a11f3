"""
Configuration management for the Agent Provisioning service
Uses Pydantic Settings for environment variable management
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Ultravox Agent Provider Configuration
    ultravox_api_key: str = Field(default=...)
    ultravox_agents_endpoint: str = Field(default="https://api.ultravox.ai/api/agents")
    ultravox_http_timeout: float = Field(default=30.0)

    # Twilio Configuration
    twilio_account_sid: str = Field(default=...)
    twilio_auth_token: str = Field(default=...)
    twilio_webhook_url: Optional[str] = Field(default=None)

    # Number search policy
    telephony_country_code: str = Field(default="US")
    telephony_search_limit: int = Field(default=1, ge=1)
    telephony_sms_enabled: bool = Field(default=True)
    telephony_voice_enabled: Optional[bool] = Field(default=None)
    telephony_area_code: Optional[int] = Field(default=None)
    telephony_contains: Optional[str] = Field(default=None)
    telephony_number_type: str = Field(default="local")

    # Database Configuration
    database_url: Optional[str] = Field(default=None)

    # Per-company provisioning leases
    lease_backend: str = Field(default="memory")
    redis_url: str = Field(default="redis://localhost:6379/0")
    provisioning_lease_ttl_seconds: float = Field(default=300.0)
    provisioning_lease_wait_seconds: float = Field(default=0.0)

    # Failure handling
    release_numbers_on_failure: bool = Field(default=True)
    release_agents_on_failure: bool = Field(default=True)
    allow_number_replacement: bool = Field(default=False)

    # Provider transport retries (idempotent calls only)
    api_max_retries: int = Field(default=3)
    api_retry_delay: float = Field(default=1.0)

    # Application Settings
    debug: bool = Field(default=True)
    log_level: str = Field(default="DEBUG")
    environment: str = Field(default="development")

    # Server Configuration
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8000)

    # CORS Settings
    allowed_origins: str = Field(default="http://localhost:3000,http://localhost:8000")

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",")]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
