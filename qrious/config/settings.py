"""Application settings and configuration."""

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Environment types for deployment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # Application
    APP_NAME: str = "QRious"
    APP_VERSION: str = "1.0.0"
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # Redirect resolution
    MAX_REDIRECT_DEPTH: int = 10
    REQUEST_TIMEOUT_MS: int = 5000
    MAX_BODY_BYTES: int = 512 * 1024  # HTML scanned for client-side redirects
    USER_AGENT: str = "QRious/1.0"
    SHORTENER_DOMAINS: str = Field(
        default="",
        description="Comma-separated shortener hosts added to the built-in list"
    )

    # Threat intelligence providers - a provider is enabled only when its key is set
    GOOGLE_SAFE_BROWSING_API_KEY: Optional[SecretStr] = None
    VIRUSTOTAL_API_KEY: Optional[SecretStr] = None
    SAFE_BROWSING_TIMEOUT_MS: int = 5000
    VIRUSTOTAL_TIMEOUT_MS: int = 10000

    # Result cache
    CACHE_TTL_HOURS: float = 1
    CACHE_CLEANUP_INTERVAL_SECONDS: int = 600

    # Rate Limiting
    RATE_LIMIT_REQUESTS_PER_MINUTE: int = 100
    RATE_LIMIT_CLEANUP_INTERVAL_SECONDS: int = 300

    # HTTP surface
    ALLOWED_ORIGINS: str = "http://localhost:3000"
    MAX_REQUEST_BYTES: int = 1024 * 1024

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    @field_validator("MAX_REDIRECT_DEPTH")
    @classmethod
    def validate_max_redirect_depth(cls, v: int) -> int:
        """Keep resolution bounded."""
        if not 1 <= v <= 50:
            raise ValueError("MAX_REDIRECT_DEPTH must be between 1 and 50")
        return v

    @field_validator(
        "REQUEST_TIMEOUT_MS", "SAFE_BROWSING_TIMEOUT_MS", "VIRUSTOTAL_TIMEOUT_MS",
        "RATE_LIMIT_REQUESTS_PER_MINUTE", "MAX_BODY_BYTES"
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development."""
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    def get_shortener_domains(self) -> List[str]:
        """Extra shortener hosts from configuration, lower-cased."""
        return [d.strip().lower() for d in self.SHORTENER_DOMAINS.split(",") if d.strip()]

    def get_allowed_origins(self) -> List[str]:
        """CORS origins; development also admits the local frontend."""
        origins = [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]
        if self.is_development():
            for local in ("http://localhost:3000", "http://127.0.0.1:3000"):
                if local not in origins:
                    origins.append(local)
        return origins

    def get_safe_browsing_api_key(self) -> Optional[str]:
        """Get Google Safe Browsing API key, or None when the check is disabled."""
        if self.GOOGLE_SAFE_BROWSING_API_KEY is None:
            return None
        return self.GOOGLE_SAFE_BROWSING_API_KEY.get_secret_value() or None

    def get_virustotal_api_key(self) -> Optional[str]:
        """Get VirusTotal API key, or None when the check is disabled."""
        if self.VIRUSTOTAL_API_KEY is None:
            return None
        return self.VIRUSTOTAL_API_KEY.get_secret_value() or None

    @property
    def cache_ttl_seconds(self) -> float:
        return self.CACHE_TTL_HOURS * 3600

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore"  # Ignore extra environment variables
    }


@lru_cache()
def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
