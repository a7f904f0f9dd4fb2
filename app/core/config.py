"""
Application configuration from environment variables.
Value-safe: no field data in defaults or logs.
"""
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


# Protocols accepted by the URL sanitizer (mirrors the host framework's list)
DEFAULT_ALLOWED_PROTOCOLS: List[str] = [
    "http",
    "https",
    "ftp",
    "ftps",
    "mailto",
    "news",
    "irc",
    "irc6",
    "ircs",
    "gopher",
    "nntp",
    "feed",
    "telnet",
    "mms",
    "rtsp",
    "sms",
    "svn",
    "tel",
    "fax",
    "xmpp",
    "webcal",
    "urn",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    service_env: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        description="Service environment"
    )

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # Authentication
    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token required on /v1/repeater routes (disabled when unset)"
    )
    admin_api_key: Optional[str] = Field(
        default=None,
        description="X-Admin-Token required on /v1/metrics (open when unset)"
    )

    # Sanitizer configuration
    allowed_url_protocols: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_PROTOCOLS),
        description="URL schemes kept by the URL sanitizer; anything else is emptied"
    )
    max_value_bytes: int = Field(
        default=1_048_576,
        ge=1024,
        le=16_777_216,
        description="Maximum size of an encoded repeater value string"
    )

    @field_validator("allowed_url_protocols", mode="after")
    @classmethod
    def normalize_protocols(cls, v: List[str]) -> List[str]:
        """Lowercase protocols and reject an empty list."""
        protocols = [p.strip().lower() for p in v if p and p.strip()]
        if not protocols:
            raise ValueError("ALLOWED_URL_PROTOCOLS must name at least one protocol")
        return protocols

    @field_validator("api_token", "admin_api_key", mode="before")
    @classmethod
    def empty_as_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
