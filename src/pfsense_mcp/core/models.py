"""
pfSense MCP Server - Data Models

This module contains Pydantic models for configuration and validation.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_URL = "https://192.168.1.1"
DEFAULT_USERNAME = "admin"
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_MIN_WAIT = 1.0
DEFAULT_RETRY_MAX_WAIT = 10.0
DEFAULT_TIMEOUT = 30.0


class PfSenseConfig(BaseModel):
    """Configuration for pfSense connection."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(default=DEFAULT_URL, description="pfSense administration URL")
    username: str = Field(default=DEFAULT_USERNAME, description="Administration username")
    password: str = Field(..., description="Administration password", repr=False)  # Hide in logs
    verify_ssl: bool = Field(default=True, description="Whether to verify SSL certificates")
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1, description="Attempts for retryable errors")
    retry_min_wait: float = Field(default=DEFAULT_RETRY_MIN_WAIT, ge=0, description="Minimum backoff in seconds")
    retry_max_wait: float = Field(default=DEFAULT_RETRY_MAX_WAIT, ge=0, description="Maximum backoff in seconds")
    serialize_all_writes: bool = Field(
        default=True, description="Serialize every mutating operation behind one global lock"
    )
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        """Validate URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if not v:
            raise ValueError("password required")
        return v

    @model_validator(mode="after")
    def validate_retry_window(self):
        if self.retry_max_wait < self.retry_min_wait:
            raise ValueError("retry_max_wait must be greater than or equal to retry_min_wait")
        return self
