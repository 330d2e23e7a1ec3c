"""Liquidsoap telnet control port configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LiquidsoapConfig(BaseSettings):
    """Connection settings for the Liquidsoap telnet server.

    Environment variables:
        RADIO_LIQUIDSOAP_HOST: Control host (default: 127.0.0.1)
        RADIO_LIQUIDSOAP_PORT: Control port (default: 1234)
    """

    model_config = SettingsConfigDict(
        env_prefix="RADIO_LIQUIDSOAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=1234, ge=1, le=65535)
    timeout_sec: float = Field(default=3.0, gt=0, le=10)
    push_command: str = Field(
        default="programs.push",
        description="Queue push verb for special programs"
    )
    max_response_bytes: int = Field(default=8192, gt=0)
