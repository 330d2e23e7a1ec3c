"""Configuration composition root."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .paths import PathsConfig
from .tools import ToolsConfig
from .liquidsoap import LiquidsoapConfig
from .scheduling import SchedulingConfig


class SpecialsConfig(BaseSettings):
    """Root configuration composing all domain configs."""

    model_config = SettingsConfigDict(
        env_prefix="RADIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",  # Allows RADIO_LIQUIDSOAP__PORT
        case_sensitive=False,
        extra="ignore",
    )

    paths: PathsConfig = Field(default_factory=PathsConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    liquidsoap: LiquidsoapConfig = Field(default_factory=LiquidsoapConfig)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
