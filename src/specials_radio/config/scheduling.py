"""Specials scheduling rules configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulingConfig(BaseSettings):
    """File type and time-slot rules for special broadcasts."""

    model_config = SettingsConfigDict(
        env_prefix="RADIO_SPECIALS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Listed in the specials picker
    allowed_extensions: list[str] = Field(
        default=["mp3", "wav", "flac", "ogg", "aac", "m4a"]
    )
    # ffmpeg can stream-copy these with new container tags
    writable_extensions: list[str] = Field(default=["mp3", "flac", "ogg", "m4a"])
    # Formats that get the batch ID3 repair before probing
    repair_extensions: list[str] = Field(default=["mp3"])

    slot_minutes: int = Field(default=5, ge=1, le=60)
    marker_phrase: str = Field(default="special broadcast", min_length=1)
