"""External metadata tool configuration."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolsConfig(BaseSettings):
    """Locations and limits for ffprobe, ffmpeg and the ID3 fix script.

    Environment variables:
        RADIO_FFPROBE_BIN: ffprobe executable (default: ffprobe)
        RADIO_FFMPEG_BIN: ffmpeg executable (default: ffmpeg)
        RADIO_FIX_ID3_SCRIPT: Batch ID3 repair script taking a directory argument
    """

    model_config = SettingsConfigDict(
        env_prefix="RADIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    ffprobe_bin: str = Field(default="ffprobe")
    ffmpeg_bin: str = Field(default="ffmpeg")
    fix_id3_script: Optional[Path] = Field(default=None)

    probe_timeout_sec: float = Field(default=30.0, gt=0)
    transcode_timeout_sec: float = Field(
        default=600.0,
        gt=0,
        description="Stream-copy rewrite timeout (prevents hangs on malformed files)"
    )
    repair_timeout_sec: float = Field(default=300.0, gt=0)
    error_tail_lines: int = Field(
        default=30,
        ge=1,
        description="Lines of tool output kept in stored error messages"
    )
