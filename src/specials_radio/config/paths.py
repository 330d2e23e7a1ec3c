"""Filesystem paths configuration."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..errors import ConfigurationError


class PathsConfig(BaseSettings):
    """Filesystem paths for the specials pipeline.

    There is deliberately no default base path: the dispatcher refuses to
    run until the station directory is configured.

    Environment variables:
        RADIO_BASE_PATH: Radio base directory (contains specials/)
    """

    model_config = SettingsConfigDict(
        env_prefix="RADIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base_path: Optional[Path] = Field(default=None)

    @property
    def specials_path(self) -> Optional[Path]:
        if self.base_path is None:
            return None
        return self.base_path / "specials"

    @property
    def state_path(self) -> Optional[Path]:
        if self.base_path is None:
            return None
        return self.base_path / "state"

    @property
    def db_path(self) -> Optional[Path]:
        if self.base_path is None:
            return None
        return self.base_path / "db" / "specials.sqlite3"

    @property
    def dispatch_lock_path(self) -> Optional[Path]:
        if self.state_path is None:
            return None
        return self.state_path / "specials_cron.lock"

    def require_specials_path(self) -> Path:
        """Return the specials directory or fail if it is unusable.

        Raises:
            ConfigurationError: Base path unset or specials directory missing
        """
        if self.base_path is None or str(self.base_path) == "":
            raise ConfigurationError(
                "RADIO_BASE_PATH is not configured. Set it in the environment or .env"
            )
        specials = self.specials_path
        if not specials.is_dir():
            raise ConfigurationError(f"Specials directory not found: {specials}")
        return specials
