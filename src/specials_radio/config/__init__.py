"""Configuration package for the specials pipeline.

Usage:
    from specials_radio.config import config, SpecialsConfig

    config.paths.specials_path
    config.liquidsoap.port
    config.scheduling.marker_phrase

Library classes take a SpecialsConfig at construction; the module-level
``config`` singleton is for scripts.
"""

from .base import SpecialsConfig
from .paths import PathsConfig
from .tools import ToolsConfig
from .liquidsoap import LiquidsoapConfig
from .scheduling import SchedulingConfig

config = SpecialsConfig()

__all__ = [
    "config",
    "SpecialsConfig",
    "PathsConfig",
    "ToolsConfig",
    "LiquidsoapConfig",
    "SchedulingConfig",
]
