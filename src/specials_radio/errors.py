"""Exceptions raised by the specials pipeline."""


class SpecialsError(Exception):
    """Base class for specials pipeline errors."""


class ConfigurationError(SpecialsError):
    """Raised when the station directory layout is unconfigured or missing.

    Fatal for a dispatcher run: nothing is read from or written to the
    schedule table once this is raised.
    """


class ScheduleValidationError(SpecialsError):
    """Raised when a schedule request is rejected.

    The message is shown to the operator verbatim.
    """


class TagRewriteError(SpecialsError):
    """Raised when the special broadcast tag rewrite sequence fails."""

    # Steps of the rewrite sequence, used by callers to pick their own wording
    REPAIR = "repair"
    PROBE = "probe"
    WRITE = "write"
    VERIFY = "verify"

    def __init__(self, step: str, message: str):
        self.step = step
        self.message = message
        super().__init__(message)
