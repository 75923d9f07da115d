"""Exception hierarchy for the ski_track pipeline."""


class SkiTrackError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(SkiTrackError):
    """Invalid constructor argument or configuration value."""


class CoordinateError(SkiTrackError):
    """Geodetic input outside the valid range (latitude, zone, band, ...)."""


class FormatError(SkiTrackError):
    """A single malformed input record."""

    def __init__(self, message: str, line_number: int = 0):
        super().__init__(message)
        self.line_number = line_number


class SealedDataError(SkiTrackError):
    """Attempt to mutate a session after ``close_all``."""


class UnclassifiedElementError(SkiTrackError):
    """Element added to a session before a mode was assigned."""
