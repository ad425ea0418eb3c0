"""Custom exceptions for the Decan Chart API."""


class ChartAPIException(Exception):
    """Base exception for all API errors."""
    pass


class InvalidInputError(ChartAPIException):
    """Raised when caller-supplied birth data is unusable. Never retried."""
    pass


class InvalidDateTimeError(InvalidInputError):
    """Raised when civil date/time fields are invalid."""
    pass


class InvalidCoordinatesError(InvalidInputError):
    """Raised when coordinates are invalid."""
    pass


class InvalidTimezoneError(InvalidInputError):
    """Raised when timezone is invalid."""
    pass


class ChartCalculationError(ChartAPIException):
    """Raised when chart calculation fails unexpectedly."""
    pass


class EphemerisUnavailableError(ChartAPIException):
    """Raised when the Swiss Ephemeris module could not load or threw.

    Handled by the chart assembler, which falls back to the approximation
    engine.
    """
    pass


class CrossingSearchError(ChartAPIException):
    """Raised when a Solar Return search tier fails to converge."""
    pass
