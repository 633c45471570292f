"""Exceptions for the tzrules library.

The rule engine and the POSIX codec report failures through sentinel
return values. These exceptions are raised only by the wrappers that
prefer to fail loudly, such as `parse_tz_string` and the TZif readers.
"""


class TzRulesError(Exception):
    """Base exception for all tzrules errors."""


class PosixParseError(TzRulesError, ValueError):
    """Exception raised when parsing a POSIX TZ string.

    The 'message' attribute contains a human-readable message about the
    error that occurred. The 'position' attribute is the index in the input
    where parsing stopped. The 'detailed_error' attribute can provide
    additional information about the error, such as the unparsed remainder
    of the input, useful for debugging purposes.
    """

    def __init__(
        self,
        message: str,
        *,
        position: int = 0,
        detailed_error: str | None = None,
    ) -> None:
        """Initialize the PosixParseError with a message."""
        super().__init__(message)
        self.message = message
        self.position = position
        self.detailed_error = detailed_error


class TimezoneInfoError(TzRulesError):
    """Raised when loading time zone information fails."""
