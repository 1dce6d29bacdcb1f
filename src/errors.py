"""Error types shared by the query client, the local readers and the API.

``str(exc)`` is the user-facing message. Callers convert errors to strings
only at the outermost boundary (HTTP response or CLI output).
"""


class MonitorError(Exception):
    """Base class for all usage monitor errors."""


class TransportError(MonitorError):
    """The HTTP request failed or the body was not valid JSON."""


class InvalidResponseError(MonitorError):
    """Prometheus answered, but not with a successful query envelope."""


class NotFoundError(MonitorError):
    """A required local file does not exist."""


class ParseError(MonitorError):
    """Input could not be parsed (local file contents or request parameters)."""


class InvalidRangeError(ParseError):
    """A custom time range is missing a bound or is empty."""
