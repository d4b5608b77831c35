"""
Exception classes for the exporter.

- StatError: a single statistics record could not be turned into samples
  (recoverable per record, counted as one scrape error)
- UnrecognizedStatError: empty identity tuple or unknown kind
- StatDecodeError: record does not match the schema of its kind
- ConfigError: invalid or unreadable configuration
- SourceUnavailableError: no RethinkDB address accepted a connection
"""


class ExporterError(Exception):
    """Base class for exporter errors."""


class StatError(ExporterError):
    """
    Raised when one stats record cannot be classified or decoded.

    Attributes:
        kind: First element of the record's identity tuple, or None when
            the tuple is empty or unreadable.
    """

    def __init__(self, message: str, kind: str | None = None) -> None:
        self.kind = kind
        super().__init__(message)


class UnrecognizedStatError(StatError):
    """Raised for an empty identity tuple or an unknown identity kind."""

    def __init__(self, kind: str | None) -> None:
        if kind is None:
            message = "unexpected empty stat id"
        else:
            message = f"unexpected stat id: '{kind}'"
        super().__init__(message, kind=kind)


class StatDecodeError(StatError):
    """
    Raised when a record is missing required fields or carries invalid values.

    Attributes:
        kind: Identity kind the record was decoded as.
        details: Validation error text from the schema check.
    """

    def __init__(self, kind: str | None, details: str) -> None:
        self.details = details
        super().__init__(f"failed to decode {kind or 'unknown'} stat: {details}", kind=kind)


class ConfigError(ExporterError):
    """Raised when configuration cannot be loaded or is inconsistent."""


class SourceUnavailableError(ExporterError):
    """
    Raised when no configured RethinkDB address accepts a connection.

    Attributes:
        addresses: Addresses that were tried, in order.
    """

    def __init__(self, addresses: list[str], cause: Exception | None = None) -> None:
        self.addresses = addresses
        self.cause = cause
        super().__init__(
            f"failed to connect to rethinkdb at {', '.join(addresses)}"
            + (f": {cause}" if cause is not None else "")
        )
