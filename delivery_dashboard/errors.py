"""
Exception taxonomy.

IngestionError and its subclasses are raised by the loaders and reported
verbatim as the upload status message. ProviderError never leaves the
advisory layer: advisor.py converts it into fallback content.
"""


class IngestionError(Exception):
    """Base class for failures that abort a CSV import."""


class ValidationError(IngestionError):
    """File-level problem: empty content or missing required headers."""

    def __init__(self, message: str, missing: tuple[str, ...] = ()):
        super().__init__(message)
        self.missing = tuple(missing)


class RowParseError(IngestionError):
    """A required field on one data row could not be parsed.

    `row` is the 1-based line number in the file, counting the header as
    row 1 and ignoring blank lines.
    """

    def __init__(self, row: int, reason: str):
        super().__init__(
            f"Invalid or missing core data on row {row}: {reason}. "
            "Check date, time, and coordinate columns."
        )
        self.row = row
        self.reason = reason


class FileReadError(IngestionError):
    """The uploaded file could not be read or decoded."""


class ProviderError(Exception):
    """The text-completion provider failed or returned nothing usable."""
