"""
Exceptions raised by the catalog explorer.

Malformed metadata never raises: it is absorbed by the builder and shows up
as an "unknown" value.  These exceptions cover the remaining cases that a
caller (the HTTP layer, an embedding UI) has to react to.
"""


class ExploreError(Exception):
    """Base class for every error raised by this package."""


class ArenaError(ExploreError):
    """A handle was read from an arena that no longer (or never) owned it."""


class SourceUnavailableError(ExploreError):
    """A metadata database could not be opened."""

    def __init__(self, db_name: str, reason: str = "") -> None:
        self.db_name = db_name
        self.reason = reason
        msg = f"Metadata database '{db_name}' unavailable"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidFilterError(ExploreError, ValueError):
    """A filter named an unknown facet or a rank outside the facet table."""


class RecordNotFoundError(ExploreError, LookupError):
    """A record id does not address a record of the current index."""

    def __init__(self, record_id: int) -> None:
        self.record_id = record_id
        super().__init__(f"Record {record_id} not found")
