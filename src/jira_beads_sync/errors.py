"""Error taxonomy shared by the Issue Source, fetcher, converter and renderers.

Every error is fatal to the current run. None of them are retried internally;
callers that want resilience retry the whole operation.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for all jira-beads-sync errors.

    Attributes:
        key: The Jira key (or query) the error relates to, when known.
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class SourceUnavailable(SyncError):
    """Transport failure or unexpected HTTP status from the Issue Source."""


class SourceUnauthorized(SyncError):
    """The Issue Source rejected the configured credentials."""


class SourceNotFound(SyncError):
    """The requested key does not exist."""


class MalformedSourceResponse(SyncError):
    """The Issue Source returned a payload that could not be parsed."""


class ValidationFailure(SyncError):
    """A parsed record lacks a required field (key, summary or issue type)."""


class IdCollision(ValidationFailure):
    """Two distinct source keys fold to the same beads id."""

    def __init__(self, first_key: str, second_key: str, beads_id: str) -> None:
        super().__init__(
            f"Keys {first_key!r} and {second_key!r} both map to beads id {beads_id!r}",
            key=second_key,
        )
        self.first_key = first_key
        self.beads_id = beads_id


class EmptyResultSet(SyncError):
    """An input contained no records, or a query matched nothing."""


class NilInput(SyncError):
    """Conversion was invoked without any data."""


class SearchTruncated(SyncError):
    """A strict search matched more issues than the configured cap allows."""

    def __init__(self, query: str, retrieved: int, total: int) -> None:
        super().__init__(
            f"Search retrieved {retrieved} of {total} matching issues: {query}",
            key=query,
        )
        self.retrieved = retrieved
        self.total = total


class AnnotationError(SyncError):
    """Repository annotation could not be applied to a rendered issue."""


class ConfigurationError(SyncError):
    """Required configuration is missing or invalid."""
