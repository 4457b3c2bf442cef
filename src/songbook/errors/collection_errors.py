"""Collection access error types.

Only CollectionNotFound crosses the resolver's public boundary. The other
conditions are absorbed into degraded-but-successful results so that song
browsing stays available while the backend is flaky.
"""


class CollectionError(Exception):
    """Base class for collection access errors."""

    pass


class BackendUnavailable(CollectionError):
    """The collection backend could not be reached or returned garbage.

    Covers network failures, timeouts, auth rejections and malformed
    payloads alike. Callers never need to tell these apart: the recovery
    is always the same (stale or static data).
    """

    def __init__(self, operation: str, reason: str | None = None):
        self.operation = operation
        self.reason = reason
        message = f"Collection backend unavailable during {operation}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CollectionNotFound(CollectionError):
    """Requested collection id does not exist in the latest data."""

    def __init__(self, collection_id: str):
        self.collection_id = collection_id
        super().__init__(f"Collection not found: {collection_id}")


class DataIntegrityWarning(CollectionError):
    """Non-fatal inconsistency in collection data.

    Constructed and logged, never raised. Examples: songCount disagrees
    with the membership set, or a favorite points at an inactive
    collection.
    """

    def __init__(self, collection_id: str, issue: str, detail: str | None = None):
        self.collection_id = collection_id
        self.issue = issue
        self.detail = detail
        message = f"Data integrity issue in {collection_id}: {issue}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)
