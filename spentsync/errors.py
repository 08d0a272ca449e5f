"""
spentsync error taxonomy.

Error handling philosophy:
- Local storage failures raise StorageUnavailableError (retryable, never a
  data error).
- A pull or push failure confined to one collection is a
  PerCollectionSyncError; it is recorded and the cycle continues.
- Anything failing outside the per-collection boundaries is a FatalSyncError;
  the cycle aborts and prior local state is left untouched.
- Remote unconfigured / signed out is not an error at all: the cycle is a
  silent no-op.
- Invalid arguments raise ValueError.
"""

FATAL_PREFIX = "Fatal: "


def error_message(error: BaseException) -> str:
    """Human-readable text of an error.

    postgrest ``APIError`` carries the server message separately; its ``str()``
    is a dict-style repr.
    """
    return getattr(error, "message", None) or str(error)


class SpentSyncError(Exception):
    """Base for all spentsync errors."""

    pass


class StorageUnavailableError(SpentSyncError):
    """Raised when the local storage medium cannot be read or written."""

    pass


class RemoteUnavailableError(SpentSyncError):
    """Raised when a remote client cannot be constructed from configuration."""

    pass


class PerCollectionSyncError(SpentSyncError):
    """A pull or push failure isolated to one collection.

    ``str()`` yields the collection-tagged message recorded in
    ``last_sync_error``, e.g. ``"Categories Pull: connection reset"``.
    """

    def __init__(self, collection: str, phase: str, message: str):
        self.collection = collection
        self.phase = phase
        self.message = message
        super().__init__(f"{collection} {phase}: {message}")


class FatalSyncError(SpentSyncError):
    """An unexpected failure outside per-collection isolation."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"{FATAL_PREFIX}{error_message(cause)}")
