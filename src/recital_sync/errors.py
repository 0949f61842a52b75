"""Exception types raised by the content-synchronization core."""


class RecitalSyncError(Exception):
    """Base class for all recital_sync errors."""

    pass


class ConfigError(RecitalSyncError):
    """Raised when environment-provided configuration cannot be parsed."""

    pass


class BackendError(RecitalSyncError):
    """Raised by a backend when a store operation fails."""

    pass


class AuthError(BackendError):
    """Raised by a backend when token or anonymous sign-in fails.

    Identity bootstrap always recovers from this locally.
    """

    pass


class NotReadyError(RecitalSyncError):
    """Raised when an operation is attempted before identity is ready.

    Nothing is queued; callers retry once bootstrap reports ready.
    """

    pass


class ValidationError(RecitalSyncError):
    """Raised when a record fails client-side validation before a write."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class WriteFailure(RecitalSyncError):
    """Raised when the backend rejects a create. Nothing is retried."""

    def __init__(self, collection: str, cause: BaseException):
        self.collection = collection
        self.cause = cause
        super().__init__(f"Write to {collection} failed: {cause}")


class ReadFailure(RecitalSyncError):
    """Raised when a direct lookup fails (not when the record is missing)."""

    def __init__(self, collection: str, doc_id: str, cause: BaseException):
        self.collection = collection
        self.doc_id = doc_id
        self.cause = cause
        super().__init__(f"Read of {collection}/{doc_id} failed: {cause}")


class SubscriptionError(RecitalSyncError):
    """Terminal event of a live query. The registry does not retry."""

    def __init__(self, collection: str, cause: BaseException):
        self.collection = collection
        self.cause = cause
        super().__init__(f"Live query on {collection} failed: {cause}")
