class BackendError(Exception):
    """Base class for failures reported across the backend boundary."""


class AuthError(BackendError):
    """No session, an expired or revoked one, or a failed sign-out."""


class PersistenceError(BackendError):
    """A row operation was rejected by the table store."""


class StorageError(BackendError):
    """An object upload or removal failed."""


class ChangeFeedError(BackendError):
    """The change feed could not register a subscription."""


class DeleteNotAllowed(AuthError):
    """The viewer tried to delete a post written by someone else."""
