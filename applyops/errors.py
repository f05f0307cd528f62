"""
Error types for ApplyOps.

Every error raised on purpose by the application derives from
ApplyOpsError and carries the HTTP status the API layer reports for it.
"""


class ApplyOpsError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ApplyOpsError):
    status_code = 400


class AuthenticationError(ApplyOpsError):
    status_code = 401


class NotFoundError(ApplyOpsError):
    status_code = 404


class MailboxNotConnectedError(ApplyOpsError):
    """The user has no usable Gmail credential; a sync cannot start."""

    status_code = 400

    def __init__(self, message: str = "Gmail not connected"):
        super().__init__(message)


class SyncInProgressError(ApplyOpsError):
    """Another sync for the same user is already running."""

    status_code = 409

    def __init__(self, user_id: str):
        super().__init__(f"A Gmail sync is already running for user {user_id}")
        self.user_id = user_id


class ConcurrentUpdateError(ApplyOpsError):
    """An application row changed between read and write."""

    status_code = 409

    def __init__(self, application_id: str):
        super().__init__(f"Application {application_id} was modified concurrently")
        self.application_id = application_id
