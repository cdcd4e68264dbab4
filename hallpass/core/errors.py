"""
Error taxonomy for the hall pass log.
Every failure that reaches the request boundary is one of these, carrying the message
that is safe to show to the caller and the HTTP status the API answers with.
"""


class HallPassError(Exception):
    """Base exception for hall pass operations."""

    user_message = "Request failed."
    retryable = False
    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class InvalidRequest(HallPassError):
    """Request payload failed validation."""

    user_message = "Invalid request."
    status_code = 422


class MemberNotFound(HallPassError):
    """Member id is not on the active roster."""

    user_message = "Student ID not found. Please enter a valid ID."
    status_code = 404

    def __init__(self, member_id: str):
        super().__init__()
        self.member_id = member_id


class NoActivePartitionContext(HallPassError):
    """Roster provider could not resolve the current day."""

    user_message = "No current day roster found."
    status_code = 409


class EventAlreadyOpen(HallPassError):
    """An Out was requested while an open event exists for the same match key."""

    user_message = "This student is already out. Record them Back first or confirm to override."
    status_code = 409


class UnmatchedBack(HallPassError):
    """A Back request found no open event to close."""

    user_message = "No open Out entry found for this student."
    status_code = 409


class StorageWriteFailure(HallPassError):
    """Reading or writing partition/archive storage failed."""

    user_message = "Could not update the log. Please try again."


class StoreBusy(StorageWriteFailure):
    """Another writer holds the store; the request can be retried."""

    user_message = "The log is busy. Please try again in a moment."
    retryable = True
    status_code = 503
