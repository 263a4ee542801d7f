"""
Error types for the waitlist service.

Backend errors carry a diagnostic ``detail`` for logs. Callers at the
coordinator boundary never show it to users.
"""


class WaitlistError(Exception):
    """Base class for waitlist errors"""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message)
        self.detail = detail


class ValidationError(WaitlistError):
    """Email failed the format check"""


class BackendUnavailable(WaitlistError):
    """Remote upsert failed (network, auth, constraint violation)"""


class StoreError(WaitlistError):
    """Local fallback storage could not be read or written"""


class InvalidTransition(WaitlistError):
    """Submission state machine was driven through an illegal edge"""
