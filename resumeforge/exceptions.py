"""Error taxonomy shared by the auth, storage and rendering layers.

Routers translate these into HTTP responses. Messages on the user-facing
errors are safe to show to clients; storage and render errors carry internal
detail that is logged but never returned.
"""


class ResumeForgeError(Exception):
    """Base class for all application errors."""


class VerificationError(ResumeForgeError):
    """External identity credential is invalid, expired or malformed."""

    def __init__(self, message: str = "Invalid user detected. Please try again"):
        super().__init__(message)
        self.message = message


class TokenError(ResumeForgeError):
    """Session token signature is invalid or the token cannot be decoded."""


class ConflictError(ResumeForgeError):
    """A user profile already exists for the email."""


class NotFoundError(ResumeForgeError):
    """Unknown user, resume or render artifact."""


class StorageError(ResumeForgeError):
    """The database rejected or failed an operation."""


class RenderError(ResumeForgeError):
    """Template, rendering engine or timeout failure while producing a PDF."""

    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out
