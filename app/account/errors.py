"""
Error taxonomy for account and entitlement operations.

Every error carries a stable ``code`` (used in JSON responses) and a
user-facing ``message``.
"""
from typing import Optional


class AccountError(Exception):
    """Base class for account/entitlement failures."""

    code = "account_error"
    default_message = "Account operation failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"error": self.code, "message": self.message}


class UserCancelled(AccountError):
    """Interactive sign-in was dismissed or abandoned by the user."""

    code = "user_cancelled"
    default_message = "Google sign-in popup was closed before completion."


class InvalidCredential(AccountError):
    code = "invalid_credential"
    default_message = "Incorrect password. Please try again."


class NotFound(AccountError):
    code = "not_found"
    default_message = "No account found with this email. Please sign up."


class AlreadyExists(AccountError):
    code = "already_exists"
    default_message = "This email is already in use. Please log in instead."


class Unauthenticated(AccountError):
    code = "unauthenticated"
    default_message = "User is not logged in."


class UpstreamError(AccountError):
    """A collaborator (identity provider or document store) failed."""

    code = "upstream_error"
    default_message = "The account service is temporarily unavailable."

    def __init__(self, cause: BaseException, message: Optional[str] = None):
        self.cause = cause
        super().__init__(message)
