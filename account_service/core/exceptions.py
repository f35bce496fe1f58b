"""
Typed error hierarchy for the account service.

Every failure a workflow can produce is one of these. Each carries a message
that is safe to show to the end user, the HTTP status the API layer answers
with, and whether the caller may simply try again.
"""
from typing import Any, Dict, Optional

from fastapi import status


class AccountServiceError(Exception):
    """
    Base exception for the account service.
    All workflow and infrastructure errors inherit from this class.
    """

    message: str = "Something unexpected happened. Kindly try again."
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message or self.message
        self.details = details or {}
        self.error_code = error_code or self._default_error_code()
        super().__init__(self.message)

    @classmethod
    def _default_error_code(cls) -> str:
        name = cls.__name__
        if name.endswith("Error"):
            name = name[:-len("Error")]
        return "".join(
            f"_{char}" if char.isupper() and index else char
            for index, char in enumerate(name)
        ).upper()

    def to_dict(self) -> Dict[str, Any]:
        """Public response body. Internal details never leave the process."""
        return {"error": self.message}


# =============================================================================
# DOMAIN ERRORS
# =============================================================================

class InvalidQueryError(AccountServiceError):
    """A lookup was requested without any identifying field."""

    message = "At least one of user id or email is required."


class DuplicateEmailError(AccountServiceError):
    """The email address is already registered."""

    message = "A user with that email address already exists"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AccountServiceError):
    """No active user matches the lookup."""

    message = "A user with these details does not exist or is not active"
    status_code = status.HTTP_404_NOT_FOUND


class MismatchError(AccountServiceError):
    """The supplied credentials do not match the stored hash."""

    message = "Email and password do not match"
    status_code = status.HTTP_400_BAD_REQUEST


class MalformedHashError(AccountServiceError):
    """The stored password hash could not be parsed."""


class ExpiredOrUnknownTokenError(AccountServiceError):
    """The token was never issued, has expired, or belongs to another purpose."""

    message = "The token is invalid or has expired"
    status_code = status.HTTP_400_BAD_REQUEST


class DataIntegrityError(AccountServiceError):
    """The store returned data that violates a model invariant."""


# =============================================================================
# INFRASTRUCTURE ERRORS
# =============================================================================

class RetryableError(AccountServiceError):
    """Transient infrastructure failure; the request can be repeated as is."""

    message = "Something happened. Please try again"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class PoolExhaustedError(RetryableError):
    """No pooled connection became available within the configured timeout."""


class StoreUnavailableError(RetryableError):
    """The relational or ephemeral store could not be reached."""


class DispatchError(RetryableError):
    """The notification channel refused or failed to accept a message."""


class SessionError(AccountServiceError):
    """Session state could not be written."""

    message = "Session management error"


class TransactionError(AccountServiceError):
    """Commit or rollback of a relational transaction failed."""

    message = "Failed to complete registration"


class RepositoryError(AccountServiceError):
    """Unexpected relational store failure."""


class InternalError(AccountServiceError):
    """Unexpected failure, e.g. a crash inside the hashing worker."""
