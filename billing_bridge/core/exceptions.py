"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. One place that maps failures to HTTP status codes
2. A short, safe reason string for the `{"failure": ...}` response body
3. Debugging context that is logged but never sent to the caller
4. A retryable flag separating "fix your input" from "try again later"

The wire format reuses 400 for both client mistakes and upstream failures
(the billing provider redelivers webhooks on any non-2xx), so callers inside
the service should branch on the exception class or `retryable`, not on the
status code.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class ensures consistent
    error responses and status code mapping.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    default_message: str = "an unexpected error occurred"
    retryable: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Short reason shown to the caller
            status_code: HTTP status code (overrides class default)
            **context: Additional context for logs (external ids, operation)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to the response body.

        WHY: Context may hold identifiers and upstream error text; only the
        short message leaves the process.
        """
        return {"failure": self.message}

    def log_context(self) -> Dict[str, Any]:
        """Context for `extra=` on log records, with secrets filtered out."""
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }
        filtered_context["error_class"] = self.__class__.__name__
        return filtered_context


# ============================================================================
# Client input (caller should fix the request)
# ============================================================================


class ClientInputError(AppException):
    """
    Raised when a request or event cannot be accepted as sent.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "invalid request"


class ValidationError(ClientInputError):
    """
    Raised when a field is missing or invalid, or a required reference
    (e.g. the customer mapping of a subscription) does not resolve.

    HTTP Status: 400 Bad Request
    """

    default_message = "validation failed"


class AuthenticationError(ClientInputError):
    """
    Raised when the Authorization token cannot be resolved to a user.

    HTTP Status: 400 Bad Request (kept for compatibility with existing clients)
    """

    default_message = "could not find auth record by token"


class TokenExpiredError(AuthenticationError):
    """Raised when a JWT has expired."""

    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when a JWT is malformed or its signature is invalid."""

    default_message = "Token is invalid"


class VerificationError(ClientInputError):
    """
    Raised when a webhook signature cannot be verified.

    HTTP Status: 400 Bad Request
    """

    default_message = "webhook verification failed"


class UnhandledEventError(ClientInputError):
    """
    Raised for webhook event types this service does not reconcile.

    HTTP Status: 400 Bad Request
    """

    default_message = "didn't receive a valid event"


# ============================================================================
# Misconfiguration
# ============================================================================


class SchemaMissingError(AppException):
    """
    Raised when a required local table does not exist.

    WHY: Not recoverable by the caller; an operator has to run migrations.

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "collection doesn't exist"


# ============================================================================
# Retry-later failures
# ============================================================================


class RemoteCallError(AppException):
    """
    Raised when a Stripe API call fails.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "could not create new session"
    retryable = True


class PersistenceError(AppException):
    """
    Raised when saving a local record fails.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "could not save record"
    retryable = True
