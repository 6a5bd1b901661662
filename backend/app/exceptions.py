"""
Shipment Service Backend - Custom Exception Hierarchy
=====================================================

What:  Application-specific exceptions for the different failure scenarios.
How:   Each exception carries a client-safe message and an optional context
       dict. Global handlers (registered in main.py) turn them into JSON
       error responses with the right HTTP status code. The context is
       logged server-side and never returned to the caller.
Who:   Raised by the identity resolver, repository and service layer.

Exception Hierarchy:
    ShipmentServiceError (base)
    ├── AuthenticationError
    │   ├── AuthMissingError         → 401 (no header, no token)
    │   ├── AuthExpiredError         → 401 (token validity window elapsed)
    │   └── AuthInvalidError         → 403 (bad signature, malformed payload)
    ├── PermissionDeniedError        → 403 (role claim does not match)
    ├── ValidationError              → 400
    ├── NotFoundError                → 404 (absent OR owned by someone else)
    ├── DatabaseError                → 500 (generic message only)
    └── UpstreamServiceError         → 503 (statistics service unreachable)
"""

from typing import Any, Dict, Optional


class ShipmentServiceError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


# ══════════════════════════════════════════════════════════════════════════
# Authentication
# ══════════════════════════════════════════════════════════════════════════

class AuthenticationError(ShipmentServiceError):
    """Credential could not be turned into an identity."""

    status_code = 401
    error_code = "auth_failed"


class AuthMissingError(AuthenticationError):
    """
    No Authorization header, or a header with nothing after the scheme.

    HTTP: 401 Unauthorized
    """

    error_code = "auth_missing"

    def __init__(
        self,
        message: str = "Authorization header missing",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthExpiredError(AuthenticationError):
    """
    Token signature is fine but its `exp` has passed.

    HTTP: 401 Unauthorized, with a message distinct from the missing case
    so clients know to refresh rather than to log in.
    """

    error_code = "auth_expired"

    def __init__(
        self,
        message: str = "Access token expired",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthInvalidError(AuthenticationError):
    """
    Any other verification failure: bad signature, malformed token,
    unsupported algorithm, or a payload without an email claim.

    HTTP: 403 Forbidden
    """

    status_code = 403
    error_code = "auth_invalid"

    def __init__(
        self,
        message: str = "Invalid access token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(ShipmentServiceError):
    """Authenticated, but the role claim does not grant this operation."""

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Access denied: Insufficient permissions",
        required_role: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if required_role:
            ctx["required_role"] = required_role
        super().__init__(message=message, context=ctx)


# ══════════════════════════════════════════════════════════════════════════
# Request / Resource
# ══════════════════════════════════════════════════════════════════════════

class ValidationError(ShipmentServiceError):
    """
    Raised when client input fails validation.

    When:  Missing required field, value outside the allowed set, or a
           recipient_email that is not the caller's own.
    HTTP:  400 Bad Request (FastAPI's own 422 is remapped to 400 as well)
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(ShipmentServiceError):
    """
    Raised when a requested shipment does not exist for the caller.

    A shipment owned by another recipient produces exactly the same error
    as one that was never created.
    HTTP: 404 Not Found
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        message: str = "Shipment not found",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


# ══════════════════════════════════════════════════════════════════════════
# Infrastructure
# ══════════════════════════════════════════════════════════════════════════

class DatabaseError(ShipmentServiceError):
    """
    Raised when database operations fail unexpectedly.

    When:  Connection lost, pool timeout, constraint violation, bad query.
    HTTP:  500 Internal Server Error

    Security Note:
        The message returned to the client is always generic. Driver
        messages go to `context` and the server log only.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamServiceError(ShipmentServiceError):
    """
    Raised when the remote statistics service fails after all retries.

    HTTP: 503 Service Unavailable
    """

    status_code = 503
    error_code = "upstream_unavailable"

    def __init__(
        self,
        message: str = "Failed to fetch statistics from sub-service",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
