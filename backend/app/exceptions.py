"""
TreeSpotter Backend - Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for the different failure scenarios.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers (registered in main.py) turn them into structured
       JSON error responses with the matching HTTP status code.
Who:   Raised by repositories, services and the auth dependency.

Exception Hierarchy:
    TreeSpotterError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── FileStorageError         → 500 Internal Server Error
    ├── DatabaseError            → 500 Internal Server Error
    ├── StoreUnavailableError    → 503 Service Unavailable
    └── ConfigurationError       → 503 Service Unavailable

A lookup miss inside a repository is a value (None), not an exception. The
service layer turns it into NotFoundError so that every "entity absent" case
reaches the client as the same 404.
"""

from typing import Any, Dict, Optional


class TreeSpotterError(Exception):
    """
    Base exception for all TreeSpotter application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, only partially returned)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TreeSpotterError):
    """
    Raised when client input fails a business rule.

    When:    Upload type/size rejected, both or neither image fields supplied.
    HTTP:    400 Bad Request
    """

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


class AuthenticationError(TreeSpotterError):
    """Bad credentials, or a missing/invalid/expired bearer token. HTTP 401."""

    def __init__(
        self,
        message: str = "Authentication required",
        code: str = "INVALID_CREDENTIALS",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["code"] = code
        super().__init__(message=message, context=ctx)
        self.code = code


class NotFoundError(TreeSpotterError):
    """
    Raised when a requested resource does not exist for the requesting user.

    The owner filter is part of every query, so "belongs to someone else" and
    "does not exist" produce the same error.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(TreeSpotterError):
    """Unique value already taken (username, email). HTTP 409."""

    def __init__(
        self,
        message: str = "Resource already exists",
        code: str = "CONFLICT",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["code"] = code
        super().__init__(message=message, context=ctx)
        self.code = code


class FileStorageError(TreeSpotterError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, or an image file is missing on delete.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(TreeSpotterError):
    """
    Raised when a store operation fails unexpectedly.

    The context names the operation; the client only ever sees the generic
    message.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreUnavailableError(TreeSpotterError):
    """
    Raised when no database connection is available.

    When:    Startup retries exhausted, or a request arrives before connect().
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "The data store is currently unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(TreeSpotterError):
    """
    Raised when a request needs a setting the server was started without.

    When:    JWT_SECRET is empty, so tokens can be neither issued nor checked.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "The server is not configured to handle this request",
        setting: Optional[str] = None,
    ):
        super().__init__(message=message, context={"setting": setting})
        self.setting = setting
