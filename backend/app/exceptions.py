"""
Mom's Yums Backend - Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for the failure cases of the
       scan-and-save workflow.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) translate them
       into structured JSON error responses with the matching HTTP status.
Who:   Raised by services, vision backends and auth dependencies.

Exception Hierarchy:
    MomsYumsError (base)
    ├── ValidationError              → 400 Bad Request
    │   └── InvalidImageError        → 400 Bad Request (image does not decode)
    ├── AuthenticationError          → 401 Unauthorized
    ├── PermissionDeniedError        → 403 Forbidden
    ├── NotFoundError                → 404 Not Found
    ├── BackendUnavailableError      → 503 Service Unavailable
    │   └── ExtractionTimeoutError   → 503 Service Unavailable
    ├── FileStorageError             → 500 Internal Server Error
    └── DatabaseError                → 500 Internal Server Error

A recipe that was read only partially is NOT an exception. The orchestrator
returns it with `complete=False` and a soft warning message.
"""

from typing import Any, Dict, List, Optional


class MomsYumsError(Exception):
    """
    Base exception for all Mom's Yums application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where the handler allows)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MomsYumsError):
    """
    Raised when client input fails validation.

    When:    Unsupported file type, size exceeded, blank recipe fields,
             too many images in one scan.
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


class InvalidImageError(ValidationError):
    """
    Raised when an image payload cannot be decoded as a supported format.

    Fatal for the attempt: the orchestrator never retries the same bytes.
    """

    def __init__(
        self,
        message: str = "The uploaded file is not a readable JPEG or PNG image.",
        index: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if index is not None:
            ctx["image_index"] = index
        super().__init__(message=message, field="images", context=ctx)
        self.index = index


class AuthenticationError(MomsYumsError):
    """
    Raised when the Supabase access token is missing, malformed or expired.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Please sign in to continue.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(MomsYumsError):
    """
    Raised when a user tries to modify a recipe they do not own.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You can only change your own recipes.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(MomsYumsError):
    """
    Raised when a requested resource does not exist.

    When:    GET /api/recipes/{id} with an unknown UUID, missing image file.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class BackendUnavailableError(MomsYumsError):
    """
    Raised when a vision/OCR backend cannot produce a response.

    When:    Network failure, non-2xx status, malformed response envelope.
             The orchestrator catches it per strategy and only lets it reach
             the client once every strategy has failed.
    HTTP:    503 Service Unavailable

    Attributes:
        backend:    Name of the backend that failed (openai, gemini, google_vision)
        retryable:  Whether a repeat of the same call may succeed (transport
                    errors, 429, 5xx). Used by the per-call tenacity policy.
        failures:   Collected "<backend>: <message>" lines when raised by the
                    orchestrator after every strategy failed.
    """

    def __init__(
        self,
        message: str = "Recipe reading service is temporarily unavailable. Please try again later.",
        backend: Optional[str] = None,
        retryable: bool = False,
        failures: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if backend:
            ctx["backend"] = backend
        if failures:
            ctx["failures"] = failures
        super().__init__(message=message, context=ctx)
        self.backend = backend
        self.retryable = retryable
        self.failures = failures or []


class ExtractionTimeoutError(BackendUnavailableError):
    """
    Raised when a backend call exceeds the fixed extraction budget.

    Treated exactly like BackendUnavailableError by the strategy loop, but
    never retried within one backend call: the budget is already spent.
    """

    def __init__(
        self,
        backend: Optional[str] = None,
        timeout: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if timeout is not None:
            ctx["timeout_seconds"] = timeout
        message = "Reading the recipe took too long."
        if timeout is not None:
            message = f"Reading the recipe took longer than {timeout:.0f} seconds."
        super().__init__(message=message, backend=backend, retryable=False, context=ctx)
        self.timeout = timeout


class FileStorageError(MomsYumsError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(MomsYumsError):
    """
    Raised when recipe store operations fail unexpectedly.

    HTTP:    500 Internal Server Error. The response carries the operation
             message plus the store's own error text under details.reason;
             nothing is retried automatically.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
