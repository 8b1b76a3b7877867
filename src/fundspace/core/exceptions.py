"""Custom exception hierarchy for Fundspace."""

from typing import Any, Dict, List, Optional
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class BaseFundspaceException(Exception):
    """Base exception for the Fundspace application."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        """Initialize base exception."""
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Exceptions
class AuthenticationError(BaseFundspaceException):
    """Base authentication exception."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, **kwargs)


class InvalidCredentialsError(AuthenticationError):
    """Invalid credentials provided."""

    def __init__(self, message: str = "Invalid email or password", **kwargs):
        super().__init__(message, error_code="INVALID_CREDENTIALS", **kwargs)


class AuthorizationError(BaseFundspaceException):
    """Base authorization exception."""

    def __init__(self, message: str = "Authorization failed", **kwargs):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN, **kwargs)


class PermissionDeniedError(AuthorizationError):
    """A row-level policy or role check rejected the operation."""

    def __init__(self, resource: str, operation: str, **kwargs):
        message = f"Permission denied: {operation} on {resource}"
        super().__init__(message, error_code="PERMISSION_DENIED", **kwargs)
        self.resource = resource
        self.operation = operation


class TokenInvalidError(AuthenticationError):
    """Access token is missing, expired or malformed."""

    def __init__(self, message: str = "Could not validate credentials", **kwargs):
        super().__init__(message, error_code="TOKEN_INVALID", **kwargs)


# Resource Exceptions
class ResourceNotFoundError(BaseFundspaceException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str = "", **kwargs):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, error_code="RESOURCE_NOT_FOUND", **kwargs)


class ResourceAlreadyExistsError(BaseFundspaceException):
    """Resource already exists."""

    def __init__(self, resource: str, identifier: str = "", **kwargs):
        message = f"{resource} already exists"
        if identifier:
            message = f"{resource} with identifier '{identifier}' already exists"
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, error_code="RESOURCE_ALREADY_EXISTS", **kwargs)


class ValidationError(BaseFundspaceException):
    """General validation error."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, details=details, error_code="VALIDATION_ERROR", **kwargs)


# Database Exceptions
class DatabaseError(BaseFundspaceException):
    """Base database exception."""

    def __init__(self, message: str = "Database operation failed", error_code: str = "DATABASE_ERROR", **kwargs):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, error_code=error_code, **kwargs)


class ConnectionError(DatabaseError):
    """Database connection failed."""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(message, error_code="CONNECTION_ERROR", **kwargs)


class TransactionError(DatabaseError):
    """Database transaction failed."""

    def __init__(self, message: str = "Transaction failed", **kwargs):
        super().__init__(message, error_code="TRANSACTION_ERROR", **kwargs)


# File Upload Exceptions
class FileUploadError(BaseFundspaceException):
    """File upload error."""

    def __init__(self, message: str = "File upload failed", error_code: str = "FILE_UPLOAD_ERROR", **kwargs):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, error_code=error_code, **kwargs)


class FileSizeError(FileUploadError):
    """File size exceeds limit."""

    def __init__(self, max_size: int, actual_size: int, **kwargs):
        message = f"File size {actual_size} bytes exceeds maximum allowed size {max_size} bytes"
        details = {"max_size": max_size, "actual_size": actual_size}
        super().__init__(message, details=details, error_code="FILE_SIZE_ERROR", **kwargs)


class FileTypeError(FileUploadError):
    """File type not allowed."""

    def __init__(self, allowed_types: list, actual_type: str, **kwargs):
        message = f"File type '{actual_type}' not allowed. Allowed types: {', '.join(allowed_types)}"
        details = {"allowed_types": allowed_types, "actual_type": actual_type}
        super().__init__(message, details=details, error_code="FILE_TYPE_ERROR", **kwargs)


# Business Logic Exceptions
class BusinessRuleError(BaseFundspaceException):
    """Business rule violation."""

    def __init__(self, message: str = "Business rule violation", error_code: str = "BUSINESS_RULE_ERROR", **kwargs):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, error_code=error_code, **kwargs)


class SignupError(BusinessRuleError):
    """A sign-up sub-step failed after zero or more sub-steps completed."""

    def __init__(self, step: str, message: str, completed: Optional[List[str]] = None, **kwargs):
        self.step = step
        self.completed = list(completed or [])
        details = {"step": step, "completed": self.completed}
        super().__init__(message, details=details, error_code="SIGNUP_FAILED", **kwargs)


# Exception handler functions for FastAPI
def handle_fundspace_exception(request: Request, exc: BaseFundspaceException) -> JSONResponse:
    """Handle Fundspace exceptions in FastAPI."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions in FastAPI."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": f"HTTP_{exc.status_code}",
                "message": exc.detail,
                "details": {}
            }
        }
    )


def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle generic exceptions in FastAPI."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": {}
            }
        }
    )
