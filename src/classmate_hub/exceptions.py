"""
Application errors and exception handlers with request ID support
Standardized error response format: { code, message, status_code, details?, request_id }
"""
import logging
from typing import Optional, Dict, Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logging_config import get_request_id

logger = logging.getLogger(__name__)


class ErrorResponse:
    """
    Standard error response format

    Schema: { code, message, status_code, details?, request_id }
    """

    @staticmethod
    def create(
        message: str,
        code: str,
        status_code: int,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """
        Create standardized error response

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "INVALID_CREDENTIALS")
            status_code: HTTP status code
            request_id: Request ID from context (auto-fetched if None)
            details: Optional additional error details

        Returns:
            Dictionary with error details
        """
        if request_id is None:
            request_id = get_request_id()

        response = {
            "code": code,
            "message": message,
            "status_code": status_code,
        }
        if request_id:
            response["request_id"] = request_id
        if details:
            response["details"] = details
        return response


class AppError(Exception):
    """
    Base class for every failure the API reports with a stable code.

    Subclasses set ``code``, ``status_code`` and a default ``message``;
    callers may override the message or attach ``details``.
    """
    code: str = "INTERNAL_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "An unexpected error occurred. Please try again."

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


# Authentication failures

class InvalidCredentialsError(AppError):
    code = "INVALID_CREDENTIALS"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid email or password."


class ExternalAccountRequiredError(AppError):
    code = "EXTERNAL_ACCOUNT_REQUIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = 'This account uses Google Sign-In. Please use the "Sign in with Google" button.'


class EmailNotVerifiedError(AppError):
    code = "EMAIL_NOT_VERIFIED"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Please verify your email address before signing in. You can request a new verification email."


class AccountDeactivatedError(AppError):
    code = "ACCOUNT_DEACTIVATED"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Your account has been deactivated. Please contact support."


class AuthenticationRequiredError(AppError):
    code = "AUTH_ERROR"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "You need to be signed in to access this resource."


class CredentialCheckError(AppError):
    """Lookup or hash comparison failed while checking credentials"""
    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "An unexpected error occurred. Please try again."


# Validation failures

class ValidationFailedError(AppError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    message = "Please check your input and try again."

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        details = {"fields": [{"field": field, "message": message}]} if field else None
        super().__init__(message, details)


class EmailExistsError(AppError):
    code = "EMAIL_EXISTS"
    status_code = status.HTTP_409_CONFLICT
    message = "An account with this email already exists. Try signing in instead."


class AccountExistsError(AppError):
    code = "ACCOUNT_EXISTS"
    status_code = status.HTTP_409_CONFLICT
    message = "An account with this email or Google account already exists."


class TokenInvalidOrExpiredError(AppError):
    code = "TOKEN_INVALID_OR_EXPIRED"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "This link is invalid or has expired. Please request a new one."


# Resource and permission failures

class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "The requested resource was not found."

    def __init__(self, resource: Optional[str] = None):
        super().__init__(f"{resource} not found." if resource else None)


class ForbiddenError(AppError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    message = "You do not have permission to perform this action."


# Upload failures

class UploadNoFileError(AppError):
    code = "UPLOAD_NO_FILE"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "No file provided."


class UploadInvalidTypeError(AppError):
    code = "UPLOAD_INVALID_TYPE"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid file type. Only JPEG, PNG, WebP and GIF are allowed."


class UploadTooLargeError(AppError):
    code = "UPLOAD_SIZE_EXCEEDED"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "File size too large. Maximum size is 10MB."


# Upstream failures

class ImageHostError(AppError):
    code = "IMAGE_HOST_FAILED"
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Failed to process the image. Please try again."


class ServiceUnavailableError(AppError):
    code = "SERVICE_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "This service is not available right now."


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle application errors with their stable code"""
    from .middleware.error_handler import ErrorSanitizer

    request_id = get_request_id()

    error_response = ErrorResponse.create(
        message=exc.message,
        code=exc.code,
        status_code=exc.status_code,
        request_id=request_id,
        details=ErrorSanitizer.sanitize_details(exc.details) if exc.details else None,
    )

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.code} ({exc.status_code}) on {request.method} {request.url.path}",
        exc_info=exc.status_code >= 500,
        extra={"request_id": request_id, "path": request.url.path},
    )

    return JSONResponse(status_code=exc.status_code, content=error_response)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with request ID"""
    request_id = get_request_id()

    error_code_map = {
        400: "BAD_REQUEST",
        401: "AUTH_ERROR",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }
    error_code = error_code_map.get(exc.status_code, "HTTP_ERROR")
    error_message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code} error"

    error_response = ErrorResponse.create(
        message=error_message,
        code=error_code,
        status_code=exc.status_code,
        request_id=request_id,
    )

    logger.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        extra={"request_id": request_id, "path": request.url.path}
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation exceptions as form-level field errors"""
    request_id = get_request_id()

    fields = []
    for err in exc.errors():
        # Drop the "body"/"query" prefix so clients get the bare field name
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        fields.append({"field": ".".join(loc), "message": msg})

    message = fields[0]["message"] if fields else "Please check your input and try again."

    error_response = ErrorResponse.create(
        message=message,
        code="VALIDATION_ERROR",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        request_id=request_id,
        details={"fields": fields},
    )

    logger.warning(
        f"Validation error: {'; '.join(f['field'] + ': ' + f['message'] for f in fields)}",
        extra={"request_id": request_id, "path": request.url.path}
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions with request ID"""
    request_id = get_request_id()

    # Internal error details are only exposed in dev
    settings = request.app.state.settings
    error_message = "An unexpected error occurred. Please try again."
    error_details = None

    if settings.is_dev:
        from .middleware.error_handler import ErrorSanitizer
        error_message = f"Internal server error: {ErrorSanitizer.sanitize_message(str(exc))}"
        error_details = {"exception_type": type(exc).__name__}

    error_response = ErrorResponse.create(
        message=error_message,
        code="INTERNAL_ERROR",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        request_id=request_id,
        details=error_details,
    )

    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={"request_id": request_id, "path": request.url.path}
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response
    )
