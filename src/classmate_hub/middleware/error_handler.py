"""
Database error handling
Sanitizes error responses to prevent information leakage
"""
import logging
import re
from typing import Any, Dict, Optional, Tuple

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, OperationalError, InterfaceError

from ..exceptions import ErrorResponse
from ..logging_config import get_request_id

logger = logging.getLogger(__name__)


class ErrorSanitizer:
    """
    Sanitizes error text before it reaches a response body

    - Removes file paths
    - Hides SQL statements and connection strings
    - Redacts email addresses
    - Truncates long messages
    """

    PATH_PATTERN = re.compile(r'(?:[A-Z]:\\|/)[^\s\'"<>|]+')
    SQL_PATTERN = re.compile(r'\b(SELECT|INSERT|UPDATE|DELETE|CREATE|DROP|ALTER)\s+.*', re.IGNORECASE)
    CONNECTION_PATTERN = re.compile(r'(postgresql(?:\+\w+)?|sqlite|mysql)://[^\s\'"<>]*')
    EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')

    SENSITIVE_KEYS = ('password', 'token', 'secret', 'api_key', 'connection_string')
    MAX_LENGTH = 500

    @classmethod
    def sanitize_message(cls, message: str) -> str:
        """
        Sanitize error message to remove sensitive information

        Args:
            message: Original error message

        Returns:
            Sanitized message safe for API response
        """
        if not message:
            return "An error occurred"

        # Connection strings first, the path pattern would otherwise eat them
        message = cls.CONNECTION_PATTERN.sub('[REDACTED_CONNECTION]', message)
        message = cls.PATH_PATTERN.sub('[REDACTED_PATH]', message)
        message = cls.SQL_PATTERN.sub('SQL statement [REDACTED]', message)
        message = cls.EMAIL_PATTERN.sub('[REDACTED_EMAIL]', message)

        if len(message) > cls.MAX_LENGTH:
            message = message[:cls.MAX_LENGTH] + "... [truncated]"

        return message

    @classmethod
    def _clean(cls, value: Any) -> Any:
        if isinstance(value, str):
            return cls.sanitize_message(value)
        if isinstance(value, dict):
            return cls.sanitize_details(value)
        if isinstance(value, (list, tuple)):
            return [cls._clean(item) for item in value]
        return value

    @classmethod
    def sanitize_details(cls, details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Copy of an error's details safe to return

        Keys naming credentials are dropped at any depth, including inside
        lists of field errors; every string is passed through sanitize_message.
        """
        return {
            key: cls._clean(value)
            for key, value in (details or {}).items()
            if not any(marker in key.lower() for marker in cls.SENSITIVE_KEYS)
        }


# (status, code, message) for store failures; anything not listed is a generic DATABASE_ERROR
DATABASE_FAILURES = (
    ((OperationalError, InterfaceError), status.HTTP_503_SERVICE_UNAVAILABLE, "DATABASE_CONNECTION_ERROR",
     "The member database is unreachable. Please try again shortly."),
    ((SQLAlchemyError,), status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR",
     "A database error occurred. Please try again later."),
)


def classify_database_error(exc: SQLAlchemyError) -> Tuple[int, str, str]:
    for exc_types, status_code, code, message in DATABASE_FAILURES:
        if isinstance(exc, exc_types):
            return status_code, code, message
    return DATABASE_FAILURES[-1][1:]


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """
    Any SQLAlchemyError escaping a route

    Only the exception class name is returned; statements, parameters and
    connection details stay in the server log.
    """
    request_id = get_request_id()
    status_code, code, message = classify_database_error(exc)
    logger.error(f"{code} on {request.method} {request.url.path}: {type(exc).__name__}", exc_info=True)

    body = ErrorResponse.create(
        message=message,
        code=code,
        status_code=status_code,
        request_id=request_id,
        details={"error_type": type(exc).__name__},
    )
    return JSONResponse(content=body, status_code=status_code)
