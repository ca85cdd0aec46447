"""
Logging setup: every record carries the environment, the request id and,
once the session is resolved, the id of the signed-in member
"""
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

LOG_FORMAT = "%(asctime)s [%(env)s] [%(request_id)s] [user=%(user_id)s] %(levelname)-8s %(name)s: %(message)s"

access_logger = logging.getLogger("classmate_hub.access")


@dataclass
class RequestContext:
    request_id: str
    user_id: Optional[int] = None


# Mutable holder so sync dependencies running in the threadpool can attach the user
_request_context: ContextVar[Optional[RequestContext]] = ContextVar("request_context", default=None)


def get_request_id() -> Optional[str]:
    ctx = _request_context.get()
    return ctx.request_id if ctx else None


def bind_user(user_id: int) -> None:
    """Tag the remaining log records of this request with the member id"""
    ctx = _request_context.get()
    if ctx is not None:
        ctx.user_id = user_id


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Honour an incoming X-Request-ID (or mint one), echo it on the response
    and write one access line per request
    """

    async def dispatch(self, request: Request, call_next):
        ctx = RequestContext(request_id=request.headers.get("X-Request-ID") or uuid.uuid4().hex)
        token = _request_context.set(ctx)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            access_logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
        finally:
            _request_context.reset(token)

        response.headers["X-Request-ID"] = ctx.request_id
        return response


class StructuredFormatter(logging.Formatter):
    def __init__(self, env: str = "dev"):
        self.env = env
        super().__init__(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        ctx = _request_context.get()
        record.env = self.env
        record.request_id = ctx.request_id if ctx else "-"
        record.user_id = ctx.user_id if ctx and ctx.user_id is not None else "-"
        return super().format(record)


# Libraries whose INFO output drowns the application's own records
NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "botocore": logging.WARNING,
    "boto3": logging.WARNING,
    "passlib": logging.ERROR,
}


def setup_logging(env: str = "dev", log_level: str = "INFO") -> logging.Logger:
    """
    Route all records through one stdout handler with the structured format

    Args:
        env: Environment label written on every line
        log_level: Root level name; unknown names fall back to INFO
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(env=env))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)

    return root
