"""
FastAPI server for Classmate Hub
Provides the REST API used by the web UI
"""
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .auth_routes import router as auth_router
from .config import Config, config
from .course_routes import router as course_router
from .db.engine import Database
from .exceptions import (
    AppError,
    app_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .logging_config import RequestIDMiddleware, setup_logging
from .middleware.error_handler import database_error_handler
from .oauth_routes import build_google_sso
from .oauth_routes import router as oauth_router
from .photo_routes import router as photo_router
from .services.email_provider import EmailProvider, build_email_provider
from .services.session_claims import SessionClaimsBuilder
from .services.storage_provider import ImageHost, LocalDiskImageHost, get_image_host
from .upload_routes import router as upload_router
from .user_routes import router as user_router

logger = logging.getLogger(__name__)

_UNSET = object()


@asynccontextmanager
async def lifespan(app: FastAPI):
    database: Database = app.state.database
    try:
        database.init()
    except OperationalError as e:
        # Requests retry the connection; /health reports it meanwhile
        logger.error(f"Database initialization failed: {e}")
    yield
    database.shutdown()


def create_app(
    settings: Optional[Config] = None,
    database: Optional[Database] = None,
    email_provider: Optional[EmailProvider] = None,
    image_host: Optional[ImageHost] = None,
    google_sso=_UNSET,
) -> FastAPI:
    """
    Build the application

    Every collaborator defaults to one built from the configuration; tests
    pass their own. Pass google_sso=None to run without Google sign-in.
    """
    settings = settings or config
    setup_logging(env=settings.ENV, log_level=settings.LOG_LEVEL)

    app = FastAPI(title="Classmate Hub API", version=__version__, lifespan=lifespan)

    app.state.settings = settings
    app.state.database = database or Database.from_config(settings)
    app.state.session_builder = SessionClaimsBuilder(
        settings.SECRET_KEY, max_age=timedelta(days=settings.SESSION_MAX_AGE_DAYS)
    )
    app.state.email_provider = email_provider or build_email_provider(settings)
    app.state.image_host = image_host or get_image_host(settings)
    app.state.google_sso = build_google_sso(settings) if google_sso is _UNSET else google_sso

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(auth_router)
    app.include_router(oauth_router)
    app.include_router(user_router)
    app.include_router(photo_router)
    app.include_router(upload_router)
    app.include_router(course_router)

    if isinstance(app.state.image_host, LocalDiskImageHost):
        app.mount("/media", StaticFiles(directory=str(app.state.image_host.base_path)), name="media")

    @app.get("/")
    async def root():
        return {"message": "Classmate Hub API", "status": "running"}

    @app.get("/health")
    def health(request: Request):
        """Health check, pings the database"""
        if request.app.state.database.ping():
            return {"status": "healthy", "database": "connected"}
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "unreachable"},
        )

    logger.info(f"Classmate Hub API configured (env={settings.ENV})")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting Classmate Hub API server on port {config.PORT}")
    logger.info(f"Health check endpoint: http://0.0.0.0:{config.PORT}/health")
    uvicorn.run(app, host="0.0.0.0", port=config.PORT, log_config=None, access_log=False)
