"""
FastAPI application entry point.
Builds the app around an AppContext and wires middleware, routers and
exception handlers.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError as PydanticValidationError
import logging

from aashiyana.config import Settings, get_settings
from aashiyana.context import AppContext, build_context
from aashiyana.middleware.validation import RequestContextMiddleware
from aashiyana.routers import auth_router, users_router, properties_router
from aashiyana.services.error_handler import ErrorHandlerService
from aashiyana.utils.exceptions import APIException

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Creates missing tables on startup and releases the pool on shutdown.
    """
    context: AppContext = app.state.context
    settings = context.settings
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    if await context.database.ping():
        await context.database.create_tables()
    else:
        logger.error("Failed to connect to database on startup")

    yield

    logger.info("Shutting down application")
    await context.close()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        return ErrorHandlerService.handle_api_exception(exc, request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return ErrorHandlerService.handle_validation_error(exc, request)

    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
        return ErrorHandlerService.handle_validation_error(exc, request)

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        return ErrorHandlerService.handle_database_error(exc, request)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return ErrorHandlerService.handle_http_exception(exc, request)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        return ErrorHandlerService.handle_unexpected_error(exc, request)


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; read from the environment when omitted
        context: Pre-built context (tests pass one over sqlite and a temp
            upload directory); built from ``settings`` when omitted
    """
    if context is None:
        settings = settings or get_settings()
        context = build_context(settings)
    settings = context.settings
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
    Property listing backend for Apna Aashiyanaa.

    ## Authentication

    Sign in through `/auth/phone` with the ID token issued by the identity
    provider after phone verification, then send it as `Authorization: Bearer <token>`.
    Accounts with a password can use `/auth/login/password` instead.
    """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Authentication", "description": "Phone and password sign-in"},
            {"name": "Users", "description": "Profile of the signed-in user"},
            {"name": "Properties", "description": "Listings, search, favorites and images"},
            {"name": "Health", "description": "Liveness"},
        ],
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(
        RequestContextMiddleware,
        max_request_size=settings.max_request_size,
        enable_request_logging=settings.debug,
    )

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(properties_router)

    if settings.storage_backend == "local":
        app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Liveness with a database round trip."""
        ctx: AppContext = request.app.state.context
        db_healthy = await ctx.database.ping()
        return {
            "status": "healthy" if db_healthy else "degraded",
            "service": ctx.settings.app_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "connected" if db_healthy else "unavailable",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "aashiyana.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
