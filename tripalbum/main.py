import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from tripalbum.api.auth import router as auth_router
from tripalbum.api.router import api_router
from tripalbum.auth.guard import AccessGuardMiddleware, AccessRules
from tripalbum.config import DEFAULT_SESSION_SECRET, get_settings
from tripalbum.database import create_database

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings.validate_security()
    if settings.session_secret == DEFAULT_SESSION_SECRET:
        logger.warning("Using the default SESSION_SECRET (debug mode only)")
    logger.info("Identity provider: %s", settings.sauth_base_url)

    app.state.database = create_database(settings)
    yield
    await app.state.database.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Family trip photo albums",
    version="1.0.0",
    lifespan=lifespan,
)

# Redirect browsers between login and protected pages based on the session cookie.
# Added first so CORS preflights are answered before the guard sees them.
app.add_middleware(AccessGuardMiddleware, rules=AccessRules.from_settings(settings))

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Enable GZip compression for responses > 500 bytes
app.add_middleware(GZipMiddleware, minimum_size=500)

# Browser login flow lives at the site root; JSON API under /api/v1
app.include_router(auth_router)
app.include_router(api_router, prefix="/api/v1")


def _validation_errors(exc: RequestValidationError | ValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({"field": field, "message": error["msg"]})
    return errors


# Global exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "errors": _validation_errors(exc),
        },
    )


@app.exception_handler(ValidationError)
async def pydantic_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "errors": _validation_errors(exc),
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")

    # Don't expose internal error details in production
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An unexpected error occurred. Please try again later.",
        },
    )
