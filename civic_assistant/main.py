"""FastAPI application setup for the civic assistant core."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from civic_assistant import config
from civic_assistant.api import router as api_router
from civic_assistant.errors import RateLimitExceeded, ValidationError
from civic_assistant.services import Services, build_services
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="civic_assistant/main")


def _register_error_handlers(app: FastAPI, settings: config.Settings) -> None:
    """Map the error taxonomy onto HTTP responses."""

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        body = {"error": str(exc)}
        if exc.required:
            body["required"] = exc.required
        return JSONResponse(body, status_code=status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        logger.debug("Malformed request body: %s", exc.errors())
        return JSONResponse(
            {"error": "Invalid request payload", "message": "Please check your request format"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded):
        retry_after = max(1, int(round(exc.retry_after_seconds)))
        return JSONResponse(
            {
                "error": "Rate limit exceeded",
                "message": "Too many requests. Please try again in a minute.",
                "retryAfterSeconds": retry_after,
            },
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(retry_after)},
        )

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        body = {"error": "Internal server error"}
        if not settings.is_production:
            body["message"] = str(exc)
        return JSONResponse(body, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app(settings: config.Settings | None = None, services: Services | None = None) -> FastAPI:
    """Build the FastAPI app with one service container for the process."""
    settings = settings or (services.settings if services else config.settings)
    setup_logging(level=settings.log_level)
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        services.aggregator.shutdown()

    app = FastAPI(title="Civic Assistant", lifespan=lifespan)
    app.state.services = services
    _register_error_handlers(app, settings)
    app.include_router(api_router, prefix=settings.api_prefix)
    logger.info("App created", extra={"environment": settings.environment})
    return app


app = create_app()
