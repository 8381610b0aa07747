"""
Mise-En-Plaice FastAPI application.

Main application entry point with route registration, CORS, rate limiting
and error handling.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from mealprep.config import settings
from mealprep.api.dependencies import limiter
from mealprep.api.routes import features, guides, recipes
from mealprep.clients.openai_client import OpenAIClient
from mealprep.engine.factory import build_components
from mealprep.errors import ErrorCode, ErrorResponse, MealPrepError
from mealprep.features import get_feature_service

# Configure logging with configurable level
_log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(
    level=_log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Builds the shared generative client and the engine components once.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    client = OpenAIClient.from_settings(settings)
    app.state.components = build_components(
        settings,
        get_feature_service().flags,
        client,
    )
    logger.info(
        f"Enabled features: {', '.join(get_feature_service().get_enabled_features()) or 'none'}"
    )

    yield

    logger.info("Shutting down application...")
    await client.close()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Combine recipes into a single optimized meal prep guide",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add rate limiter to app state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(MealPrepError)
async def mealprep_error_handler(request: Request, exc: MealPrepError):
    """Render application errors as {error, error_code, details}."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code.value}: {exc.message}")
    else:
        logger.info(f"{exc.error_code.value}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are reported as 400 in the application error shape."""
    errors = [
        {"loc": [str(part) for part in error["loc"]], "msg": error["msg"]}
        for error in exc.errors()
    ]
    response = ErrorResponse(
        error="Invalid request",
        error_code=ErrorCode.VALIDATION_INVALID_INPUT,
        details={"errors": errors},
    )
    return JSONResponse(status_code=400, content=response.model_dump())


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(recipes.router)
app.include_router(guides.router)
app.include_router(features.router)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint reporting whether the generative service is configured."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "generative_service": "configured" if settings.generative_configured else "not_configured",
    }


@app.get("/api/health")
async def api_health_check():
    """Liveness check kept at the path older clients poll."""
    return {"status": "ok", "message": f"{settings.app_name} is running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mealprep.main:app",
        host="0.0.0.0",
        port=5001,
        reload=settings.debug,
    )
