# learncheck/main.py
import logging
import time
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learncheck.api import quiz_routes, submission_routes, tutorial_routes, user_routes
from learncheck.cache import CacheBackend, RedisCache
from learncheck.config import Settings
from learncheck.content_client import ContentClient
from learncheck.errors import RequestValidationFailed, describe_validation_errors
from learncheck.history import AttemptHistory
from learncheck.llm_client import QuestionGenerator
from learncheck.quiz_manager import QuizManager
from learncheck.rate_limit import RateLimiter, RateLimitMiddleware, default_rules

logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS = [
    "GET /health",
    "GET /api/tutorials",
    "GET /api/tutorials/:id",
    "POST /api/tutorials/:id/questions",
    "GET /api/users/:id/preferences",
    "PUT /api/users/:id/preferences",
    "POST /api/llm/generate-questions",
    "GET /api/llm/models",
    "POST /api/submissions",
    "GET /api/submissions/:userId?tutorialId=",
    "DELETE /api/submissions/:userId/:tutorialId",
]


def _validation_response(details) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation error", "details": details},
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationFailed)
    async def _request_validation_failed(request: Request, exc: RequestValidationFailed):
        return _validation_response(exc.details)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        return _validation_response(describe_validation_errors(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        content = {"success": False, "error": exc.detail, "status": "error"}
        if exc.status_code == 404 and exc.detail == "Not Found":
            content["error"] = "Endpoint not found"
            content["message"] = f"{request.method} {request.url.path} is not a valid API endpoint"
            content["availableEndpoints"] = AVAILABLE_ENDPOINTS
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


def create_app(
    settings: Optional[Settings] = None,
    cache: Optional[CacheBackend] = None,
    generator: Optional[QuestionGenerator] = None,
    content: Optional[ContentClient] = None,
) -> FastAPI:
    """
    Build the API with its collaborators wired in explicitly.

    Anything not passed is built from settings (which default to the
    environment), so tests can hand in fakes for the cache, the generator and
    the content API.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    cache = cache if cache is not None else RedisCache(settings.redis_url)
    generator = generator if generator is not None else QuestionGenerator(settings)
    content = content if content is not None else ContentClient(
        settings.content_api_url, timeout=settings.content_api_timeout
    )

    app = FastAPI(
        title="LearnCheck Quiz Backend",
        description="Adaptive formative-assessment questions generated from tutorial content.",
        version=settings.version,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.quiz_manager = QuizManager(
        cache,
        generator,
        content,
        questions_ttl=settings.questions_cache_ttl,
        tutorial_ttl=settings.tutorial_cache_ttl,
    )
    app.state.history = AttemptHistory(cache)

    # Last added runs outermost: CORS must wrap the limiter so 429s carry its headers
    if settings.rate_limit_enabled:
        limiter = RateLimiter(
            default_rules(
                general_max=settings.rate_limit_general_max,
                general_window=settings.rate_limit_general_window,
                ai_max=settings.rate_limit_ai_max,
                ai_window=settings.rate_limit_ai_window,
            )
        )
        app.state.rate_limiter = limiter
        app.add_middleware(RateLimitMiddleware, limiter=limiter)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    _register_error_handlers(app)

    app.include_router(quiz_routes.router)
    app.include_router(tutorial_routes.router)
    app.include_router(user_routes.router)
    app.include_router(submission_routes.router)

    @app.on_event("shutdown")
    async def shutdown_event():
        await cache.close()
        await content.close()

    @app.get("/", tags=["System"])
    async def home():
        return {
            "message": "LearnCheck Backend API",
            "version": settings.version,
            "status": "running",
            "documentation": "/docs",
            "health": "/health",
        }

    @app.get("/health", tags=["System"])
    async def health(request: Request):
        return {
            "status": "OK",
            "message": "LearnCheck Backend is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - request.app.state.started_at, 3),
            "version": settings.version,
            "services": {
                "contentApi": await content.health_check(),
                "cache": {"success": await cache.ping()},
                "llm": generator.describe(),
            },
        }

    logger.info("LearnCheck backend configured (LLM provider: %s)", settings.llm_provider)
    return app


if __name__ == "__main__":
    uvicorn.run("learncheck.main:create_app", factory=True, host="0.0.0.0", port=Settings.from_env().port)
