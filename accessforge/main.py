# accessforge/main.py
from contextlib import asynccontextmanager
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from accessforge.core.config import settings
from accessforge.core.logging import logger
from accessforge.api.v1.router import api_router
from accessforge.rules.engine import RulesEngine


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME} API")
    app.state.rules_engine = RulesEngine()

    yield

    logger.info(f"Shutting down {settings.PROJECT_NAME} API")
    app.state.rules_engine.clear_cache()


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=("/api/docs" if settings.ENVIRONMENT == "development" else None),
    redoc_url=("/api/redoc" if settings.ENVIRONMENT == "development" else None),
    lifespan=lifespan
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Tag each request with an id and log its outcome and timing"""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id

    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = time.perf_counter() - start_time

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{process_time:.6f}"
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={"request_id": request_id, "duration_ms": round(process_time * 1000, 3)},
    )
    return response


app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    engine = getattr(request.app.state, "rules_engine", None)
    return {
        "status": "healthy" if engine is not None else "starting",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "rules_loaded": engine.rule_count() if engine is not None else 0,
        "standards": sorted(engine.catalogue) if engine is not None else [],
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "Unhandled exception while handling request",
        exc_info=exc,
        extra={"request_id": request_id},
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": request_id},
    )
