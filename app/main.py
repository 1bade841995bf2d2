# app/main.py
"""
FastAPI application: proximity graph API with pooled resources.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import settings
from app.db.pool import db_pool
from app.features.proximity_graph.api.router import router as proximity_graph_router
from app.features.proximity_graph.domain import (
    AuthenticationRequired,
    InvalidArgument,
    ProximityGraphError,
    ResourceNotFound,
)
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.middleware import RequestContextMiddleware
from app.routes import health
from app.services.object_storage import object_storage
from app.services.push_gateway import push_gateway
from app.services.redis_client import fast_redis

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    startup_tasks = []

    try:
        logger.info("Initializing database pool")
        await db_pool.initialize()
        startup_tasks.append("database_pool")

        logger.info("Initializing Redis connection")
        await fast_redis.initialize()
        startup_tasks.append("redis")

        await push_gateway.initialize()
        startup_tasks.append("push_gateway")

        await object_storage.initialize()
        startup_tasks.append("object_storage")

        logger.info("All services initialized successfully", services=startup_tasks)

    except Exception as e:
        logger.error("Failed to initialize services", error=str(e), completed_tasks=startup_tasks)
        await _shutdown(startup_tasks)
        raise

    yield

    logger.info("Application shutting down")
    await _shutdown(startup_tasks)


async def _shutdown(started: list[str]) -> None:
    """Close whatever was started, in reverse order."""
    closers = {
        "object_storage": object_storage.close,
        "push_gateway": push_gateway.close,
        "redis": fast_redis.close,
        "database_pool": db_pool.close,
    }
    shutdown_errors = []
    for name in reversed(started):
        try:
            await closers[name]()
        except Exception as e:
            logger.error("Error closing service", service=name, error=str(e))
            shutdown_errors.append(f"{name}: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully", services=started)


app = FastAPI(
    title="Putrace Proximity Graph",
    description="Shared-contact proximity graph, audiences and notifications",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

app.include_router(health.router)
app.include_router(proximity_graph_router)


@app.exception_handler(AuthenticationRequired)
async def authentication_required_handler(request: Request, exc: AuthenticationRequired):
    return JSONResponse(
        status_code=401, content=exc.to_dict(), headers={"WWW-Authenticate": "Bearer"}
    )


@app.exception_handler(InvalidArgument)
async def invalid_argument_handler(request: Request, exc: InvalidArgument):
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(ResourceNotFound)
async def resource_not_found_handler(request: Request, exc: ResourceNotFound):
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    detail = f"{field}: {first.get('msg', 'invalid request')}" if field else "invalid request"
    return JSONResponse(status_code=400, content=InvalidArgument(detail).to_dict())


@app.exception_handler(ProximityGraphError)
async def proximity_graph_error_handler(request: Request, exc: ProximityGraphError):
    logger.error("Unhandled feature error", path=request.url.path, error=str(exc), code=exc.code)
    return JSONResponse(status_code=500, content=exc.to_dict())


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
