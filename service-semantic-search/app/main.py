"""Semantic search service main application."""

import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from .api.routes import router as api_router
from .encoders.embedding_generator import EmbeddingGenerator
from .encoders.transformer_encoder import TransformerEncoder
from .runtime.metrics import get_metrics_collector
from .search.search_manager import SearchManager
from libs.common.config import SearchConfig, log_database_fallbacks
from libs.common.errors import RequestError, StartupError
from libs.common.logging import configure_logging
from libs.vector_store.pool import close_pool, initialize_pool
from libs.vector_store.ranking import create_catalog_ranker

SERVICE_NAME = "semantic-search-service"

logger = structlog.get_logger("search_service")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Builds the validated pool and loads the encoder before serving. Any
    ``StartupError`` propagates so the server refuses to start.
    """
    # Startup
    config = SearchConfig()
    configure_logging(SERVICE_NAME, config.log_level, config.log_format)
    app.state.config = config
    app.state.startup_time = time.time()

    logger.info("Starting semantic search service")
    log_database_fallbacks(config)

    app.state.metrics_collector = get_metrics_collector(SERVICE_NAME)

    try:
        pool = await initialize_pool(config.database_settings())
    except StartupError as e:
        logger.error("Failed to initialize database connection pool", kind=e.kind, error=e.detail)
        raise

    try:
        encoder = await run_in_threadpool(
            TransformerEncoder.from_directory,
            config.model_dir,
            config.model_device,
            config.model_max_length,
        )
    except StartupError as e:
        logger.error("Failed to initialize embedding model", kind=e.kind, error=e.detail)
        await close_pool(pool)
        raise

    if config.vector_dimension and encoder.dimension and encoder.dimension != config.vector_dimension:
        logger.warning(
            "Encoder hidden size differs from configured vector dimension",
            encoder_dimension=encoder.dimension,
            vector_dimension=config.vector_dimension,
        )

    ranker = create_catalog_ranker(
        pool,
        acquire_timeout=config.pool_acquire_timeout,
        geo_radius_meters=config.search_geo_radius_meters,
        vector_dimension=config.vector_dimension,
    )
    app.state.pool = pool
    app.state.encoder = encoder
    app.state.search_manager = SearchManager(
        config,
        EmbeddingGenerator(encoder, app.state.metrics_collector),
        ranker,
        app.state.metrics_collector,
    )

    logger.info("Semantic search service started successfully")

    yield

    # Shutdown
    logger.info("Shutting down semantic search service")
    await close_pool(pool)
    logger.info("Semantic search service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Semantic Search Service",
    description="Semantic and geo-filtered search over the service catalog",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=SearchConfig().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)

app.include_router(api_router)


@app.exception_handler(RequestError)
async def request_error_handler(request: Request, exc: RequestError):
    """Render request failures without internal detail."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Render malformed request bodies as 400 with the first failing field."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    logger.warning("Request validation failed", path=request.url.path, error=message)
    return JSONResponse(status_code=400, content={"error": message})


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Collect metrics for HTTP requests."""
    start_time = time.time()

    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as e:
        logger.exception("Unhandled error", path=request.url.path, error=str(e))
        status_code = 500
        response = JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    duration = time.time() - start_time

    if hasattr(app.state, 'metrics_collector'):
        app.state.metrics_collector.record_http_request(
            method=request.method,
            endpoint=request.url.path,
            status=status_code,
            duration=duration
        )

    return response


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    search_manager = getattr(app.state, "search_manager", None)
    search_health = await search_manager.health_check() if search_manager else False

    if search_health:
        return {"status": "healthy", "service": SERVICE_NAME}
    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "service": SERVICE_NAME}
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    if hasattr(app.state, 'metrics_collector'):
        metrics_data = app.state.metrics_collector.get_metrics()
        return Response(content=metrics_data, media_type="text/plain")
    else:
        return Response(content="# No metrics available\n", media_type="text/plain")


@app.get("/live")
async def liveness():
    """Liveness probe. Returns quickly if process is responsive."""
    return {
        "status": "alive",
        "service": SERVICE_NAME,
        "uptime_seconds": time.time() - getattr(app.state, "startup_time", time.time())
    }


@app.get("/ready")
async def readiness():
    """Readiness probe. Validates the pool and the encoder are available."""
    search_manager = getattr(app.state, "search_manager", None)
    if search_manager is None:
        logger.error("Readiness probe failed", error="Search manager not initialized")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "service": SERVICE_NAME}
        )

    if not await search_manager.health_check():
        logger.error("Readiness probe failed", error="Database round trip failed")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "service": SERVICE_NAME}
        )

    return {
        "status": "ready",
        "service": SERVICE_NAME,
        "model": search_manager.embedding_generator.model_name,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": SERVICE_NAME,
        "version": "0.1.0",
        "status": "running",
        "message": "Semantic Search API is running",
        "endpoints": {
            "search": "/search",
            "health": "/health",
            "metrics": "/metrics"
        },
        "probes": {
            "health": "/health",
            "live": "/live",
            "ready": "/ready"
        }
    }


def run() -> None:
    """Serve the application on ``SERVER_HOST``:``SERVER_PORT``."""
    config = SearchConfig()
    logger.info("Starting HTTP server", host=config.server_host, port=config.server_port)
    uvicorn.run(
        "app.main:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower()
    )


if __name__ == "__main__":
    run()
