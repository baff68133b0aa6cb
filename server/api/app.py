"""FastAPI application setup."""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import hashlib
import logging
import time

from api.routes import assistant
from api.routes.health import router as health_router
from config.logging_config import setup_logging
from config.settings import settings
from database.client import init_supabase
from core.dependencies import init_dependencies, shutdown_dependencies

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # STARTUP
    logger.info("Initializing database connection...")
    init_supabase()
    init_dependencies()
    logger.info("Application started")
    yield
    # SHUTDOWN
    await shutdown_dependencies()
    logger.info("Application shut down")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="OptiPlan Assistant API",
        description="Conversational drafting of expenses, classes, tasks and study tasks",
        version="1.0.0",
        lifespan=lifespan,
    )

    # -----------------------------------------------------------------------
    # CORS — never combine allow_credentials=True with allow_origins=["*"]
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Simple in-process rate limiter (per-user or per-IP, per-minute)
    # Uses a bounded dict with periodic eviction to prevent memory leaks.
    # -----------------------------------------------------------------------
    _MAX_RATE_BUCKETS = 10_000
    _rate_buckets: dict[str, list[float]] = {}
    _last_eviction: float = time.time()
    _rate_lock = asyncio.Lock()
    RATE_LIMIT = settings.RATE_LIMIT_PER_MINUTE

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        nonlocal _last_eviction

        # Skip rate limiting for health checks
        if request.url.path == "/health":
            return await call_next(request)

        user_id = request.headers.get("x-user-id", "")
        if user_id:
            bucket_key = "user:" + hashlib.sha256(user_id.encode()).hexdigest()[:16]
        else:
            client_ip = request.client.host if request.client else "unknown"
            bucket_key = "ip:" + hashlib.sha256(client_ip.encode()).hexdigest()[:16]

        async with _rate_lock:
            now = time.time()

            # Periodic full eviction every 5 minutes to reclaim abandoned keys
            if now - _last_eviction > 300:
                stale_keys = [
                    k for k, v in _rate_buckets.items()
                    if not v or (now - v[-1]) > 120
                ]
                for k in stale_keys:
                    del _rate_buckets[k]
                if len(_rate_buckets) > _MAX_RATE_BUCKETS:
                    sorted_keys = sorted(
                        _rate_buckets,
                        key=lambda k: _rate_buckets[k][-1] if _rate_buckets[k] else 0,
                    )
                    for k in sorted_keys[: len(sorted_keys) // 2]:
                        del _rate_buckets[k]
                _last_eviction = now

            bucket = [t for t in _rate_buckets.get(bucket_key, []) if now - t < 60]
            if len(bucket) >= RATE_LIMIT:
                return Response(
                    content='{"detail":"Rate limit exceeded. Try again later."}',
                    status_code=429,
                    media_type="application/json",
                )
            bucket.append(now)
            _rate_buckets[bucket_key] = bucket

        return await call_next(request)

    # Include routers
    app.include_router(health_router, tags=["Health"])
    app.include_router(assistant.router, prefix="/assistant", tags=["Assistant"])

    logger.info("FastAPI application created")
    return app
