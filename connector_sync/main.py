# connector_sync/main.py
"""
FastAPI application entry point.
Lets an operator trigger reconciliation runs over HTTP and inspect past runs.
The CLI (connector_sync.cli) is the usual way to run from cron.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from connector_sync.routers import health, reconciliation
from connector_sync.database import create_tables
from connector_sync.config import settings
from connector_sync.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Connector Sync API",
    description="Reconciles live MQTT connector counts with the charging point inventory.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth. Health check and docs stay open.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(reconciliation.router, prefix="/api/v1", tags=["🔌 Reconciliation"])
app.include_router(health.router,         prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Connector Sync starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"📡 MQTT broker: {settings.MQTT_BROKER_URL} topic={settings.MQTT_TOPIC}")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Connector Sync shutting down...")
