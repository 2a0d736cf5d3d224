import hmac
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware
from app.api.routes import router
from app.config import settings
from app.modules.aisstream_client import AISStreamManager
from app.modules.marinesia_client import MarinesiaClient
from app.modules.vessel_aggregator import VesselSearchAggregator
from app.modules.vessel_index import VesselIndex

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the vessel data layer, start the live feed, tear down on exit."""
    index = VesselIndex()
    feed = AISStreamManager(index, api_key=settings.AISSTREAM_API_KEY)
    marinesia = MarinesiaClient(api_key=settings.MARINESIA_API_KEY)
    if not marinesia.is_configured:
        logger.warning("MARINESIA_API_KEY not configured: remote profile lookups disabled")

    app.state.vessel_index = index
    app.state.feed = feed
    app.state.marinesia = marinesia
    app.state.aggregator = VesselSearchAggregator(index, feed=feed, remote=marinesia)

    await feed.start()
    try:
        yield
    finally:
        await feed.stop()
        await marinesia.aclose()


app = FastAPI(
    title="IWC Vessel Service",
    description=(
        "Live vessel index and multi-source vessel search for in-water "
        "cleaning notifications."
    ),
    version=VERSION,
    license_info={"name": "Apache-2.0"},
    lifespan=lifespan,
)

# CORS: origins from settings (supports comma-separated env var)
cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# API key authentication middleware
class APIKeyMiddleware(BaseHTTPMiddleware):
    """Simple API key check. If IWC_API_KEY is unset, all requests pass."""

    async def dispatch(self, request: Request, call_next):
        if settings.IWC_API_KEY is not None:
            # Allow health check and OpenAPI docs without auth
            if request.url.path not in ("/health", "/docs", "/openapi.json", "/redoc"):
                api_key = request.headers.get("X-API-Key")
                if not hmac.compare_digest(api_key or "", settings.IWC_API_KEY):
                    return JSONResponse(
                        status_code=401,
                        content={"detail": "Invalid or missing API key"},
                    )
        return await call_next(request)


app.add_middleware(APIKeyMiddleware)

# Rate limiting: 60/min per client
limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(router, prefix="/api/v1")


# ── Structured error handlers ─────────────────────────────────────────────────

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"error": "Validation error", "detail": str(exc)})


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s:\n%s", request.method, request.url.path, traceback.format_exc())
    return JSONResponse(status_code=500, content={"error": "Internal server error", "detail": "An unexpected error occurred."})


@app.get("/health")
async def health(request: Request) -> dict:
    feed = getattr(request.app.state, "feed", None)
    return {
        "status": "ok",
        "version": VERSION,
        "feed": feed.status().connection_status if feed is not None else "not_started",
    }
