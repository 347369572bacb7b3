import hmac
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.middleware.base import BaseHTTPMiddleware
from seatime import __version__
from seatime.api.routes import router
from seatime.config import settings
from seatime.modules.scheduler import SeaTimeScheduler

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, then own the scheduler for the life of the process."""
    from seatime.database import init_db
    init_db()

    scheduler = SeaTimeScheduler()
    app.state.scheduler = scheduler
    if settings.SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.info("SCHEDULER_ENABLED is false - automatic position checks are off")
    try:
        yield
    finally:
        scheduler.stop(timeout=settings.AIS_FETCH_TIMEOUT + 5)


app = FastAPI(
    title="SeaTime",
    description=(
        "Automated sea-time detection from vessel positions. "
        "Detected entries are pending until the mariner reviews them."
    ),
    version=__version__,
    lifespan=lifespan,
)

# CORS - origins from settings (supports comma-separated env var)
cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Simple API key check. If SEATIME_API_KEY is unset, all requests pass."""

    async def dispatch(self, request: Request, call_next):
        if settings.SEATIME_API_KEY is not None:
            if request.url.path not in ("/health", "/docs", "/openapi.json", "/redoc"):
                api_key = request.headers.get("X-API-Key")
                if not hmac.compare_digest(api_key or "", settings.SEATIME_API_KEY):
                    return JSONResponse(
                        status_code=401,
                        content={"detail": "Invalid or missing API key"},
                    )
        return await call_next(request)


app.add_middleware(APIKeyMiddleware)

app.include_router(router, prefix="/api/v1")


# ── Structured error handlers ─────────────────────────────────────────────────

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"error": "Validation error", "detail": str(exc)})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    return JSONResponse(status_code=409, content={"error": "Conflict", "detail": str(exc.orig) if exc.orig else str(exc)})


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s:\n%s", request.method, request.url.path, traceback.format_exc())
    return JSONResponse(status_code=500, content={"error": "Internal server error", "detail": "An unexpected error occurred."})


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "version": __version__}
