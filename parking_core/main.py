# parking_core/main.py
"""
FastAPI application entry point.
Includes security middleware, error-kind → status-code mapping, and all routers.
"""

import time

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from parking_core.config import settings
from parking_core.database import create_tables
from parking_core.errors import Conflict, Forbidden, NotFound, ParkingError, ValidationError
from parking_core.routers import health, prebookings, vehicles
from parking_core.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Parking Occupancy & Prebooking API",
    description="Vehicle entry/exit tracking, prebooking tokens and day-based billing.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (allow the staff/user dashboards to call the API) ───────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional shared key between the auth proxy and this service.
    Set API_KEY in .env. Leave empty to disable.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key")
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


# ── Domain Error Mapping ─────────────────────────────────────────────────────
ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_409_CONFLICT,
}


@app.exception_handler(ParkingError)
async def parking_error_handler(request: Request, exc: ParkingError):
    code = next((c for kind, c in ERROR_STATUS.items() if isinstance(exc, kind)),
                status.HTTP_400_BAD_REQUEST)
    logger.info(f"{request.method} {request.url.path} → {code} [{exc.reason}] {exc.message}")
    return JSONResponse(status_code=code, content={"detail": exc.message, "reason": exc.reason})


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(prebookings.router, prefix="/api/v1", tags=["Prebookings"])
app.include_router(vehicles.router,    prefix="/api/v1", tags=["Vehicles"])
app.include_router(health.router,      prefix="/api/v1", tags=["Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("Parking backend starting up...")
    create_tables()
    logger.info("Database tables ready")
    logger.info(f"Token prefix: {settings.TOKEN_PREFIX} | Vehicle types billed: {sorted(settings.BILLING_RATES)}")
    logger.info(f"Listening on http://{settings.BACKEND_HOST}:{settings.BACKEND_PORT}")


@app.on_event("shutdown")
async def shutdown():
    logger.info("Parking backend shutting down...")
