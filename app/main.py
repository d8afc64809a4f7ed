# app/main.py
"""
FastAPI application entry point.
Includes CORS, request timing, error rendering, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from app.routers import analytics, auth, detections, health
from app.database import SessionLocal, create_tables, test_db_connection
from app.exceptions import APIException, DependencyError
from app.services.auth_service import purge_expired
from app.config import settings
from app.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="ALPR Dashboard API",
    description="License plate detection browsing, analytics and OTP login.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGIN_LIST,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
def _error_response(exc: APIException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.kind, "detail": exc.message},
    )


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} → {exc.status_code} {exc.kind}: {exc.message}")
    return _error_response(exc)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=True)
    return _error_response(DependencyError("Database unavailable", dependency="database"))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "internal_error", "detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(auth.router,       prefix=settings.API_PREFIX, tags=["Auth"])
app.include_router(detections.router, prefix=settings.API_PREFIX, tags=["Detections"])
app.include_router(analytics.router,  prefix=settings.API_PREFIX, tags=["Analytics"])
app.include_router(health.router,     prefix=settings.API_PREFIX, tags=["Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("ALPR Dashboard API starting up...")
    if not test_db_connection():
        logger.error("Database unreachable at startup, auth tables not checked")
        return

    create_tables()
    logger.info("Auth tables ready")

    db = SessionLocal()
    try:
        purge_expired(db)
    finally:
        db.close()
    logger.info(f"Listening on http://{settings.HOST}:{settings.PORT}{settings.API_PREFIX}")


@app.on_event("shutdown")
async def shutdown():
    logger.info("ALPR Dashboard API shutting down...")
