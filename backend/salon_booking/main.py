# backend/salon_booking/main.py

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import SessionLocal
from .errors import BookingError, RateLimitExceeded
from .logging_config import setup_logging
from .middleware.audit import audit_middleware
from .redis_client import redis_client
from .routers import cancel, internal, reschedule, widget
from .services.holds import hold_reaper_loop
from .services.notifications.consumer import p2p_consumer_loop, retry_consumer_loop
from .services.reminders import reminder_checker_loop

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    tasks: list[asyncio.Task] = []
    if settings.background_tasks_enabled:
        tasks = [
            asyncio.create_task(hold_reaper_loop()),
            asyncio.create_task(reminder_checker_loop()),
            asyncio.create_task(p2p_consumer_loop(settings.redis_url)),
            asyncio.create_task(retry_consumer_loop(settings.redis_url)),
        ]
        logger.info(f"Started {len(tasks)} background tasks")

    yield

    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


app = FastAPI(title="Salon Booking API", lifespan=lifespan)

# ===== Middleware =====
app.middleware("http")(audit_middleware)


# ===== Error handlers =====
@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "VALIDATION_FAILED", "message": "Invalid request", "details": details},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=503,
        content={"error": "SERVICE_UNAVAILABLE", "message": "Database unavailable"},
    )


# ===== Routers =====
app.include_router(widget.router)
app.include_router(reschedule.router)
app.include_router(cancel.router)
app.include_router(internal.router)


@app.get("/health")
def health():
    db_ok = True
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except SQLAlchemyError as e:
        logger.error(f"Health check: database unreachable: {e}")
        db_ok = False

    try:
        redis_ok = bool(redis_client.ping())
    except Exception as e:
        logger.error(f"Health check: redis unreachable: {e}")
        redis_ok = False

    status_code = 200 if db_ok else 503
    return JSONResponse(
        status_code=status_code,
        content={"database": db_ok, "redis": redis_ok},
    )
