import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .database import init_db
from .redis_client import redis_client
from .routers import availability, bookings, calendar, clients, manage, slots
from .routers import settings as settings_router
from .services.results import BookingStoreError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database ready")
    yield


app = FastAPI(title="Booking API", lifespan=lifespan)

app.include_router(slots.router)
app.include_router(bookings.router)
app.include_router(manage.router)
app.include_router(clients.router)
app.include_router(availability.router)
app.include_router(settings_router.router)
app.include_router(calendar.router)


@app.exception_handler(BookingStoreError)
async def booking_store_error_handler(request: Request, exc: BookingStoreError):
    logger.error(f"Store failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "internal error"})


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except Exception as e:
        logger.warning(f"Redis ping failed: {e}")
        redis_ok = False
    return {"status": "ok", "redis": redis_ok}
