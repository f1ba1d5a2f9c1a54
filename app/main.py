import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routers.bookings import router as bookings_router
from app.api.routers.health import router as health_router
from app.api.routers.logistic_slots import router as logistic_slots_router
from app.api.routers.subscription_credits import router as subscription_credits_router
from app.api.routers.webhooks import router as webhooks_router
from app.config import get_settings
from app.domain.errors import (
    AuthenticationRequiredError,
    BookingNotFoundError,
    BookingNotModifiableError,
    BookingNotPayableError,
    ConcurrentModificationError,
    DomainError,
    ForbiddenError,
    InvalidBookingTransitionError,
    SlotNotFoundError,
    ValidationError,
    WebhookPayloadError,
    WebhookSignatureError,
)
from app.infrastructure.db.engine import get_engine
from app.infrastructure.db.tables import metadata

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if get_settings().use_in_memory:
        yield
        return
    # Initialize DB tables (for dev/demo purposes)
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield
    await engine.dispose()

app = FastAPI(
    title="Laundry Booking API",
    version="0.1.0",
    lifespan=lifespan
)

_STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (ValidationError, 400),
    (WebhookSignatureError, 400),
    (WebhookPayloadError, 400),
    (AuthenticationRequiredError, 401),
    (ForbiddenError, 403),
    (BookingNotFoundError, 404),
    (SlotNotFoundError, 404),
    (BookingNotModifiableError, 409),
    (InvalidBookingTransitionError, 409),
    (BookingNotPayableError, 409),
    (ConcurrentModificationError, 409),
]


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    status_code = next(
        (code for error_type, code in _STATUS_BY_ERROR if isinstance(exc, error_type)),
        422,
    )
    content = {"detail": exc.message, "code": exc.code}
    field = getattr(exc, "field", None)
    if field:
        content["field"] = field
    logger.info(
        "Request rejected",
        extra={
            "path": request.url.path,
            "method": request.method,
            "code": exc.code,
            "status_code": status_code,
        },
    )
    return JSONResponse(status_code=status_code, content=content)


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Last-resort handler: log the full error internally and return a generic
    message with an ``error_id`` the client can quote to support.
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception occurred",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "message": "An unexpected error occurred. Please contact support with the error_id if the issue persists."
        }
    )


app.include_router(health_router, tags=["Health"])
app.include_router(logistic_slots_router, prefix="/api/v1", tags=["Logistic slots"])
app.include_router(bookings_router, prefix="/api/v1", tags=["Bookings"])
app.include_router(subscription_credits_router, prefix="/api/v1", tags=["Subscription credits"])
app.include_router(webhooks_router, prefix="/api/v1", tags=["Webhooks"])
