# Load environment variables FIRST, before any module imports that need them
from dotenv import load_dotenv
load_dotenv()

import logging
import uuid
from typing import Dict

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from .config import CORS_ORIGINS
from .errors import (
    AlreadyRedeemed,
    InvalidAddOn,
    InvalidInput,
    InvalidSize,
    InvalidTransition,
    MissingField,
    OrderBotError,
    OrderCancelled,
    OrderNotFound,
    ProductUnavailable,
    SessionNotFound,
    TokenNotFound,
    TransientFailure,
)
from .logging_config import setup_logging
from .routes import (
    admin_orders_router,
    chat_router,
    limiter,
    orders_router,
    seller_router,
)

# Configure logging at module load time
setup_logging()

logger = logging.getLogger(__name__)


app = FastAPI(
    title="Cafe Bot API",
    description="Conversational drink ordering with single-use pickup tokens",
    version="1.0.0",
    openapi_tags=[
        {"name": "Health", "description": "Health check endpoints"},
        {"name": "Chat", "description": "Customer conversation endpoints"},
        {"name": "Orders", "description": "Customer order endpoints"},
        {"name": "Seller", "description": "Pickup counter endpoints"},
        {"name": "Admin - Orders", "description": "Seller order list"},
    ],
)


# ---------- Request ID Middleware ----------
# Adds a unique request ID to each request for debugging and log correlation


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each request.
    The ID is available in request.state.request_id and returned in X-Request-ID header.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(RequestIDMiddleware)

# Add rate limit exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS configuration
# In production, set CORS_ORIGINS to restrict allowed origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Domain errors ----------

ERROR_STATUS: Dict[type, int] = {
    InvalidInput: 400,
    MissingField: 422,
    ProductUnavailable: 409,
    InvalidSize: 409,
    InvalidAddOn: 409,
    SessionNotFound: 404,
    OrderNotFound: 404,
    TokenNotFound: 404,
    AlreadyRedeemed: 409,
    OrderCancelled: 409,
    InvalidTransition: 409,
    TransientFailure: 503,
}


def status_for(exc: OrderBotError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


@app.exception_handler(OrderBotError)
async def order_bot_error_handler(request: Request, exc: OrderBotError) -> JSONResponse:
    status_code = status_for(exc)
    body = {"error": exc.code, "detail": exc.message, "retryable": exc.retryable}
    if isinstance(exc, MissingField):
        body["fields"] = exc.fields
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=status_code, content=body)


# ---------- Health ----------


@app.get("/health", tags=["Health"])
def health() -> Dict[str, str]:
    """Health check endpoint. Returns ok if the service is running."""
    return {"status": "ok"}


# ---------- Routers ----------

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(chat_router)
api_v1_router.include_router(orders_router)
api_v1_router.include_router(seller_router)
api_v1_router.include_router(admin_orders_router)

app.include_router(api_v1_router)

# Also mount at root
app.include_router(chat_router)
app.include_router(orders_router)
app.include_router(seller_router)
app.include_router(admin_orders_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("cafe_bot.main:app", host="0.0.0.0", port=8000)
