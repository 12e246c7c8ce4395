import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.database import create_db_and_tables
from app.config import settings
from app.exceptions import ServiceError, UpstreamFailure, UpstreamRejected
from app.routes import (
    commissions,
    contracts,
    health,
    notifications,
    orders,
    payments,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.ENV == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Campus Eats API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if isinstance(exc, (UpstreamFailure, UpstreamRejected)):
        logger.error(f"{request.method} {request.url.path}: {exc.__class__.__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


API_PREFIX = "/api/v1"

app.include_router(orders.router, prefix=f"{API_PREFIX}/orders", tags=["Orders"])
app.include_router(payments.router, prefix=f"{API_PREFIX}/payments", tags=["Payments"])
app.include_router(contracts.router, prefix=f"{API_PREFIX}/contracts", tags=["Contracts"])
app.include_router(commissions.router, prefix=f"{API_PREFIX}/commissions", tags=["Commissions"])
app.include_router(notifications.router, prefix=f"{API_PREFIX}/admin/notifications", tags=["Admin Notifications"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "order_endpoints": [
            "/api/v1/orders", "/api/v1/orders/{order_id}",
            "/api/v1/orders/{order_id}/status", "/api/v1/orders/{order_id}/cancel",
            "/api/v1/orders/verify-qr"
        ],
        "payment_endpoints": [
            "/api/v1/payments", "/api/v1/payments/initialize",
            "/api/v1/payments/webhook", "/api/v1/payments/{payment_id}/verify"
        ],
        "contract_endpoints": [
            "/api/v1/contracts", "/api/v1/contracts/{contract_id}",
            "/api/v1/contracts/{contract_id}/renew", "/api/v1/contracts/lounge/{lounge_id}"
        ],
        "commission_endpoints": [
            "/api/v1/commissions", "/api/v1/commissions/{commission_id}/status"
        ],
        "admin_endpoints": [
            "/api/v1/admin/notifications", "/api/v1/admin/notifications/{notification_id}"
        ],
    }
