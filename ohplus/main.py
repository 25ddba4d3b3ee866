import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from google.api_core.exceptions import GoogleAPICallError

from ohplus.api.v1.access import router as access_router
from ohplus.api.v1.bookings import router as bookings_router
from ohplus.api.v1.clients import router as clients_router
from ohplus.api.v1.cms import router as cms_router
from ohplus.api.v1.cost_estimates import router as cost_estimates_router
from ohplus.api.v1.dashboard import router as dashboard_router
from ohplus.api.v1.doctor import router as doctor_router
from ohplus.api.v1.emails import router as emails_router
from ohplus.api.v1.inventory import router as inventory_router
from ohplus.api.v1.invitations import router as invitations_router
from ohplus.api.v1.job_orders import router as job_orders_router
from ohplus.api.v1.me import router as me_router
from ohplus.api.v1.notifications import router as notifications_router
from ohplus.api.v1.petty_cash import router as petty_cash_router
from ohplus.api.v1.places import router as places_router
from ohplus.api.v1.planner import router as planner_router
from ohplus.api.v1.products import router as products_router
from ohplus.api.v1.proposal_templates import router as proposal_templates_router
from ohplus.api.v1.proposals import router as proposals_router
from ohplus.api.v1.proxy import router as proxy_router
from ohplus.api.v1.quotations import router as quotations_router
from ohplus.api.v1.reports import router as reports_router
from ohplus.api.v1.search import router as search_router
from ohplus.api.v1.service_assignments import router as service_assignments_router
from ohplus.api.v1.subscriptions import router as subscriptions_router
from ohplus.api.v1.weather import router as weather_router
from ohplus.core.config import DEV_SECRET_KEY, settings
from ohplus.core.errors import (
    ForbiddenError,
    IntegrationError,
    InvalidInputError,
    NotConfiguredError,
    NotFoundError,
    UnauthorizedError,
)
from ohplus.services import low_stock
from ohplus.services.emails import EmailError
from ohplus.services.storage import FileTooLargeError, StorageError

if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger("ohplus")

app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="OH Plus - Out-of-home advertising operations",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    if settings.is_production and settings.SECRET_KEY == DEV_SECRET_KEY:
        logger.warning("SECRET_KEY is using the default value in production.")


@app.on_event("shutdown")
def on_shutdown() -> None:
    low_stock.stop_all()


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(NotFoundError)
def handle_not_found(request: Request, exc: NotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, str(exc) or "Not found")


@app.exception_handler(InvalidInputError)
def handle_invalid_input(request: Request, exc: InvalidInputError):
    return _error(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(UnauthorizedError)
def handle_unauthorized(request: Request, exc: UnauthorizedError):
    return _error(status.HTTP_401_UNAUTHORIZED, str(exc))


@app.exception_handler(ForbiddenError)
def handle_forbidden(request: Request, exc: ForbiddenError):
    return _error(status.HTTP_403_FORBIDDEN, str(exc))


@app.exception_handler(FileTooLargeError)
def handle_file_too_large(request: Request, exc: FileTooLargeError):
    return _error(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, str(exc))


@app.exception_handler(StorageError)
def handle_storage_error(request: Request, exc: StorageError):
    logger.error("storage error path=%s: %s", request.url.path, exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@app.exception_handler(NotConfiguredError)
def handle_not_configured(request: Request, exc: NotConfiguredError):
    logger.error("integration not configured path=%s: %s", request.url.path, exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@app.exception_handler(IntegrationError)
def handle_integration_error(request: Request, exc: IntegrationError):
    logger.warning("upstream failure path=%s: %s", request.url.path, exc)
    return _error(status.HTTP_502_BAD_GATEWAY, str(exc))


@app.exception_handler(EmailError)
def handle_email_error(request: Request, exc: EmailError):
    return _error(status.HTTP_502_BAD_GATEWAY, str(exc))


@app.exception_handler(GoogleAPICallError)
def handle_google_error(request: Request, exc: GoogleAPICallError):
    logger.exception("firestore call failed path=%s", request.url.path)
    return _error(status.HTTP_502_BAD_GATEWAY, "Upstream data service error")


app.include_router(me_router, prefix="/api")
app.include_router(access_router, prefix="/api")
app.include_router(clients_router, prefix="/api")
app.include_router(products_router, prefix="/api")
app.include_router(bookings_router, prefix="/api")
app.include_router(proposals_router, prefix="/api")
app.include_router(proposal_templates_router, prefix="/api")
app.include_router(quotations_router, prefix="/api")
app.include_router(cost_estimates_router, prefix="/api")
app.include_router(job_orders_router, prefix="/api")
app.include_router(service_assignments_router, prefix="/api")
app.include_router(reports_router, prefix="/api")
app.include_router(inventory_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(emails_router, prefix="/api")
app.include_router(subscriptions_router, prefix="/api")
app.include_router(petty_cash_router, prefix="/api")
app.include_router(invitations_router, prefix="/api")
app.include_router(planner_router, prefix="/api")
app.include_router(cms_router, prefix="/api")
app.include_router(weather_router, prefix="/api")
app.include_router(places_router, prefix="/api")
app.include_router(search_router, prefix="/api")
app.include_router(proxy_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")
app.include_router(doctor_router, prefix="/api")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


@app.get("/api/health")
def health():
    return {"status": "ok"}
