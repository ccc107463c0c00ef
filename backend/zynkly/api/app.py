"""
FastAPI application factory and composition root.

``create_app`` builds the process-wide collaborators (notification service
with its mail transport, payment provider) and stores them on ``app.state``;
routes reach them through dependencies, never through module globals.
"""
import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from zynkly.api.middleware.error_handler import (
    AppException,
    app_exception_handler,
    domain_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from zynkly.api.routes import admin, auth, bookings, payment, services
from zynkly.lib.logging import get_logger, set_correlation_id
from zynkly.lib.settings import settings
from zynkly.services.errors import DomainError
from zynkly.services.notification_service import (
    MailTransport,
    NotificationService,
    build_mail_transport,
)
from zynkly.services.payment_service import RazorpayProvider

logger = get_logger(__name__)


# Correlation ID middleware
class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation_id to all requests for distributed tracing.
    Accepts X-Correlation-ID from incoming requests or generates a new one.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        # Store in request state for access in route handlers
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            }
        )

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = correlation_id

        logger.info("Response sent", extra={"status_code": response.status_code})

        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup/shutdown events.
    """
    logger.info(f"{settings.app_name} starting up...")
    app.state.notifications.bind_loop(asyncio.get_running_loop())
    yield
    # Let in-flight notification emails finish before the loop goes away
    await app.state.notifications.drain()
    app.state.payment_provider.close()
    logger.info(f"{settings.app_name} shutting down...")


def create_app(
    mail_transport: Optional[MailTransport] = None,
    payment_provider: Optional[RazorpayProvider] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        mail_transport: Email transport; defaults to the one EMAIL_PROVIDER selects
        payment_provider: Payment provider; defaults to one built from settings
    """
    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        description="Home cleaning marketplace: catalog, bookings, payments and admin",
        lifespan=lifespan,
    )

    app.state.notifications = NotificationService(
        mail_transport or build_mail_transport(settings),
        otp_ttl_minutes=settings.otp_ttl_seconds // 60,
    )
    app.state.payment_provider = payment_provider or RazorpayProvider(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(DomainError, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth.router)
    app.include_router(services.router)
    app.include_router(bookings.router)
    app.include_router(payment.router)
    app.include_router(admin.router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()
