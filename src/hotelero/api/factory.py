"""FastAPI application factory with role-based route mounting."""

import os
from typing import Literal

from fastapi import FastAPI, Request, Response

from hotelero.observability.correlation import (
    CORRELATION_ID_HEADER,
    bind_correlation_id,
    new_correlation_id,
    unbind_correlation_id,
)

from .routes import ari, availability, public_booking, quotes, webhooks_stripe

AppRole = Literal["public", "dashboard"]


def create_app(role: AppRole | None = None) -> FastAPI:
    """Create FastAPI app with routes based on APP_ROLE.

    Args:
        role: Explicit role override. If None, reads from APP_ROLE env var.
              Defaults to "dashboard" if env var is not set.

    The public role only serves the booking funnel and the Stripe webhook;
    the dashboard role adds ARI, availability and internal quote routes.
    """
    if role is None:
        role = os.environ.get("APP_ROLE", "dashboard")  # type: ignore[assignment]

    app = FastAPI(
        title="Hotelero",
        docs_url=None,
        redoc_url=None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or new_correlation_id()
        token = bind_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            unbind_correlation_id(token)

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint."""
        return {"status": "ok", "role": role}

    # Always mounted
    app.include_router(public_booking.router)
    app.include_router(webhooks_stripe.router)

    if role == "dashboard":
        app.include_router(ari.router)
        app.include_router(availability.router)
        app.include_router(quotes.router)

    return app
