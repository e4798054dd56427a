"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from inboxly.observability.correlation import (
    CORRELATION_ID_HEADER,
    accept_or_generate,
    reset_correlation_id,
    set_correlation_id,
)
from inboxly.observability.logging import configure_logging

from .routers import public
from .routes import webhooks_whatsapp


def create_app(log_level: str | None = None) -> FastAPI:
    """Create the webhook ingestion app.

    Args:
        log_level: Explicit level override. If None, reads LOG_LEVEL.

    Returns:
        Configured FastAPI application.
    """
    configure_logging(log_level)

    app = FastAPI(
        title="Inboxly",
        docs_url=None,
        redoc_url=None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = accept_or_generate(request.headers.get(CORRELATION_ID_HEADER))
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    app.include_router(public.router)
    app.include_router(webhooks_whatsapp.router)

    return app
