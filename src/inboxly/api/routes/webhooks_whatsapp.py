"""WhatsApp webhook routes - one endpoint set per provider.

POST /webhooks/{green-api|wazzup|evolution}
    Raw body goes straight to the ingestion pipeline. Providers retry on any
    non-2xx, so only request-level problems (400) and store timeouts (503)
    fail the call; parse errors and per-event failures are audited and
    acknowledged with 200.
GET  /webhooks/{provider}   liveness probe used by provider dashboards
OPTIONS /webhooks/{provider} CORS preflight

PII: payloads carry phone numbers and message text. Logs go through
safe_log_context() only.
"""

import json
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Query, Request, Response

from inboxly.config import get_settings
from inboxly.domain.errors import StoreTimeoutError, TransportError
from inboxly.domain.ingest import IngestionPipeline
from inboxly.infra.stores import pg_session_factory
from inboxly.observability.correlation import get_correlation_id
from inboxly.observability.logging import get_logger
from inboxly.observability.redaction import safe_log_context
from inboxly.whatsapp.adapters import ADAPTERS, ProviderAdapter

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

# Built on first use so importing the app needs no database settings
_pipeline: IngestionPipeline | None = None


def _get_pipeline() -> IngestionPipeline:
    """Get pipeline instance (allows test injection)."""
    global _pipeline
    if _pipeline is None:
        settings = get_settings()
        _pipeline = IngestionPipeline(pg_session_factory(settings), settings)
    return _pipeline


def _json_response(status_code: int, body: dict[str, Any]) -> Response:
    return Response(
        status_code=status_code,
        content=json.dumps(body, ensure_ascii=False, default=str),
        media_type="application/json",
        headers=CORS_HEADERS,
    )


def _adapter_or_none(provider: str) -> ProviderAdapter | None:
    return ADAPTERS.get(provider)


def _not_found(provider: str) -> Response:
    return _json_response(404, {"success": False, "error": f"unknown provider {provider!r}"})


@router.options("/{provider}")
async def webhook_preflight(provider: str) -> Response:
    """CORS preflight."""
    if _adapter_or_none(provider) is None:
        return _not_found(provider)
    return Response(status_code=200, headers=CORS_HEADERS)


@router.get("/{provider}")
async def webhook_status(provider: str) -> Response:
    """Liveness probe for the provider's webhook URL check."""
    adapter = _adapter_or_none(provider)
    if adapter is None:
        return _not_found(provider)
    return _json_response(
        200,
        {
            "status": "online",
            "provider": adapter.display_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.post("/{provider}")
async def webhook_receive(
    provider: str,
    request: Request,
    organization_id: str | None = Query(None),
) -> Response:
    """Receive a provider webhook.

    Args:
        provider: URL slug of the provider.
        request: FastAPI request object.
        organization_id: Organization the webhook URL was issued for (optional).

    Returns:
        200 with per-event outcomes (including parse errors and duplicates).
        400 Bad Request if the body is empty or not a JSON object.
        404 if the provider slug is unknown.
        503 if a store call timed out (provider retries).
        500 on unexpected failure.
    """
    adapter = _adapter_or_none(provider)
    if adapter is None:
        return _not_found(provider)

    correlation_id = get_correlation_id()
    raw_body = await request.body()

    try:
        result = _get_pipeline().ingest(adapter, raw_body, organization_id=organization_id)
    except TransportError as e:
        logger.warning(
            "rejected webhook body",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    provider=adapter.provider,
                    error=str(e),
                )
            },
        )
        return _json_response(400, {"success": False, "error": str(e)})
    except StoreTimeoutError:
        logger.error(
            "store timeout, asking provider to retry",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    provider=adapter.provider,
                )
            },
        )
        return _json_response(503, {"success": False, "error": "store timeout"})
    except Exception:
        logger.exception(
            "webhook processing failed",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    provider=adapter.provider,
                )
            },
        )
        return _json_response(500, {"success": False, "error": "processing failed"})

    return _json_response(200, result.to_dict())
