"""
Mercado Pago Webhook Handler
Reconciles card-present payments with point-of-sale tickets
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from ...database import get_session_factory
from .schemas import WebhookResponse
from .webhook import WebhookProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def get_webhook_processor(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> WebhookProcessor:
    """Dependency injection for WebhookProcessor"""
    return WebhookProcessor(session_factory)


async def _read_body(request: Request) -> dict:
    raw = await request.body()
    if not raw:
        return {}
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("⚠️ Webhook body is not valid JSON, using query parameters only")
        return {}
    return payload if isinstance(payload, dict) else {}


@router.post("/mercadopago", response_model=WebhookResponse)
async def handle_mercadopago_webhook(
    request: Request,
    processor: WebhookProcessor = Depends(get_webhook_processor),
):
    """
    Handle Mercado Pago payment and order notifications.

    Responds 200 for every terminal outcome except an unresolvable
    notification without a verified signature (403).
    """
    body = await _read_body(request)
    outcome, status_code = await processor.process(
        dict(request.query_params), body, request.headers
    )
    return JSONResponse(
        status_code=status_code,
        content={"status": "ok" if status_code == 200 else "rejected", "outcome": outcome.value},
    )
