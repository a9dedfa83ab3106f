"""
Mercado Pago Gateway Client
Read-only access to the Payments and Orders APIs used by webhook reconciliation
"""

import asyncio
import logging
from typing import Any, Optional

import httpx
from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session

from ...config import (
    GATEWAY_MAX_RETRIES,
    GATEWAY_TIMEOUT_SECONDS,
    MERCADO_PAGO_ACCESS_TOKEN,
    MERCADO_PAGO_API_URL,
    PAYMENT_ENCRYPTION_KEY,
)
from ...exceptions import UpstreamUnavailable
from ...models_mercadopago import MercadoPagoIntegration

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# Initialize encryption
fernet = Fernet(PAYMENT_ENCRYPTION_KEY) if PAYMENT_ENCRYPTION_KEY else None


def encrypt_token(token: str) -> str:
    """Encrypt a gateway access token for storage"""
    if not fernet:
        logger.warning("PAYMENT_ENCRYPTION_KEY not set, storing access token in plain text")
        return token
    return fernet.encrypt(token.encode()).decode()


def decrypt_token(encrypted: str) -> str:
    """Decrypt a stored gateway access token"""
    if not fernet or not encrypted:
        return encrypted or ""
    try:
        return fernet.decrypt(encrypted.encode()).decode()
    except InvalidToken:
        logger.warning("⚠️ Stored access token is not Fernet encrypted, using it as is")
        return encrypted


def resolve_access_token(db: Session) -> Optional[str]:
    """Environment token first, then the active stored integration"""
    if MERCADO_PAGO_ACCESS_TOKEN:
        return MERCADO_PAGO_ACCESS_TOKEN

    integration = (
        db.query(MercadoPagoIntegration)
        .filter(MercadoPagoIntegration.is_active.is_(True))
        .order_by(MercadoPagoIntegration.updated_at.desc())
        .first()
    )
    if not integration:
        return None
    return decrypt_token(integration.access_token) or None


class MercadoPagoClient:
    """Thin async client over the Mercado Pago REST API"""

    def __init__(
        self,
        access_token: str,
        base_url: str = MERCADO_PAGO_API_URL,
        timeout: float = GATEWAY_TIMEOUT_SECONDS,
        max_retries: int = GATEWAY_MAX_RETRIES,
        backoff_seconds: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.transport = transport

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def _get(self, path: str) -> Optional[dict[str, Any]]:
        """
        GET a gateway resource.

        Returns None when the gateway says the resource does not exist.
        Raises UpstreamUnavailable after bounded retries on transport
        errors, 429 and 5xx, or immediately on rejected credentials.
        """
        url = f"{self.base_url}{path}"
        attempts = self.max_retries + 1
        last_error = ""

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as http_client:
            for attempt in range(1, attempts + 1):
                try:
                    response = await http_client.get(url, headers=self._headers())
                except httpx.HTTPError as e:
                    last_error = f"{type(e).__name__}: {e}"
                    logger.warning(f"⚠️ Gateway request failed ({attempt}/{attempts}) {path}: {last_error}")
                else:
                    if response.status_code == 200:
                        return response.json()
                    if response.status_code in (400, 404):
                        logger.info(f"Gateway has no resource at {path} ({response.status_code})")
                        return None
                    if response.status_code in (401, 403):
                        logger.error(f"❌ Gateway rejected credentials for {path}: {response.status_code}")
                        raise UpstreamUnavailable(f"Gateway rejected credentials ({response.status_code})")
                    last_error = f"HTTP {response.status_code}"
                    if response.status_code not in RETRYABLE_STATUS_CODES:
                        break
                    logger.warning(f"⚠️ Gateway returned {response.status_code} ({attempt}/{attempts}) for {path}")

                if attempt < attempts and self.backoff_seconds:
                    await asyncio.sleep(self.backoff_seconds * attempt)

        logger.error(f"❌ Gateway unavailable for {path}: {last_error}")
        raise UpstreamUnavailable(f"Gateway unavailable: {last_error}")

    async def get_payment(self, payment_id: str) -> Optional[dict[str, Any]]:
        """Fetch a payment from /v1/payments/{id}"""
        return await self._get(f"/v1/payments/{payment_id}")

    async def get_order(self, order_id: str) -> Optional[dict[str, Any]]:
        """Fetch an order from /v1/orders/{id}"""
        return await self._get(f"/v1/orders/{order_id}")
