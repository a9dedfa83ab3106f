"""
Mercado Pago webhook processing

Each delivery moves through:
    received -> authenticity known/suspect/unknown -> resolved | unresolvable
             -> applied | ignored | already applied
and ends in exactly one WebhookOutcome with its HTTP status.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.orm import sessionmaker

from ...config import (
    MERCADO_PAGO_TEST_NOTIFICATION_ID,
    MERCADO_PAGO_WEBHOOK_SECRET,
    WEBHOOK_MAX_AGE_SECONDS,
)
from ...exceptions import AuthenticationUnverified, NotFoundError, UpstreamUnavailable, ValidationError
from ...webhook_security import SignatureCheck, verify_mercadopago_signature
from .gateway import MercadoPagoClient, resolve_access_token
from .reconciliation import ReconciliationOutcome, ReconciliationService
from .resolver import PaymentResolver

logger = logging.getLogger(__name__)

SUPPORTED_TOPICS = {"payment", "order"}


class WebhookOutcome(str, Enum):
    TEST_PING = "test_ping"
    IGNORED = "ignored"
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    UNRESOLVABLE = "unresolvable"
    ERROR = "error"


@dataclass
class Notification:
    """What a delivery carries, before any gateway lookup"""

    topic: Optional[str]
    data_id: Optional[str]
    request_id: Optional[str]
    signature_header: Optional[str]


def _clean(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    value = str(value).strip()
    return value or None


def _body_data(body: Mapping[str, Any]) -> Mapping[str, Any]:
    data = body.get("data")
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError:
            return {}
    return data if isinstance(data, Mapping) else {}


# First present, non-empty value wins
ID_RULES: list[tuple[str, Callable[[Mapping[str, Any], Mapping[str, Any]], Any]]] = [
    ("query data.id", lambda query, body: query.get("data.id")),
    ("query id", lambda query, body: query.get("id")),
    ("body data.id", lambda query, body: _body_data(body).get("id")),
    ("body id", lambda query, body: body.get("id")),
]

TOPIC_KEYS = ("type", "topic", "action")


def extract_notification_id(query: Mapping[str, Any], body: Mapping[str, Any]) -> Optional[str]:
    for name, rule in ID_RULES:
        value = _clean(rule(query, body))
        if value:
            logger.debug(f"Notification id taken from {name}")
            return value
    return None


def extract_topic(query: Mapping[str, Any], body: Mapping[str, Any]) -> Optional[str]:
    """type, topic or action prefix ("payment.created" -> "payment"); query before body"""
    for source in (query, body):
        for key in TOPIC_KEYS:
            value = _clean(source.get(key))
            if value:
                return value.split(".", 1)[0].lower()
    return None


class WebhookProcessor:
    """Authenticates, resolves and reconciles one webhook delivery"""

    def __init__(
        self,
        session_factory: sessionmaker,
        client: Optional[MercadoPagoClient] = None,
        secret: Optional[str] = MERCADO_PAGO_WEBHOOK_SECRET,
        test_notification_id: str = MERCADO_PAGO_TEST_NOTIFICATION_ID,
        max_age: int = WEBHOOK_MAX_AGE_SECONDS,
    ):
        self.session_factory = session_factory
        self.client = client
        self.secret = secret
        self.test_notification_id = test_notification_id
        self.max_age = max_age
        self.reconciliation = ReconciliationService(session_factory)

    def _get_client(self) -> MercadoPagoClient:
        if self.client is not None:
            return self.client
        db = self.session_factory()
        try:
            access_token = resolve_access_token(db)
        finally:
            db.close()
        if not access_token:
            raise UpstreamUnavailable("No Mercado Pago access token configured")
        self.client = MercadoPagoClient(access_token)
        return self.client

    async def process(
        self,
        query: Mapping[str, Any],
        body: Mapping[str, Any],
        headers: Mapping[str, str],
    ) -> tuple[WebhookOutcome, int]:
        """
        Run one delivery to its terminal outcome. Never raises.

        Only an unresolvable notification without a verified signature is
        rejected (403); every other outcome is acknowledged with 200 so the
        gateway stops redelivering.
        """
        notification = Notification(
            topic=extract_topic(query, body),
            data_id=extract_notification_id(query, body),
            request_id=_clean(headers.get("x-request-id")),
            signature_header=headers.get("x-signature"),
        )
        status_code = 200
        try:
            outcome = await self._run(notification)
        except AuthenticationUnverified as e:
            logger.warning(f"🚫 {e.message}")
            outcome, status_code = WebhookOutcome.UNRESOLVABLE, 403
        except Exception as e:
            logger.exception(f"❌ Webhook processing error for {notification.data_id}: {e}")
            outcome = WebhookOutcome.ERROR

        logger.info(
            f"📥 Mercado Pago webhook {notification.topic or '-'}:{notification.data_id or '-'} "
            f"→ {outcome.value} ({status_code})"
        )
        return outcome, status_code

    async def _run(self, notification: Notification) -> WebhookOutcome:
        if notification.data_id == self.test_notification_id:
            return WebhookOutcome.TEST_PING

        if notification.topic and notification.topic not in SUPPORTED_TOPICS:
            logger.info(f"ℹ️ Unhandled webhook topic: {notification.topic}")
            return WebhookOutcome.IGNORED

        if not notification.data_id:
            logger.warning("⚠️ Webhook without a notification id")
            return WebhookOutcome.IGNORED

        signature = verify_mercadopago_signature(
            notification.data_id,
            notification.request_id,
            notification.signature_header,
            self.secret,
            self.max_age,
        )

        try:
            charge = await PaymentResolver(self._get_client()).resolve(notification.data_id)
        except UpstreamUnavailable as e:
            logger.error(f"❌ Could not resolve {notification.data_id}: {e.message}")
            return WebhookOutcome.ERROR

        if charge is None:
            if signature is not SignatureCheck.VERIFIED:
                raise AuthenticationUnverified(
                    f"Unresolvable notification {notification.data_id} with {signature.value} signature"
                )
            return WebhookOutcome.UNRESOLVABLE

        if not charge.is_approved:
            logger.info(f"Charge {charge.external_id} is {charge.status}, nothing to apply")
            return WebhookOutcome.IGNORED
        if not charge.merchant_reference:
            logger.warning(f"⚠️ Approved charge {charge.external_id} has no merchant reference")
            return WebhookOutcome.IGNORED

        try:
            result = self.reconciliation.apply(charge)
        except NotFoundError as e:
            logger.warning(f"⚠️ {e.message} for charge {charge.external_id}")
            return WebhookOutcome.IGNORED
        except (UpstreamUnavailable, ValidationError) as e:
            logger.error(f"❌ Reconciliation failed for charge {charge.external_id}: {e.message}")
            return WebhookOutcome.ERROR

        if result is ReconciliationOutcome.ALREADY_APPLIED:
            return WebhookOutcome.ALREADY_APPLIED
        return WebhookOutcome.APPLIED
