"""Payment resolver - Turn a notification id into a Charge"""

import logging
from typing import Any, Optional

from .gateway import MercadoPagoClient
from .schemas import Charge, normalize_status

logger = logging.getLogger(__name__)


def charge_from_payment(payment: dict[str, Any]) -> Charge:
    """Normalize a /v1/payments resource"""
    order = payment.get("order") or {}
    return Charge(
        external_id=str(payment.get("id")),
        status=payment.get("status"),
        amount=payment.get("transaction_amount"),
        merchant_reference=payment.get("external_reference"),
        order_id=str(order["id"]) if order.get("id") else None,
    )


def _order_payments(order: dict[str, Any]) -> list[dict[str, Any]]:
    transactions = order.get("transactions") or {}
    return transactions.get("payments") or []


def charge_from_order(order: dict[str, Any]) -> Optional[Charge]:
    """
    Normalize a /v1/orders resource through its first approved payment.

    Amount comes from that payment, falling back to the order's total_amount.
    The merchant reference is the order's external_reference; the payment's
    reference_id is assigned by the gateway and never identifies a sale.
    """
    approved = next(
        (p for p in _order_payments(order) if normalize_status(p.get("status")) == "approved"),
        None,
    )
    if approved is None:
        logger.info(f"Order {order.get('id')} has no approved payment (status={order.get('status')})")
        return None

    amount = approved.get("paid_amount") or approved.get("amount") or order.get("total_amount")
    return Charge(
        external_id=str(approved.get("id") or order.get("id")),
        status=approved.get("status"),
        amount=amount,
        merchant_reference=order.get("external_reference") or approved.get("external_reference"),
        order_id=str(order.get("id")),
    )


class PaymentResolver:
    """Resolves a notification id as a direct payment first, then as an order"""

    def __init__(self, client: MercadoPagoClient):
        self.client = client

    async def resolve(self, external_id: str) -> Optional[Charge]:
        """
        Returns the Charge, or None when the gateway knows neither a payment
        nor an order with an approved payment for this id.

        Raises:
            UpstreamUnavailable: gateway unreachable after retries
        """
        payment = await self.client.get_payment(external_id)
        if payment:
            charge = charge_from_payment(payment)
            logger.info(f"💳 Resolved payment {external_id}: status={charge.status}")
            return charge

        order = await self.client.get_order(external_id)
        if order:
            charge = charge_from_order(order)
            if charge:
                logger.info(f"💳 Resolved order {external_id} via payment {charge.external_id}")
            return charge

        logger.info(f"Notification id {external_id} matches no payment or order")
        return None
