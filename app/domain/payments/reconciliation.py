"""Reconciliation service - Apply an approved charge to its sale exactly once"""

import logging
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy.orm import Session, sessionmaker

from ...database import run_in_transaction
from ...exceptions import AlreadyProcessed, NotFoundError, ValidationError
from ...models import PAYMENT_PAID
from .repository import SaleRepository
from .schemas import Charge, to_cents

logger = logging.getLogger(__name__)


class ReconciliationOutcome(str, Enum):
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"


def compute_tip(amount: Decimal, total: Decimal) -> Decimal:
    """Amount paid above the sale total; never negative"""
    return max(Decimal("0.00"), to_cents(amount) - to_cents(total))


class ReconciliationService:
    """Marks sales (and their appointments) paid inside one transaction"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self.repo = SaleRepository()

    def apply(self, charge: Charge) -> ReconciliationOutcome:
        """
        Apply an approved charge to the sale named by its merchant reference.

        A sale that is already paid is left untouched, so duplicate and
        reordered deliveries are no-ops.

        Raises:
            ValidationError: charge not approved or has no merchant reference
            NotFoundError: no sale with that reference
        """
        if not charge.is_approved:
            raise ValidationError(f"Charge {charge.external_id} is not approved ({charge.status})")
        if not charge.merchant_reference:
            raise ValidationError(f"Charge {charge.external_id} has no merchant reference")
        sale_id = charge.merchant_reference

        def work(db: Session) -> ReconciliationOutcome:
            sale = self.repo.get_sale(db, sale_id, lock=True)
            if not sale:
                raise NotFoundError(f"Sale {sale_id} not found")

            if sale.payment_status == PAYMENT_PAID:
                raise AlreadyProcessed(f"Sale {sale_id} already paid")

            sale.tip = compute_tip(charge.amount, sale.total)
            sale.amount_paid_actual = charge.amount
            sale.payment_status = PAYMENT_PAID
            sale.gateway_charge_id = charge.external_id
            sale.gateway_order_id = charge.order_id
            sale.gateway_status = charge.status
            sale.paid_at = datetime.utcnow()

            if sale.appointment_id:
                appointment = self.repo.get_appointment(db, sale.appointment_id, lock=True)
                if appointment:
                    appointment.payment_status = PAYMENT_PAID
                else:
                    logger.warning(f"⚠️ Sale {sale_id} links missing appointment {sale.appointment_id}")

            return ReconciliationOutcome.APPLIED

        try:
            outcome = run_in_transaction(self.session_factory, work)
        except AlreadyProcessed as e:
            logger.info(f"{e.message}, charge {charge.external_id} ignored")
            return ReconciliationOutcome.ALREADY_APPLIED

        logger.info(f"✅ Sale {sale_id} paid by charge {charge.external_id} (amount={charge.amount})")
        return outcome
