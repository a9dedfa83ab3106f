"""Payments domain schemas - Pydantic models for gateway charges and webhook replies"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

CENTS = Decimal("0.01")

CHARGE_APPROVED = "approved"

# Orders API reports a successful terminal payment as "processed"
STATUS_ALIASES = {
    "processed": CHARGE_APPROVED,
    "accredited": CHARGE_APPROVED,
}


def to_cents(value) -> Decimal:
    """Money as Decimal rounded half-up to cents"""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def normalize_status(status: Optional[str]) -> str:
    status = (status or "").strip().lower()
    return STATUS_ALIASES.get(status, status)


class Charge(BaseModel):
    """A gateway payment resolved to the fields reconciliation needs"""

    external_id: str
    status: str
    amount: Decimal
    merchant_reference: Optional[str] = None
    order_id: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize(cls, v) -> str:
        return normalize_status(v)

    @field_validator("amount", mode="before")
    @classmethod
    def round_amount(cls, v) -> Decimal:
        if v is None:
            raise ValueError("amount is required")
        return to_cents(v)

    @field_validator("merchant_reference", mode="before")
    @classmethod
    def blank_reference(cls, v) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @property
    def is_approved(self) -> bool:
        return self.status == CHARGE_APPROVED


class WebhookResponse(BaseModel):
    status: str  # "ok" | "rejected"
    outcome: str
