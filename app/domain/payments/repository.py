"""Payments repository - Database operations for sales"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment, Sale


class SaleRepository:
    """Repository for sale database operations"""

    @staticmethod
    def get_sale(db: Session, sale_id: str, lock: bool = False) -> Optional[Sale]:
        """Get a sale by its merchant reference, optionally FOR UPDATE"""
        query = db.query(Sale).filter(Sale.id == sale_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_appointment(db: Session, appointment_id: int, lock: bool = False) -> Optional[Appointment]:
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if lock:
            query = query.with_for_update()
        return query.first()
