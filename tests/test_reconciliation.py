"""Tests for ReconciliationService."""

from decimal import Decimal

import threading

import pytest

from app.domain.payments.reconciliation import ReconciliationOutcome, ReconciliationService, compute_tip
from app.domain.payments.schemas import Charge
from app.exceptions import NotFoundError, ValidationError
from app.models import Appointment, Sale


def charge(amount="550.00", reference="sale-1", status="approved"):
    return Charge(external_id="1111", status=status, amount=amount, merchant_reference=reference, order_id="ORD-1")


@pytest.fixture
def service(session_factory):
    return ReconciliationService(session_factory)


class TestComputeTip:
    def test_overpayment_is_tip(self):
        assert compute_tip(Decimal("550"), Decimal("500")) == Decimal("50.00")

    def test_never_negative(self):
        assert compute_tip(Decimal("450"), Decimal("500")) == Decimal("0.00")

    def test_cents_are_exact(self):
        assert compute_tip(Decimal("100.30"), Decimal("100.10")) == Decimal("0.20")


class TestApply:
    """Applying a charge to its sale."""

    def test_marks_sale_and_appointment_paid(self, service, session_factory, sale_with_appointment):
        assert service.apply(charge()) is ReconciliationOutcome.APPLIED

        db = session_factory()
        try:
            sale = db.get(Sale, "sale-1")
            assert sale.payment_status == "paid"
            assert sale.amount_paid_actual == Decimal("550.00")
            assert sale.tip == Decimal("50.00")
            assert sale.gateway_charge_id == "1111"
            assert sale.gateway_order_id == "ORD-1"
            assert sale.paid_at is not None
            appointment = db.get(Appointment, sale_with_appointment["appointment_id"])
            assert appointment.payment_status == "paid"
        finally:
            db.close()

    def test_duplicate_delivery_is_noop(self, service, session_factory, sale_with_appointment):
        service.apply(charge())
        assert service.apply(charge(amount="999.00")) is ReconciliationOutcome.ALREADY_APPLIED

        db = session_factory()
        try:
            sale = db.get(Sale, "sale-1")
            assert sale.tip == Decimal("50.00")
            assert sale.amount_paid_actual == Decimal("550.00")
        finally:
            db.close()

    def test_underpayment_has_zero_tip(self, service, session_factory, sale_with_appointment):
        service.apply(charge(amount="480.00"))
        db = session_factory()
        try:
            assert db.get(Sale, "sale-1").tip == Decimal("0.00")
        finally:
            db.close()

    def test_missing_sale(self, service, sale_with_appointment):
        with pytest.raises(NotFoundError):
            service.apply(charge(reference="sale-404"))

    def test_not_approved(self, service, sale_with_appointment):
        with pytest.raises(ValidationError):
            service.apply(charge(status="rejected"))

    def test_sale_without_appointment(self, service, session_factory):
        db = session_factory()
        try:
            db.add(Sale(id="walk-in", total=Decimal("200.00")))
            db.commit()
        finally:
            db.close()
        assert service.apply(charge(amount="200.00", reference="walk-in")) is ReconciliationOutcome.APPLIED


class TestConcurrentApply:
    """Redeliveries of the same charge racing each other."""

    def test_exactly_one_applies(self, service, session_factory, sale_with_appointment):
        workers = 4
        barrier = threading.Barrier(workers)
        results = []
        lock = threading.Lock()

        def attempt():
            barrier.wait()
            outcome = service.apply(charge())
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=attempt) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert results.count(ReconciliationOutcome.APPLIED) == 1
        assert results.count(ReconciliationOutcome.ALREADY_APPLIED) == workers - 1

        db = session_factory()
        try:
            sale = db.get(Sale, "sale-1")
            assert sale.tip == Decimal("50.00")
            assert sale.amount_paid_actual == Decimal("550.00")
        finally:
            db.close()
