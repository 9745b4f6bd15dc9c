"""
Order tests.

Verifies:
- Snapshots of client and measurement are frozen at creation
- Pricing totals and the zero floor
- Status history is append-only and matches status
- Payments drive balance and payment status (overpayment allowed)
"""

from datetime import date

import pytest

from threadcraft.catalog import (
    PAYMENT_STATUS_FULLY_PAID,
    PAYMENT_STATUS_NOT_PAID,
    PAYMENT_STATUS_PARTIALLY_PAID,
)
from threadcraft.errors import NotFoundError, ValidationError
from threadcraft.services.order_service import compute_totals


class TestCreate:
    def test_new_order_defaults(self, make_order, asha):
        order = make_order()

        assert order.id.startswith("ORD-")
        assert order.status == "placed"
        assert order.priority == "normal"
        assert order.quantity == 1
        assert order.client_name == "Asha"
        assert order.client_phone == "9876543210"
        assert [e.status for e in order.status_events] == ["placed"]
        assert order.status_events[0].notes == "Order created"
        assert order.payments == []
        assert order.payment_status == PAYMENT_STATUS_NOT_PAID

    def test_delivery_before_order_date_is_rejected(self, data, make_order):
        with pytest.raises(ValidationError):
            make_order(order_date=date(2025, 1, 10), delivery_date=date(2025, 1, 5))

        assert data.orders.get_all() == []

    def test_same_day_delivery_is_allowed(self, make_order):
        order = make_order(order_date=date(2025, 1, 10), delivery_date=date(2025, 1, 10))
        assert order.delivery_date == order.order_date

    def test_iso_date_strings_are_accepted(self, make_order):
        order = make_order(order_date="2025-02-01", delivery_date="2025-02-14")
        assert order.delivery_date == date(2025, 2, 14)

    def test_unknown_client(self, data):
        with pytest.raises(NotFoundError):
            data.orders.create({
                "client_id": "CLI-20250101-0001",
                "garment_type": "shirt",
                "delivery_date": date(2030, 1, 1),
            })

    @pytest.mark.parametrize("missing", ["client_id", "garment_type", "delivery_date"])
    def test_required_fields(self, data, asha, missing):
        payload = {"client_id": asha.id, "garment_type": "shirt", "delivery_date": date(2030, 1, 1)}
        del payload[missing]
        with pytest.raises(ValidationError):
            data.orders.create(payload)

    @pytest.mark.parametrize("field", ["status", "status_history", "payments", "id"])
    def test_protected_fields_cannot_be_supplied(self, make_order, field):
        with pytest.raises(ValidationError):
            make_order(**{field: "x"})

    def test_unknown_garment_and_priority(self, make_order):
        with pytest.raises(ValidationError):
            make_order(garment_type="cape")
        with pytest.raises(ValidationError):
            make_order(priority="asap")

    def test_quantity_must_be_positive(self, make_order):
        with pytest.raises(ValidationError):
            make_order(quantity=0)

    def test_sets_client_last_order_date_and_count(self, data, asha, make_order):
        make_order()
        make_order(order_date=date(2025, 3, 1), delivery_date=date(2025, 3, 9))

        client = data.clients.get_by_id(asha.id)
        assert client.last_order_date == date(2025, 3, 1)
        assert client.total_orders == 2
        assert client.to_dict()["total_orders"] == 2

    def test_client_id_and_measurement_id_are_accepted_on_create(self, data, asha, shirt_measurements, make_order):
        m = data.measurements.create({
            "client_id": asha.id, "garment_type": "shirt", "measurements": shirt_measurements,
        })

        order = make_order(measurement_id=m.id)

        assert order.client_id == asha.id
        assert order.measurement_id == m.id

    def test_custom_garment_type(self, make_order):
        assert make_order(garment_type="custom").garment_type == "custom"

    def test_many_orders_get_unique_ids(self, make_order):
        ids = [make_order().id for _ in range(25)]

        assert len(set(ids)) == 25
        assert sorted(ids) == ids


class TestMeasurementSnapshot:
    def test_active_measurement_is_copied(self, data, asha, shirt_measurements, make_order):
        m = data.measurements.create({
            "client_id": asha.id, "garment_type": "shirt", "measurements": shirt_measurements,
        })

        order = make_order()

        assert order.measurement_id == m.id
        assert order.measurement_snapshot["measurements"]["chest"] == 40
        assert order.measurement_snapshot["version"] == 1

    def test_snapshot_survives_new_version_and_client_edit(self, data, asha, shirt_measurements, make_order):
        data.measurements.create({
            "client_id": asha.id, "garment_type": "shirt", "measurements": shirt_measurements,
        })
        order = make_order()

        data.measurements.create({
            "client_id": asha.id, "garment_type": "shirt",
            "measurements": dict(shirt_measurements, chest=44),
        })
        data.clients.update(asha.id, {"name": "Asha Varma"})

        reloaded = data.orders.get_by_id(order.id)
        assert reloaded.measurement_snapshot["measurements"]["chest"] == 40
        assert reloaded.client_name == "Asha"

    def test_no_measurement_leaves_snapshot_empty(self, make_order):
        order = make_order()

        assert order.measurement_id is None
        assert order.measurement_snapshot is None

    def test_named_measurement_must_belong_to_client(self, data, asha, shirt_measurements, make_order):
        ravi = data.clients.create({"name": "Ravi", "phone_number": "1"})
        other = data.measurements.create({
            "client_id": ravi.id, "garment_type": "shirt", "measurements": shirt_measurements,
        })

        with pytest.raises(ValidationError):
            make_order(measurement_id=other.id)
        with pytest.raises(NotFoundError):
            make_order(measurement_id="MEAS-missing")


class TestPricing:
    def test_compute_totals_clamps_at_zero(self):
        subtotal, total = compute_totals(
            base_charge_cents=1000,
            customizations=[{"description": "Piping", "amount_cents": 500}],
            material_charges_cents=0,
            urgent_charges_cents=0,
            discount_cents=5000,
        )

        assert subtotal == 1500
        assert total == 0

    def test_base_charge_defaults_to_rate(self, data, make_order):
        data.rates.set("shirt", 60000)

        order = make_order()

        assert order.base_charge_cents == 60000
        assert order.total_cents == 60000

    def test_caller_base_charge_overrides_rate(self, data, make_order):
        data.rates.set("shirt", 60000)

        order = make_order(pricing={"base_charge_cents": 45000})

        assert order.base_charge_cents == 45000

    def test_full_pricing(self, make_order):
        order = make_order(pricing={
            "base_charge_cents": 50000,
            "customizations": [
                {"description": "Embroidery", "amount_cents": 20000},
                {"description": "Lining", "amount_cents": 10000},
            ],
            "material_charges_cents": 5000,
            "urgent_charges_cents": 3000,
            "discount": {"amount_cents": 8000, "reason": "Festival"},
        })

        assert order.subtotal_cents == 88000
        assert order.total_cents == 80000
        assert order.pricing_dict()["discount"] == {"amount_cents": 8000, "reason": "Festival"}

    @pytest.mark.parametrize("pricing", [
        {"base_charge_cents": -1},
        {"material_charges_cents": "12.5"},
        {"customizations": [{"amount_cents": 100}]},
        {"customizations": "lining"},
        {"tip_cents": 100},
    ])
    def test_bad_pricing_is_rejected(self, make_order, pricing):
        with pytest.raises(ValidationError):
            make_order(pricing=pricing)

    def test_update_recomputes_totals(self, data, make_order):
        order = make_order(pricing={"base_charge_cents": 50000})

        updated = data.orders.update(order.id, {"pricing": {"discount": {"amount_cents": 10000}}})

        assert updated.base_charge_cents == 50000
        assert updated.total_cents == 40000


class TestStatus:
    def test_cancel_from_cutting_appends_one_entry(self, data, make_order):
        order = make_order()
        data.orders.update_status(order.id, "fabric_received")
        data.orders.update_status(order.id, "cutting", "Started")
        before = [e.to_dict() for e in data.orders.get_by_id(order.id).status_events]

        cancelled = data.orders.cancel(order.id, "Client changed mind")

        history = [e.to_dict() for e in cancelled.status_events]
        assert len(history) == len(before) + 1
        assert history[:-1] == before
        assert history[-1]["status"] == "cancelled"
        assert history[-1]["notes"] == "Client changed mind"
        assert cancelled.status == "cancelled"

    def test_last_history_entry_matches_status(self, data, make_order):
        order = make_order()
        for status in ("cutting", "stitching", "trial", "alterations", "trial"):
            order = data.orders.update_status(order.id, status)

        assert order.status_events[-1].status == order.status == "trial"
        assert [e.sequence for e in order.status_events] == [1, 2, 3, 4, 5, 6]

    def test_completion_and_delivery_are_stamped(self, data, make_order):
        order = make_order()

        completed = data.orders.update_status(order.id, "completed")
        assert completed.completed_at is not None
        assert completed.delivered_at is None

        delivered = data.orders.update_status(order.id, "delivered")
        assert delivered.delivered_at is not None

    def test_unknown_status(self, data, make_order):
        order = make_order()

        with pytest.raises(ValidationError):
            data.orders.update_status(order.id, "lost")

        assert len(data.orders.get_by_id(order.id).status_events) == 1

    def test_missing_order(self, data):
        with pytest.raises(NotFoundError):
            data.orders.update_status("ORD-20250101-0001", "cutting")

    def test_update_rejects_status_edits(self, data, make_order):
        order = make_order()

        with pytest.raises(ValidationError, match="update_status"):
            data.orders.update(order.id, {"status": "delivered"})
        with pytest.raises(ValidationError):
            data.orders.update(order.id, {"client_name": "Someone"})
        with pytest.raises(ValidationError, match="client cannot be changed"):
            data.orders.update(order.id, {"client_id": "CLI-20250101-0009"})


class TestPayments:
    def test_overpayment_gives_negative_balance(self, data, make_order):
        order = make_order(pricing={"base_charge_cents": 100000})

        data.orders.add_payment(order.id, {"amount_cents": 60000, "type": "advance"})
        paid = data.orders.add_payment(order.id, {"amount_cents": 60000, "type": "final", "method": "upi"})

        assert paid.total_paid_cents == 120000
        assert paid.balance_due_cents == -20000
        assert paid.payment_status == PAYMENT_STATUS_FULLY_PAID
        assert [p.method for p in paid.payments] == ["cash", "upi"]

    def test_partial_payment(self, data, make_order):
        order = make_order(pricing={"base_charge_cents": 100000})

        paid = data.orders.add_payment(order.id, {
            "amount_cents": 25000,
            "payment_date": "2025-01-11",
            "receipt_number": "R-17",
        })

        assert paid.balance_due_cents == 75000
        assert paid.payment_status == PAYMENT_STATUS_PARTIALLY_PAID
        assert paid.payments[0].to_dict()["payment_date"] == "2025-01-11"
        assert paid.payments[0].receipt_number == "R-17"

    @pytest.mark.parametrize("payment", [
        {},
        {"amount_cents": 0},
        {"amount_cents": -100},
        {"amount_cents": 100, "method": "cheque"},
        {"amount_cents": 100, "type": "refund"},
    ])
    def test_invalid_payments(self, data, make_order, payment):
        order = make_order()

        with pytest.raises(ValidationError):
            data.orders.add_payment(order.id, payment)

    def test_payment_on_missing_order(self, data):
        with pytest.raises(NotFoundError):
            data.orders.add_payment("ORD-20250101-0001", {"amount_cents": 100})


class TestQueries:
    def test_get_by_client_newest_first(self, data, asha, make_order):
        old = make_order(order_date=date(2025, 1, 1), delivery_date=date(2025, 1, 2))
        new = make_order(order_date=date(2025, 2, 1), delivery_date=date(2025, 2, 2))
        ravi = data.clients.create({"name": "Ravi", "phone_number": "1"})
        make_order(client_id=ravi.id)

        assert [o.id for o in data.orders.get_by_client_id(asha.id)] == [new.id, old.id]

    def test_filter_combines_criteria(self, data, make_order):
        jan = make_order(order_date=date(2025, 1, 5), delivery_date=date(2025, 1, 9))
        feb = make_order(order_date=date(2025, 2, 5), delivery_date=date(2025, 2, 9))
        data.orders.update_status(feb.id, "cutting")

        assert [o.id for o in data.orders.filter(status="cutting")] == [feb.id]
        assert [o.id for o in data.orders.get_by_date_range("2025-01-01", "2025-01-31")] == [jan.id]
        assert data.orders.filter(status="placed", start_date=date(2025, 2, 1)) == []

    def test_overdue_skips_delivered_and_cancelled(self, data, make_order):
        late = make_order(order_date=date(2025, 1, 1), delivery_date=date(2025, 1, 5))
        delivered = make_order(order_date=date(2025, 1, 1), delivery_date=date(2025, 1, 5))
        cancelled = make_order(order_date=date(2025, 1, 1), delivery_date=date(2025, 1, 5))
        make_order(order_date=date(2025, 1, 1), delivery_date=date(2025, 3, 1))
        data.orders.update_status(delivered.id, "delivered")
        data.orders.cancel(cancelled.id)

        overdue = data.orders.get_overdue(as_of=date(2025, 2, 1))

        assert [o.id for o in overdue] == [late.id]

    def test_delete_removes_children(self, data, asha, make_order):
        order = make_order()
        make_order()
        data.orders.add_payment(order.id, {"amount_cents": 100})

        data.orders.delete(order.id)

        assert data.clients.get_by_id(asha.id).total_orders == 1

        assert data.orders.get_by_id(order.id) is None
        with pytest.raises(NotFoundError):
            data.orders.delete(order.id)
