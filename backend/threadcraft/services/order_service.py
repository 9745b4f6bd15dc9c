# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Service - tailoring orders, status history and payments

WHY: An order is the shop's record of work owed and money received. It must
stay auditable: every status change is timestamped and kept, every payment
is kept, and the balance is always derived from the payments.

DESIGN PRINCIPLES:
- Snapshots: client name/phone and the measurement in force are copied onto
  the order at creation and never re-resolved.
- Status is a plain tag. Any known status may follow any other; the store
  only guarantees the audit trail. Workflow policy lives in
  lifecycle_service and is applied by the caller if wanted.
- status, status_history and payments change only through update_status()
  and add_payment(). update() rejects them.
- Pricing: subtotal = base + customizations + material + urgent,
  total = max(subtotal - discount, 0). Recomputed on every pricing edit.
- Overpayment is recorded, not rejected; balance_due may go negative.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from ..catalog import (
    GARMENT_TYPES,
    ORDER_STATUSES,
    PAYMENT_METHODS,
    PAYMENT_TYPES,
    PRIORITY_NORMAL,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_DELIVERED,
    STATUS_PLACED,
    TERMINAL_STATUSES,
    VALID_PRIORITIES,
)
from ..errors import NotFoundError, ValidationError
from ..models import Client, Measurement, Order, OrderPayment, OrderStatusEvent
from ..storage import StorageContext, lock_for_update
from ..time_utils import today, utcnow
from ..validation import coerce_amount_cents, coerce_date, coerce_int, require_choice
from .identifier_service import next_order_id
from .measurement_service import snapshot_of
from .rates_service import RatesService


CREATE_FIELDS = {
    "client_id",
    "order_date",
    "delivery_date",
    "priority",
    "garment_type",
    "quantity",
    "fabric_details",
    "design_details",
    "special_instructions",
    "measurement_id",
    "pricing",
}

EDITABLE_FIELDS = {
    "order_date",
    "delivery_date",
    "priority",
    "garment_type",
    "quantity",
    "fabric_details",
    "design_details",
    "special_instructions",
    "pricing",
}

# Fields owned by dedicated operations or frozen at creation
PROTECTED_FIELDS = {
    "id": "id is assigned at creation",
    "client_id": "client cannot be changed after creation",
    "client_name": "client snapshot is frozen at creation",
    "client_phone": "client snapshot is frozen at creation",
    "measurement_id": "measurement snapshot is frozen at creation",
    "measurement_snapshot": "measurement snapshot is frozen at creation",
    "status": "status can only be changed through update_status",
    "status_history": "status history can only be appended through update_status",
    "payments": "payments can only be added through add_payment",
    "total_paid_cents": "total paid is derived from payments",
    "balance_due_cents": "balance due is derived from payments",
    "payment_status": "payment status is derived from payments",
}

PRICING_FIELDS = {
    "base_charge_cents",
    "customizations",
    "material_charges_cents",
    "urgent_charges_cents",
    "discount",
}

CREATED_NOTE = "Order created"


class OrderError(ValidationError):
    """Raised for order input that violates an order rule."""
    pass


# =============================================================================
# PRICING
# =============================================================================

def clean_customizations(raw: Any) -> list[dict]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise OrderError("pricing.customizations must be a list")
    cleaned = []
    for item in raw:
        if not isinstance(item, dict):
            raise OrderError("Each customization must have a description and amount_cents")
        description = str(item.get("description") or "").strip()
        if not description:
            raise OrderError("Customization description is required")
        amount = coerce_amount_cents("customization amount_cents", item.get("amount_cents", 0))
        cleaned.append({"description": description, "amount_cents": amount})
    return cleaned


def _clean_discount(raw: Any) -> tuple[int, str | None]:
    if raw is None:
        return 0, None
    if not isinstance(raw, dict):
        raise OrderError("pricing.discount must have amount_cents and an optional reason")
    amount = coerce_amount_cents("discount amount_cents", raw.get("amount_cents") or 0)
    reason = str(raw.get("reason") or "").strip() or None
    return amount, reason


def compute_totals(
    *,
    base_charge_cents: int,
    customizations: list[dict],
    material_charges_cents: int,
    urgent_charges_cents: int,
    discount_cents: int,
) -> tuple[int, int]:
    """Return (subtotal_cents, total_cents). Total never drops below zero."""
    subtotal = (
        base_charge_cents
        + sum(c["amount_cents"] for c in customizations)
        + material_charges_cents
        + urgent_charges_cents
    )
    return subtotal, max(subtotal - discount_cents, 0)


def _apply_pricing(order: Order, raw: Any) -> None:
    """Merge caller-supplied pricing components into order and recompute totals."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise OrderError("pricing must be a mapping")
    for key in raw:
        if key not in PRICING_FIELDS:
            raise OrderError(f"Field not allowed: pricing.{key}")

    if "base_charge_cents" in raw:
        order.base_charge_cents = coerce_amount_cents("base_charge_cents", raw["base_charge_cents"] or 0)
    if "customizations" in raw:
        order.customizations = clean_customizations(raw["customizations"])
    if "material_charges_cents" in raw:
        order.material_charges_cents = coerce_amount_cents("material_charges_cents", raw["material_charges_cents"] or 0)
    if "urgent_charges_cents" in raw:
        order.urgent_charges_cents = coerce_amount_cents("urgent_charges_cents", raw["urgent_charges_cents"] or 0)
    if "discount" in raw:
        order.discount_cents, order.discount_reason = _clean_discount(raw["discount"])

    order.subtotal_cents, order.total_cents = compute_totals(
        base_charge_cents=order.base_charge_cents or 0,
        customizations=order.customizations or [],
        material_charges_cents=order.material_charges_cents or 0,
        urgent_charges_cents=order.urgent_charges_cents or 0,
        discount_cents=order.discount_cents or 0,
    )


# =============================================================================
# FIELD VALIDATION
# =============================================================================

def _reject_protected(fields: dict) -> None:
    for key in fields:
        if key in PROTECTED_FIELDS:
            raise OrderError(PROTECTED_FIELDS[key])


def _clean_details(key: str, raw: Any) -> dict | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise OrderError(f"{key} must be a mapping")
    return dict(raw)


def _apply_order_fields(order: Order, fields: dict) -> None:
    """Validate and copy the plain (non-pricing) editable fields onto order."""
    if "order_date" in fields:
        if fields["order_date"] is None:
            raise OrderError("order_date cannot be null")
        order.order_date = coerce_date("order_date", fields["order_date"])
    if "delivery_date" in fields:
        if fields["delivery_date"] is None:
            raise OrderError("delivery_date is required")
        order.delivery_date = coerce_date("delivery_date", fields["delivery_date"])
    if "priority" in fields:
        order.priority = require_choice("priority", fields["priority"] or PRIORITY_NORMAL, VALID_PRIORITIES)
    if "garment_type" in fields:
        order.garment_type = require_choice("garment_type", fields["garment_type"], GARMENT_TYPES)
    if "quantity" in fields:
        quantity = coerce_int("quantity", fields["quantity"] if fields["quantity"] is not None else 1)
        if quantity < 1:
            raise OrderError("quantity must be at least 1")
        order.quantity = quantity
    if "fabric_details" in fields:
        order.fabric_details = _clean_details("fabric_details", fields["fabric_details"])
    if "design_details" in fields:
        order.design_details = _clean_details("design_details", fields["design_details"])
    if "special_instructions" in fields:
        order.special_instructions = str(fields["special_instructions"] or "").strip() or None

    if order.delivery_date < order.order_date:
        raise OrderError("delivery_date cannot be before order_date")


def _recount_orders(session, client: Client) -> None:
    session.flush()
    client.total_orders = session.query(Order).filter_by(client_id=client.id).count()


class OrderService:
    def __init__(self, storage: StorageContext, rates: RatesService | None = None):
        self.storage = storage
        self.rates = rates or RatesService(storage)

    # =========================================================================
    # CREATION
    # =========================================================================

    def create(self, order_input: dict) -> Order:
        """
        Create an order for an existing client.

        In one transaction: snapshots the client and the active measurement
        (or the one named by measurement_id), prices the order from the rate
        table plus caller-supplied charges, seeds the status history with
        "placed", allocates the order id and stamps the client's
        last_order_date.

        Raises:
            NotFoundError: client or named measurement does not exist
            ValidationError: bad field values, delivery before order date
        """
        if not isinstance(order_input, dict):
            raise OrderError("Invalid payload")
        _reject_protected({k: v for k, v in order_input.items() if k not in CREATE_FIELDS})
        for key in order_input:
            if key not in CREATE_FIELDS:
                raise OrderError(f"Field not allowed: {key}")

        client_id = order_input.get("client_id")
        if not client_id:
            raise OrderError("client_id is required")
        if not order_input.get("garment_type"):
            raise OrderError("garment_type is required")
        if not order_input.get("delivery_date"):
            raise OrderError("delivery_date is required")

        now = utcnow()
        order = Order(
            order_date=today(),
            priority=PRIORITY_NORMAL,
            quantity=1,
            base_charge_cents=0,
            customizations=[],
            material_charges_cents=0,
            urgent_charges_cents=0,
            discount_cents=0,
            status=STATUS_PLACED,
            created_at=now,
            updated_at=now,
        )
        plain = {k: v for k, v in order_input.items() if k in EDITABLE_FIELDS and k != "pricing"}
        if plain.get("order_date") is None:
            plain.pop("order_date", None)
        _apply_order_fields(order, plain)

        pricing_input = dict(order_input.get("pricing") or {})
        if "base_charge_cents" not in pricing_input:
            pricing_input["base_charge_cents"] = self.rates.get(order.garment_type) or 0
        _apply_pricing(order, pricing_input)

        measurement_id = order_input.get("measurement_id")

        with self.storage.atomic() as session:
            client = lock_for_update(session.query(Client).filter_by(id=client_id)).first()
            if client is None:
                raise NotFoundError("Client", client_id)

            if measurement_id:
                measurement = session.get(Measurement, measurement_id)
                if measurement is None:
                    raise NotFoundError("Measurement", measurement_id)
                if measurement.client_id != client_id:
                    raise OrderError(f"Measurement {measurement_id} does not belong to client {client_id}")
            else:
                measurement = (
                    session.query(Measurement)
                    .filter_by(client_id=client_id, garment_type=order.garment_type, is_active=True)
                    .first()
                )

            order.client_id = client.id
            order.client_name = client.name
            order.client_phone = client.phone_number
            if measurement is not None:
                order.measurement_id = measurement.id
                order.measurement_snapshot = snapshot_of(measurement)

            order.id = next_order_id(session, now.date())
            order.status_events.append(
                OrderStatusEvent(sequence=1, status=STATUS_PLACED, occurred_at=now, notes=CREATED_NOTE)
            )
            session.add(order)

            client.last_order_date = order.order_date
            _recount_orders(session, client)

        self.storage.logger.info("Created order %s for client %s", order.id, client_id)
        return order

    # =========================================================================
    # STATUS
    # =========================================================================

    def update_status(self, order_id: str, new_status: str, notes: str | None = None) -> Order:
        """
        Move an order to new_status and append the change to its history.

        Any known status is accepted regardless of the current one.
        """
        require_choice("status", new_status, ORDER_STATUSES)

        with self.storage.atomic() as session:
            order = lock_for_update(session.query(Order).filter_by(id=order_id)).first()
            if order is None:
                raise NotFoundError("Order", order_id)

            now = utcnow()
            order.status_events.append(
                OrderStatusEvent(
                    sequence=len(order.status_events) + 1,
                    status=new_status,
                    occurred_at=now,
                    notes=(notes or "").strip() or None,
                )
            )
            order.status = new_status
            order.updated_at = now
            if new_status == STATUS_COMPLETED:
                order.completed_at = now
            elif new_status == STATUS_DELIVERED:
                order.delivered_at = now

        self.storage.logger.info("Order %s moved to %s", order_id, new_status)
        return order

    def cancel(self, order_id: str, reason: str | None = None) -> Order:
        return self.update_status(order_id, STATUS_CANCELLED, reason)

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    def add_payment(self, order_id: str, payment: dict) -> Order:
        """
        Record a payment against an order.

        Totals are recomputed from the payment rows; overpayment is kept.

        Raises:
            NotFoundError: order does not exist
            ValidationError: amount_cents <= 0, unknown method or type
        """
        if not isinstance(payment, dict):
            raise OrderError("Invalid payment")

        if payment.get("amount_cents") is None:
            raise OrderError("amount_cents is required")
        amount_cents = coerce_amount_cents("amount_cents", payment["amount_cents"], allow_zero=False)
        payment_date = coerce_date("payment_date", payment["payment_date"]) if payment.get("payment_date") else today()
        method = require_choice("method", payment.get("method") or "cash", PAYMENT_METHODS)
        payment_type = require_choice("type", payment.get("type") or "advance", PAYMENT_TYPES)

        with self.storage.atomic() as session:
            order = lock_for_update(session.query(Order).filter_by(id=order_id)).first()
            if order is None:
                raise NotFoundError("Order", order_id)

            now = utcnow()
            order.payments.append(
                OrderPayment(
                    sequence=len(order.payments) + 1,
                    amount_cents=amount_cents,
                    payment_date=payment_date,
                    method=method,
                    payment_type=payment_type,
                    receipt_number=str(payment.get("receipt_number") or "").strip() or None,
                    notes=str(payment.get("notes") or "").strip() or None,
                    created_at=now,
                )
            )
            order.updated_at = now

        self.storage.logger.info(
            "Payment of %s recorded on order %s (balance %s)",
            amount_cents, order_id, order.balance_due_cents,
        )
        return order

    # =========================================================================
    # EDITS
    # =========================================================================

    def update(self, order_id: str, fields: dict) -> Order:
        """
        General edit of dates, garment, quantity, details and pricing
        components. Totals are recomputed; snapshots are left alone.
        """
        if not isinstance(fields, dict):
            raise OrderError("Invalid payload")
        _reject_protected(fields)
        for key in fields:
            if key not in EDITABLE_FIELDS:
                raise OrderError(f"Field not allowed: {key}")

        with self.storage.atomic() as session:
            order = lock_for_update(session.query(Order).filter_by(id=order_id)).first()
            if order is None:
                raise NotFoundError("Order", order_id)

            _apply_order_fields(order, {k: v for k, v in fields.items() if k != "pricing"})
            if "pricing" in fields:
                _apply_pricing(order, fields["pricing"])
            order.updated_at = utcnow()

        return order

    def delete(self, order_id: str) -> None:
        with self.storage.atomic() as session:
            order = session.get(Order, order_id)
            if order is None:
                raise NotFoundError("Order", order_id)
            session.delete(order)
            client = session.get(Client, order.client_id)
            if client is not None:
                _recount_orders(session, client)

        self.storage.logger.info("Deleted order %s", order_id)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def _newest_first(self, query):
        return query.order_by(Order.order_date.desc(), Order.created_at.desc(), Order.id.desc())

    def get_by_id(self, order_id: str) -> Order | None:
        with self.storage.reading() as session:
            return session.get(Order, order_id)

    def get_all(self) -> list[Order]:
        with self.storage.reading() as session:
            return self._newest_first(session.query(Order)).all()

    def get_by_client_id(self, client_id: str) -> list[Order]:
        with self.storage.reading() as session:
            return self._newest_first(session.query(Order).filter_by(client_id=client_id)).all()

    def filter(
        self,
        *,
        status: str | None = None,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
        client_id: str | None = None,
    ) -> list[Order]:
        """Orders matching every supplied criterion; date bounds are inclusive."""
        with self.storage.reading() as session:
            q = session.query(Order)
            if status:
                q = q.filter(Order.status == status)
            if client_id:
                q = q.filter(Order.client_id == client_id)
            if start_date:
                q = q.filter(Order.order_date >= coerce_date("start_date", start_date))
            if end_date:
                q = q.filter(Order.order_date <= coerce_date("end_date", end_date))
            return self._newest_first(q).all()

    def get_by_date_range(self, start_date: date | str, end_date: date | str) -> list[Order]:
        return self.filter(start_date=start_date, end_date=end_date)

    def get_overdue(self, as_of: date | None = None) -> list[Order]:
        """Orders past their delivery date that are neither delivered nor cancelled."""
        cutoff = as_of or today()
        with self.storage.reading() as session:
            return (
                session.query(Order)
                .filter(
                    Order.delivery_date < cutoff,
                    Order.status.notin_(sorted(TERMINAL_STATUSES)),
                )
                .order_by(Order.delivery_date, Order.id)
                .all()
            )
