from __future__ import annotations

from ..extensions import db
from ..catalog import (
    PAYMENT_STATUS_FULLY_PAID,
    PAYMENT_STATUS_NOT_PAID,
    PAYMENT_STATUS_PARTIALLY_PAID,
)
from ..time_utils import to_iso_date, to_utc_z, utcnow


class Order(db.Model):
    """
    Tailoring order document.

    WHY: The order owns its own copy of the client name/phone and of the
    measurement used, so later edits to either never rewrite history.

    DERIVED (never stored):
    - total_paid_cents = sum of payments
    - balance_due_cents = total_cents - total_paid_cents (may be negative)
    - payment_status

    STATUS: Mutated only through OrderService.update_status, which appends
    to status_history in the same transaction. The last history entry always
    matches status.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_client_order_date", "client_id", "order_date"),
        db.Index("ix_orders_status_delivery", "status", "delivery_date"),
    )

    # Human-readable id (e.g., "ORD-20250110-0001")
    id = db.Column(db.String(32), primary_key=True)

    # No FK: client deletes leave orders in place
    client_id = db.Column(db.String(32), nullable=False, index=True)
    client_name = db.Column(db.String(255), nullable=False)
    client_phone = db.Column(db.String(32), nullable=True)

    order_date = db.Column(db.Date, nullable=False, index=True)
    delivery_date = db.Column(db.Date, nullable=False, index=True)
    priority = db.Column(db.String(16), nullable=False, default="normal")

    garment_type = db.Column(db.String(32), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    fabric_details = db.Column(db.JSON, nullable=True)
    design_details = db.Column(db.JSON, nullable=True)
    special_instructions = db.Column(db.Text, nullable=True)

    # Frozen at creation
    measurement_id = db.Column(db.String(64), nullable=True)
    measurement_snapshot = db.Column(db.JSON, nullable=True)

    status = db.Column(db.String(32), nullable=False, default="placed", index=True)

    # Pricing (all amounts in cents)
    base_charge_cents = db.Column(db.Integer, nullable=False, default=0)
    customizations = db.Column(db.JSON, nullable=False, default=list)  # [{description, amount_cents}]
    material_charges_cents = db.Column(db.Integer, nullable=False, default=0)
    urgent_charges_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_reason = db.Column(db.String(255), nullable=True)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    status_events = db.relationship(
        "OrderStatusEvent",
        order_by="OrderStatusEvent.sequence",
        cascade="all, delete-orphan",
        lazy=True,
    )
    payments = db.relationship(
        "OrderPayment",
        order_by="OrderPayment.sequence",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @property
    def total_paid_cents(self) -> int:
        return sum(p.amount_cents for p in self.payments)

    @property
    def balance_due_cents(self) -> int:
        return self.total_cents - self.total_paid_cents

    @property
    def payment_status(self) -> str:
        total_paid = self.total_paid_cents
        if total_paid <= 0:
            return PAYMENT_STATUS_NOT_PAID
        if total_paid >= self.total_cents:
            return PAYMENT_STATUS_FULLY_PAID
        return PAYMENT_STATUS_PARTIALLY_PAID

    def pricing_dict(self) -> dict:
        return {
            "base_charge_cents": self.base_charge_cents,
            "customizations": [dict(c) for c in (self.customizations or [])],
            "material_charges_cents": self.material_charges_cents,
            "urgent_charges_cents": self.urgent_charges_cents,
            "discount": {
                "amount_cents": self.discount_cents,
                "reason": self.discount_reason,
            },
            "subtotal_cents": self.subtotal_cents,
            "total_cents": self.total_cents,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "client_phone": self.client_phone,
            "order_date": to_iso_date(self.order_date),
            "delivery_date": to_iso_date(self.delivery_date),
            "priority": self.priority,
            "garment_type": self.garment_type,
            "quantity": self.quantity,
            "fabric_details": self.fabric_details,
            "design_details": self.design_details,
            "special_instructions": self.special_instructions,
            "measurement_id": self.measurement_id,
            "measurement_snapshot": self.measurement_snapshot,
            "status": self.status,
            "status_history": [e.to_dict() for e in self.status_events],
            "pricing": self.pricing_dict(),
            "payments": [p.to_dict() for p in self.payments],
            "total_paid_cents": self.total_paid_cents,
            "balance_due_cents": self.balance_due_cents,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
        }


class OrderStatusEvent(db.Model):
    """
    Append-only status history for an order.

    IMMUTABLE: Rows are never updated. Sequence starts at 1 per order.
    """
    __tablename__ = "order_status_events"
    __table_args__ = (
        db.UniqueConstraint("order_id", "sequence", name="uq_order_status_events_order_seq"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(32), db.ForeignKey("orders.id"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(32), nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    notes = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "timestamp": to_utc_z(self.occurred_at),
            "notes": self.notes,
        }


class OrderPayment(db.Model):
    """
    Payment received against an order.

    Overpayment is recorded as-is; the order's balance simply goes negative.
    """
    __tablename__ = "order_payments"
    __table_args__ = (
        db.UniqueConstraint("order_id", "sequence", name="uq_order_payments_order_seq"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(32), db.ForeignKey("orders.id"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    method = db.Column(db.String(16), nullable=False, default="cash")  # cash, upi, card
    payment_type = db.Column("type", db.String(16), nullable=False, default="advance")  # advance, final
    receipt_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "amount_cents": self.amount_cents,
            "payment_date": to_iso_date(self.payment_date),
            "method": self.method,
            "type": self.payment_type,
            "receipt_number": self.receipt_number,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
