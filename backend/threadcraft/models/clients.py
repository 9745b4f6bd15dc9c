from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow


class Client(db.Model):
    """
    Client master data for the shop.

    WHY: Orders and measurements hang off a client id. Deleting a client
    does not touch either; historical orders keep their client snapshot.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_phone_number", "phone_number"),
        db.Index("ix_clients_secondary_phone", "secondary_phone"),
    )

    # Human-readable id (e.g., "CLI-20250110-0001")
    id = db.Column(db.String(32), primary_key=True)

    name = db.Column(db.String(255), nullable=False, index=True)
    phone_number = db.Column(db.String(32), nullable=False)
    secondary_phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)
    email = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    registration_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    # Written only by order creation
    last_order_date = db.Column(db.Date, nullable=True, index=True)
    # Recounted on order create and delete
    total_orders = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone_number": self.phone_number,
            "secondary_phone": self.secondary_phone,
            "address": self.address,
            "email": self.email,
            "notes": self.notes,
            "registration_date": to_utc_z(self.registration_date),
            "last_order_date": to_iso_date(self.last_order_date),
            "total_orders": self.total_orders,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
