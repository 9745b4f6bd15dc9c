from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Setting(db.Model):
    """
    Flat key-value shop settings (business name, default unit, ...).

    No history; the last write wins.
    """
    __tablename__ = "settings"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }


class Rate(db.Model):
    """Default charge per garment type, used to price new orders."""
    __tablename__ = "rates"

    garment_type = db.Column(db.String(32), primary_key=True)
    amount_cents = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "garment_type": self.garment_type,
            "amount_cents": self.amount_cents,
            "updated_at": to_utc_z(self.updated_at),
        }
