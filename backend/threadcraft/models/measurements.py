from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Measurement(db.Model):
    """
    One version of a client's measurements for a garment type.

    INVARIANT: For each (client_id, garment_type) at most one row is active,
    and it is the highest version. The partial unique index backs this up at
    the database level; MeasurementService maintains it.

    IMMUTABLE: Rows are never edited. A correction is a new version.
    """
    __tablename__ = "measurements"
    __table_args__ = (
        db.UniqueConstraint("client_id", "garment_type", "version", name="uq_measurements_client_type_version"),
        db.Index("ix_measurements_client_type", "client_id", "garment_type"),
        db.Index(
            "uq_measurements_one_active",
            "client_id",
            "garment_type",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
    )

    # "MEAS-<uuid hex>"
    id = db.Column(db.String(64), primary_key=True)
    # No FK: client deletes leave measurements in place
    client_id = db.Column(db.String(32), nullable=False, index=True)
    garment_type = db.Column(db.String(32), nullable=False)

    version = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Field name -> positive number, field set per garment type
    values = db.Column("measurements", db.JSON, nullable=False, default=dict)
    unit = db.Column(db.String(8), nullable=False, default="inches")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "garment_type": self.garment_type,
            "version": self.version,
            "is_active": self.is_active,
            "measurements": dict(self.values or {}),
            "unit": self.unit,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
