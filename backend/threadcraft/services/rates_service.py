# Overview: Service-layer operations for garment rates; default charge per garment type.

from __future__ import annotations

from ..errors import ValidationError
from ..models import Rate
from ..storage import StorageContext
from ..time_utils import utcnow
from ..validation import coerce_amount_cents


class RatesService:
    """garment_type -> amount_cents. No history; the last write wins."""

    def __init__(self, storage: StorageContext):
        self.storage = storage

    def get_all(self) -> dict[str, int]:
        with self.storage.reading() as session:
            rows = session.query(Rate).order_by(Rate.garment_type).all()
            return {r.garment_type: r.amount_cents for r in rows}

    def get(self, garment_type: str) -> int | None:
        with self.storage.reading() as session:
            rate = session.get(Rate, garment_type)
            return rate.amount_cents if rate else None

    def set(self, garment_type: str, amount_cents) -> Rate:
        if not garment_type or not str(garment_type).strip():
            raise ValidationError("garment_type is required")
        amount = coerce_amount_cents("amount_cents", amount_cents)

        with self.storage.atomic() as session:
            rate = session.get(Rate, garment_type)
            if rate is None:
                rate = Rate(garment_type=garment_type)
                session.add(rate)
            rate.amount_cents = amount
            rate.updated_at = utcnow()

        self.storage.logger.info("Rate for %s set to %s", garment_type, amount)
        return rate
