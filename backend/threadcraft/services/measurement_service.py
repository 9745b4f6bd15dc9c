# Overview: Service-layer operations for measurements; encapsulates business logic and database work.

"""
Measurement Service - versioned measurements per client and garment type

VERSIONING:
    For every (client_id, garment_type) pair:
    - versions run 1, 2, 3, ... in creation order
    - exactly the highest version is active (is_active=True)
    - rows are never edited; a correction is a new version

    create() deactivates the current active row, assigns max(version) + 1 and
    inserts the new active row in ONE transaction. A reader never sees two
    active rows for a pair.

VALIDATION:
    The garment type's field schema (catalog.MEASUREMENT_FIELDS) says which
    fields are required. Every supplied value must be a number > 0. Extra
    (custom) field names are kept as-is.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func

from ..catalog import GARMENT_TYPES, UNIT_INCHES, VALID_UNITS, measurement_fields
from ..errors import NotFoundError, ValidationError
from ..models import Client, Measurement
from ..storage import StorageContext, lock_for_update
from ..time_utils import utcnow
from ..validation import require_choice


MEASUREMENT_PREFIX = "MEAS"


def new_measurement_id() -> str:
    return f"{MEASUREMENT_PREFIX}-{uuid.uuid4().hex}"


def _to_positive_number(name: str, raw: Any) -> float | int | None:
    """Coerce one measurement value. Blank strings mean 'not supplied'."""
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(raw, str):
        stripped = raw.strip()
        if not stripped:
            return None
        try:
            value = float(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be a number")
    elif isinstance(raw, (int, float)):
        value = raw
    else:
        raise ValidationError(f"{name} must be a number")

    if value != value or value in (float("inf"), float("-inf")):
        raise ValidationError(f"{name} must be a finite number")
    if value <= 0:
        raise ValidationError(f"{name} must be greater than 0")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def validate_measurements(garment_type: str, values: dict) -> dict:
    """
    Validate a measurement mapping against the garment type's field schema.

    Returns the cleaned mapping with schema fields first (in schema order),
    then custom fields in the order supplied.
    """
    if not isinstance(values, dict):
        raise ValidationError("measurements must be a mapping of field name to value")

    cleaned: dict = {}
    for name, raw in values.items():
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("measurement field names must be non-empty strings")
        value = _to_positive_number(name, raw)
        if value is not None:
            cleaned[name.strip()] = value

    schema = measurement_fields(garment_type)
    missing = [f.label for f in schema if f.required and f.name not in cleaned]
    if missing:
        raise ValidationError(f"Missing required measurements: {', '.join(missing)}")

    if not cleaned:
        raise ValidationError("At least one measurement is required")

    ordered = {f.name: cleaned[f.name] for f in schema if f.name in cleaned}
    ordered.update((k, v) for k, v in cleaned.items() if k not in ordered)
    return ordered


class MeasurementService:
    def __init__(self, storage: StorageContext):
        self.storage = storage

    def create(self, data: dict) -> Measurement:
        """
        Record a new measurement version and make it the active one.

        Args:
            data: client_id, garment_type, measurements, unit?, notes?

        Raises:
            NotFoundError: client does not exist
            ValidationError: unknown garment type / unit, missing or non-positive values
        """
        if not isinstance(data, dict):
            raise ValidationError("Invalid payload")

        client_id = data.get("client_id")
        if not client_id:
            raise ValidationError("client_id is required")
        garment_type = require_choice("garment_type", data.get("garment_type"), GARMENT_TYPES)
        unit = require_choice("unit", data.get("unit") or UNIT_INCHES, VALID_UNITS)
        values = validate_measurements(garment_type, data.get("measurements") or {})
        notes = (data.get("notes") or "").strip() or None

        with self.storage.atomic() as session:
            if session.get(Client, client_id) is None:
                raise NotFoundError("Client", client_id)

            current = lock_for_update(
                session.query(Measurement).filter_by(
                    client_id=client_id,
                    garment_type=garment_type,
                    is_active=True,
                )
            ).all()
            for row in current:
                row.is_active = False
            # Deactivation must reach the database before the new active row
            session.flush()

            previous_max = (
                session.query(func.max(Measurement.version))
                .filter_by(client_id=client_id, garment_type=garment_type)
                .scalar()
            ) or 0

            measurement = Measurement(
                id=new_measurement_id(),
                client_id=client_id,
                garment_type=garment_type,
                version=previous_max + 1,
                is_active=True,
                values=values,
                unit=unit,
                notes=notes,
                created_at=utcnow(),
            )
            session.add(measurement)

        self.storage.logger.info(
            "Recorded %s measurements v%s for client %s",
            garment_type, measurement.version, client_id,
        )
        return measurement

    def get_by_id(self, measurement_id: str) -> Measurement | None:
        with self.storage.reading() as session:
            return session.get(Measurement, measurement_id)

    def get_by_client_id(self, client_id: str) -> list[Measurement]:
        """All versions for a client, grouped by garment type, newest first."""
        with self.storage.reading() as session:
            return (
                session.query(Measurement)
                .filter_by(client_id=client_id)
                .order_by(Measurement.garment_type, Measurement.version.desc())
                .all()
            )

    def get_active(self, client_id: str, garment_type: str) -> Measurement | None:
        with self.storage.reading() as session:
            return (
                session.query(Measurement)
                .filter_by(client_id=client_id, garment_type=garment_type, is_active=True)
                .first()
            )

    def get_history(self, client_id: str, garment_type: str) -> list[Measurement]:
        with self.storage.reading() as session:
            return (
                session.query(Measurement)
                .filter_by(client_id=client_id, garment_type=garment_type)
                .order_by(Measurement.version.desc())
                .all()
            )

    def delete(self, measurement_id: str) -> None:
        """
        Delete one version.

        If it was the active version, the highest remaining version for the
        pair becomes active so the invariant still holds.
        """
        with self.storage.atomic() as session:
            measurement = session.get(Measurement, measurement_id)
            if measurement is None:
                raise NotFoundError("Measurement", measurement_id)

            was_active = measurement.is_active
            client_id, garment_type = measurement.client_id, measurement.garment_type
            session.delete(measurement)
            session.flush()

            if was_active:
                successor = (
                    session.query(Measurement)
                    .filter_by(client_id=client_id, garment_type=garment_type)
                    .order_by(Measurement.version.desc())
                    .first()
                )
                if successor is not None:
                    successor.is_active = True

        self.storage.logger.info("Deleted measurement %s", measurement_id)


def snapshot_of(measurement: Measurement) -> dict:
    """Frozen copy stored on an order; independent of later changes."""
    return measurement.to_dict()
