# Overview: Service-layer operations for whole-store export/import; backup document handling.

"""
Portability Service - whole-store backup document

DOCUMENT SHAPE:
    {
        "format_version": 1,
        "exported_at": "2025-01-10T09:30:00Z",
        "clients":      [Client.to_dict(), ...],
        "measurements": [Measurement.to_dict(), ...],
        "orders":       [Order.to_dict(), ...],      # with status_history and payments
        "settings":     [Setting.to_dict(), ...],
        "rates":        [Rate.to_dict(), ...],
    }

IMPORT RULES:
- The whole document is validated before anything is written. A document
  that fails validation changes nothing.
- Records are upserted by primary key (last write wins per record) in ONE
  transaction.
- An imported order replaces its status history and payments wholesale.
- Measurement activity is re-derived for every pair the import touches:
  the highest version is active, all others are not.
- Derived order values (totals, balance, payment status) in the document are
  ignored; they are recomputed from the imported rows.
- Each touched client's total_orders is recounted from the stored orders.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

from sqlalchemy import func

from ..catalog import (
    GARMENT_TYPES,
    ORDER_STATUSES,
    PAYMENT_METHODS,
    PAYMENT_TYPES,
    PRIORITY_NORMAL,
    TERMINAL_STATUSES,
    UNIT_INCHES,
    VALID_PRIORITIES,
    VALID_UNITS,
)
from ..errors import ValidationError
from ..models import (
    Client,
    IdentifierSequence,
    Measurement,
    Order,
    OrderPayment,
    OrderStatusEvent,
    Rate,
    Setting,
)
from ..storage import StorageContext
from ..time_utils import to_utc_z, utcnow
from ..validation import coerce_amount_cents, coerce_date, coerce_datetime, coerce_int, require_choice
from .measurement_service import validate_measurements
from .order_service import clean_customizations


FORMAT_VERSION = 1
COLLECTIONS = ("clients", "measurements", "orders", "settings", "rates")


class ImportValidationError(ValidationError):
    """Raised when a backup document fails validation. Nothing is written."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or [message]
        super().__init__(message)


@dataclass
class ImportResult:
    counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return dict(self.counts)


# =============================================================================
# RECORD PARSERS
# =============================================================================
# Each parser turns one document record into plain column values, raising
# ValidationError on the first bad field. Nothing touches the session here.

def _text(record: dict, key: str, *, required: bool = False) -> str | None:
    value = record.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{key} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def _opt_date(record: dict, key: str) -> date | None:
    value = record.get(key)
    return coerce_date(key, value) if value else None


def _opt_datetime(record: dict, key: str) -> datetime | None:
    value = record.get(key)
    return coerce_datetime(key, value) if value else None


def _count(record: dict, key: str) -> int:
    value = coerce_int(key, record.get(key) or 0)
    if value < 0:
        raise ValidationError(f"{key} must be >= 0")
    return value


def _opt_mapping(record: dict, key: str) -> dict | None:
    value = record.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be a mapping")
    return value


def _parse_client(record: dict) -> dict:
    return {
        "id": _text(record, "id", required=True),
        "name": _text(record, "name", required=True),
        "phone_number": _text(record, "phone_number", required=True),
        "secondary_phone": _text(record, "secondary_phone"),
        "address": _text(record, "address"),
        "email": _text(record, "email"),
        "notes": _text(record, "notes"),
        "registration_date": _opt_datetime(record, "registration_date") or utcnow(),
        "last_order_date": _opt_date(record, "last_order_date"),
        "total_orders": _count(record, "total_orders"),
        "created_at": _opt_datetime(record, "created_at") or utcnow(),
        "updated_at": _opt_datetime(record, "updated_at") or utcnow(),
    }


def _parse_measurement(record: dict) -> dict:
    version = coerce_int("version", record.get("version"))
    if version < 1:
        raise ValidationError("version must be >= 1")
    garment_type = require_choice("garment_type", _text(record, "garment_type", required=True), GARMENT_TYPES)
    values = record.get("measurements")
    if not isinstance(values, dict):
        raise ValidationError("measurements must be a mapping")
    return {
        "id": _text(record, "id", required=True),
        "client_id": _text(record, "client_id", required=True),
        "garment_type": garment_type,
        "version": version,
        "values": validate_measurements(garment_type, values),
        "unit": require_choice("unit", _text(record, "unit") or UNIT_INCHES, VALID_UNITS),
        "notes": _text(record, "notes"),
        "created_at": _opt_datetime(record, "created_at") or utcnow(),
    }


def _parse_status_event(sequence: int, record: Any) -> dict:
    if not isinstance(record, dict):
        raise ValidationError("status_history entries must be objects")
    return {
        "sequence": sequence,
        "status": require_choice("status", _text(record, "status", required=True), ORDER_STATUSES),
        "occurred_at": _opt_datetime(record, "timestamp") or utcnow(),
        "notes": _text(record, "notes"),
    }


def _parse_payment(sequence: int, record: Any) -> dict:
    if not isinstance(record, dict):
        raise ValidationError("payments entries must be objects")
    return {
        "sequence": sequence,
        "amount_cents": coerce_amount_cents("amount_cents", record.get("amount_cents"), allow_zero=False),
        "payment_date": coerce_date("payment_date", record.get("payment_date")),
        "method": require_choice("method", _text(record, "method") or "cash", PAYMENT_METHODS),
        "payment_type": require_choice("type", _text(record, "type") or "advance", PAYMENT_TYPES),
        "receipt_number": _text(record, "receipt_number"),
        "notes": _text(record, "notes"),
        "created_at": _opt_datetime(record, "created_at") or utcnow(),
    }


def _parse_order(record: dict) -> dict:
    pricing = _opt_mapping(record, "pricing") or {}
    discount = pricing.get("discount") or {}
    if not isinstance(discount, dict):
        raise ValidationError("pricing.discount must be a mapping")

    history = record.get("status_history")
    if not isinstance(history, list) or not history:
        raise ValidationError("status_history must be a non-empty list")
    events = [_parse_status_event(i, e) for i, e in enumerate(history, start=1)]
    status = require_choice("status", _text(record, "status", required=True), ORDER_STATUSES)
    if events[-1]["status"] != status:
        raise ValidationError("status must match the last status_history entry")

    payments = record.get("payments") or []
    if not isinstance(payments, list):
        raise ValidationError("payments must be a list")

    order_date = coerce_date("order_date", record.get("order_date"))
    delivery_date = coerce_date("delivery_date", record.get("delivery_date"))
    if delivery_date < order_date:
        raise ValidationError("delivery_date cannot be before order_date")

    quantity = coerce_int("quantity", record.get("quantity", 1))
    if quantity < 1:
        raise ValidationError("quantity must be at least 1")

    return {
        "columns": {
            "id": _text(record, "id", required=True),
            "client_id": _text(record, "client_id", required=True),
            "client_name": _text(record, "client_name", required=True),
            "client_phone": _text(record, "client_phone"),
            "order_date": order_date,
            "delivery_date": delivery_date,
            "priority": require_choice("priority", _text(record, "priority") or PRIORITY_NORMAL, VALID_PRIORITIES),
            "garment_type": require_choice("garment_type", _text(record, "garment_type", required=True), GARMENT_TYPES),
            "quantity": quantity,
            "fabric_details": _opt_mapping(record, "fabric_details"),
            "design_details": _opt_mapping(record, "design_details"),
            "special_instructions": _text(record, "special_instructions"),
            "measurement_id": _text(record, "measurement_id"),
            "measurement_snapshot": _opt_mapping(record, "measurement_snapshot"),
            "status": status,
            "base_charge_cents": coerce_amount_cents("base_charge_cents", pricing.get("base_charge_cents") or 0),
            "customizations": clean_customizations(pricing.get("customizations")),
            "material_charges_cents": coerce_amount_cents("material_charges_cents", pricing.get("material_charges_cents") or 0),
            "urgent_charges_cents": coerce_amount_cents("urgent_charges_cents", pricing.get("urgent_charges_cents") or 0),
            "discount_cents": coerce_amount_cents("discount amount_cents", discount.get("amount_cents") or 0),
            "discount_reason": _text(discount, "reason"),
            "subtotal_cents": coerce_amount_cents("subtotal_cents", pricing.get("subtotal_cents") or 0),
            "total_cents": coerce_amount_cents("total_cents", pricing.get("total_cents") or 0),
            "created_at": _opt_datetime(record, "created_at") or utcnow(),
            "updated_at": _opt_datetime(record, "updated_at") or utcnow(),
            "completed_at": _opt_datetime(record, "completed_at"),
            "delivered_at": _opt_datetime(record, "delivered_at"),
        },
        "status_events": events,
        "payments": [_parse_payment(i, p) for i, p in enumerate(payments, start=1)],
    }


def _parse_setting(record: dict) -> dict:
    return {
        "key": _text(record, "key", required=True),
        "value": record.get("value"),
        "updated_at": _opt_datetime(record, "updated_at") or utcnow(),
    }


def _parse_rate(record: dict) -> dict:
    return {
        "garment_type": _text(record, "garment_type", required=True),
        "amount_cents": coerce_amount_cents("amount_cents", record.get("amount_cents")),
        "updated_at": _opt_datetime(record, "updated_at") or utcnow(),
    }


PARSERS: dict[str, Callable[[dict], dict]] = {
    "clients": _parse_client,
    "measurements": _parse_measurement,
    "orders": _parse_order,
    "settings": _parse_setting,
    "rates": _parse_rate,
}


def parse_snapshot(snapshot: Any) -> dict[str, list[dict]]:
    """
    Validate a whole backup document and return parsed records per collection.

    Collects every record error so the caller can show them all at once.
    Raises ImportValidationError if anything is wrong.
    """
    if not isinstance(snapshot, dict):
        raise ImportValidationError("Backup document must be an object")

    missing = [name for name in COLLECTIONS if name not in snapshot]
    if missing:
        raise ImportValidationError(f"Backup document is missing: {', '.join(missing)}")

    parsed: dict[str, list[dict]] = {}
    errors: list[str] = []
    for name in COLLECTIONS:
        records = snapshot[name]
        if not isinstance(records, list):
            errors.append(f"{name} must be a list")
            continue
        parsed[name] = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                errors.append(f"{name}[{index}]: record must be an object")
                continue
            try:
                parsed[name].append(PARSERS[name](record))
            except ValidationError as exc:
                errors.append(f"{name}[{index}]: {exc}")

    if errors:
        raise ImportValidationError(f"Backup document has {len(errors)} invalid record(s)", errors)
    return parsed


class PortabilityService:
    def __init__(self, storage: StorageContext):
        self.storage = storage

    # =========================================================================
    # EXPORT
    # =========================================================================

    def export_all(self) -> dict:
        """Full snapshot of the store as plain, JSON-ready values."""
        with self.storage.reading() as session:
            document = {
                "format_version": FORMAT_VERSION,
                "exported_at": to_utc_z(utcnow()),
                "clients": [c.to_dict() for c in session.query(Client).order_by(Client.id).all()],
                "measurements": [
                    m.to_dict()
                    for m in session.query(Measurement)
                    .order_by(Measurement.client_id, Measurement.garment_type, Measurement.version)
                    .all()
                ],
                "orders": [o.to_dict() for o in session.query(Order).order_by(Order.id).all()],
                "settings": [s.to_dict() for s in session.query(Setting).order_by(Setting.key).all()],
                "rates": [r.to_dict() for r in session.query(Rate).order_by(Rate.garment_type).all()],
            }
        # to_dict builds fresh containers, but JSON values are shared with the
        # ORM state; a JSON round trip detaches them completely.
        return json.loads(json.dumps(document))

    def export_json(self, path: str | Path) -> Path:
        path = Path(path)
        path.write_text(json.dumps(self.export_all(), indent=2, ensure_ascii=False), encoding="utf-8")
        self.storage.logger.info("Exported backup to %s", path)
        return path

    # =========================================================================
    # IMPORT
    # =========================================================================

    def import_all(self, snapshot: Any) -> ImportResult:
        """
        Merge a backup document into the store, all or nothing.

        Raises:
            ImportValidationError: bad document shape or record; nothing written
            StorageError: the database rejected the merge; nothing written
        """
        parsed = parse_snapshot(snapshot)
        result = ImportResult(counts={name: len(parsed[name]) for name in COLLECTIONS})

        with self.storage.atomic() as session:
            for values in parsed["clients"]:
                session.merge(Client(**values))

            for values in parsed["settings"]:
                session.merge(Setting(**values))

            for values in parsed["rates"]:
                session.merge(Rate(**values))

            self._import_orders(session, parsed["orders"])
            self._import_measurements(session, parsed["measurements"])
            self._recount_client_orders(session, parsed)

        self.storage.logger.info("Imported backup: %s", result.to_dict())
        return result

    def _import_orders(self, session, records: list[dict]) -> None:
        for record in records:
            columns = record["columns"]
            existing = session.get(Order, columns["id"])
            if existing is not None:
                # Replace children wholesale; flush before re-inserting sequences
                existing.status_events.clear()
                existing.payments.clear()
                session.flush()
                order = existing
                for key, value in columns.items():
                    setattr(order, key, value)
            else:
                order = Order(**columns)
                session.add(order)

            for values in record["status_events"]:
                order.status_events.append(OrderStatusEvent(**values))
            for values in record["payments"]:
                order.payments.append(OrderPayment(**values))

    def _import_measurements(self, session, records: list[dict]) -> None:
        touched = set()
        for values in records:
            # Activity is re-derived below; insert everything inactive first
            session.merge(Measurement(is_active=False, **values))
            touched.add((values["client_id"], values["garment_type"]))
        session.flush()

        for client_id, garment_type in sorted(touched):
            rows = (
                session.query(Measurement)
                .filter_by(client_id=client_id, garment_type=garment_type)
                .order_by(Measurement.version.desc())
                .all()
            )
            for row in rows:
                row.is_active = False
            session.flush()
            if rows:
                rows[0].is_active = True
        session.flush()

    def _recount_client_orders(self, session, parsed: dict) -> None:
        client_ids = {c["id"] for c in parsed["clients"]}
        client_ids.update(o["columns"]["client_id"] for o in parsed["orders"])
        session.flush()
        for client_id in sorted(client_ids):
            client = session.get(Client, client_id)
            if client is not None:
                client.total_orders = session.query(Order).filter_by(client_id=client_id).count()

    def import_json(self, path: str | Path) -> ImportResult:
        path = Path(path)
        try:
            snapshot = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ImportValidationError(f"{path.name} is not valid JSON: {exc}")
        return self.import_all(snapshot)

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def clear_all(self) -> None:
        """Delete every record in every collection."""
        with self.storage.atomic() as session:
            for model in (OrderPayment, OrderStatusEvent, Order, Measurement, Client, Setting, Rate, IdentifierSequence):
                session.query(model).delete()

        self.storage.logger.warning("All data cleared")

    def get_stats(self) -> dict:
        with self.storage.reading() as session:
            return {
                "total_clients": session.query(func.count(Client.id)).scalar(),
                "total_orders": session.query(func.count(Order.id)).scalar(),
                "total_measurements": session.query(func.count(Measurement.id)).scalar(),
                "active_orders": session.query(func.count(Order.id))
                .filter(Order.status.notin_(sorted(TERMINAL_STATUSES)))
                .scalar(),
            }
