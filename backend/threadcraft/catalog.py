# Overview: Static catalog of garment types, measurement field schemas and enumerated tags.

from __future__ import annotations

from dataclasses import dataclass


GARMENT_TYPES = [
    "shirt",
    "blouse",
    "churidar",
    "salwar",
    "pants",
    "skirt",
    "lehenga",
    "saree_blouse",
    "kids_wear",
    "custom",
]

UNIT_INCHES = "inches"
UNIT_CM = "cm"
VALID_UNITS = [UNIT_INCHES, UNIT_CM]


@dataclass(frozen=True)
class MeasurementField:
    name: str
    label: str
    required: bool = False


# Garment types missing from this table take any positive numeric fields.
MEASUREMENT_FIELDS: dict[str, tuple[MeasurementField, ...]] = {
    "shirt": (
        MeasurementField("length", "Length", True),
        MeasurementField("shoulder", "Shoulder Width", True),
        MeasurementField("sleeveLength", "Sleeve Length", True),
        MeasurementField("chest", "Chest/Bust", True),
        MeasurementField("waist", "Waist", True),
        MeasurementField("hip", "Hip"),
        MeasurementField("armhole", "Armhole"),
        MeasurementField("neck", "Neck"),
        MeasurementField("frontNeckDepth", "Front Neck Depth"),
        MeasurementField("backNeckDepth", "Back Neck Depth"),
    ),
    "blouse": (
        MeasurementField("length", "Length", True),
        MeasurementField("shoulder", "Shoulder", True),
        MeasurementField("sleeveLength", "Sleeve Length", True),
        MeasurementField("bust", "Bust", True),
        MeasurementField("waist", "Waist", True),
        MeasurementField("underbust", "Underbust"),
        MeasurementField("armhole", "Armhole"),
        MeasurementField("neckFront", "Neck (Front)"),
        MeasurementField("neckBack", "Neck (Back)"),
        MeasurementField("backOpeningDepth", "Back Opening Depth"),
    ),
    "churidar": (
        MeasurementField("topLength", "Top Length", True),
        MeasurementField("shoulder", "Shoulder", True),
        MeasurementField("sleeveLength", "Sleeve Length", True),
        MeasurementField("chest", "Chest", True),
        MeasurementField("waist", "Waist", True),
        MeasurementField("hip", "Hip", True),
        MeasurementField("bottomLength", "Bottom Length", True),
        MeasurementField("bottomWaist", "Bottom Waist", True),
        MeasurementField("thigh", "Thigh", True),
        MeasurementField("bottomOpening", "Bottom Opening", True),
        MeasurementField("knee", "Knee"),
        MeasurementField("dupattaLength", "Dupatta Length"),
        MeasurementField("dupattaWidth", "Dupatta Width"),
    ),
}


def measurement_fields(garment_type: str) -> tuple[MeasurementField, ...]:
    return MEASUREMENT_FIELDS.get(garment_type, ())


# =============================================================================
# ORDER TAGS
# =============================================================================

STATUS_PLACED = "placed"
STATUS_FABRIC_RECEIVED = "fabric_received"
STATUS_CUTTING = "cutting"
STATUS_STITCHING = "stitching"
STATUS_TRIAL = "trial"
STATUS_ALTERATIONS = "alterations"
STATUS_COMPLETED = "completed"
STATUS_READY = "ready"
STATUS_DELIVERED = "delivered"
STATUS_CANCELLED = "cancelled"

# Forward workflow order; cancelled sits outside it.
ORDER_STATUSES = [
    STATUS_PLACED,
    STATUS_FABRIC_RECEIVED,
    STATUS_CUTTING,
    STATUS_STITCHING,
    STATUS_TRIAL,
    STATUS_ALTERATIONS,
    STATUS_COMPLETED,
    STATUS_READY,
    STATUS_DELIVERED,
    STATUS_CANCELLED,
]
TERMINAL_STATUSES = {STATUS_DELIVERED, STATUS_CANCELLED}

PRIORITY_NORMAL = "normal"
PRIORITY_URGENT = "urgent"
VALID_PRIORITIES = [PRIORITY_NORMAL, PRIORITY_URGENT]

PAYMENT_METHODS = ["cash", "upi", "card"]
PAYMENT_TYPES = ["advance", "final"]

PAYMENT_STATUS_NOT_PAID = "not_paid"
PAYMENT_STATUS_PARTIALLY_PAID = "partially_paid"
PAYMENT_STATUS_FULLY_PAID = "fully_paid"
