# Overview: Sample data for a fresh install; used by the CLI and by demos.

from __future__ import annotations

from datetime import timedelta

from ..time_utils import today
from . import DataLayer
from .settings_service import (
    KEY_BUSINESS_ADDRESS,
    KEY_BUSINESS_NAME,
    KEY_BUSINESS_PHONE,
    KEY_DEFAULT_UNIT,
)


DEFAULT_RATES_CENTS = {
    "shirt": 60000,
    "blouse": 50000,
    "churidar": 80000,
    "salwar": 70000,
    "pants": 55000,
    "skirt": 45000,
    "lehenga": 250000,
    "saree_blouse": 55000,
    "kids_wear": 35000,
}


def seed_sample_data(data: DataLayer) -> bool:
    """
    Populate an empty store with two clients, measurements, one order,
    default rates and business settings.

    Returns False (and does nothing) if any client already exists.
    Everything is written in one transaction.
    """
    if data.clients.get_all():
        data.storage.logger.info("Database already has data. Skipping seed.")
        return False

    with data.storage.atomic():
        priya = data.clients.create({
            "name": "Priya Menon",
            "phone_number": "9876543210",
            "address": "123 MG Road, Kochi, Kerala 682001",
            "email": "priya.menon@email.com",
            "notes": "Prefers cotton fabrics",
        })
        data.clients.create({
            "name": "Anjali Nair",
            "phone_number": "9876543211",
            "address": "456 Marine Drive, Ernakulam",
            "email": "anjali.nair@email.com",
        })

        data.measurements.create({
            "client_id": priya.id,
            "garment_type": "churidar",
            "measurements": {
                "topLength": 42,
                "shoulder": 14.5,
                "sleeveLength": 20,
                "chest": 38,
                "waist": 34,
                "hip": 40,
                "bottomLength": 38,
                "bottomWaist": 30,
                "thigh": 22,
                "bottomOpening": 10,
            },
            "unit": "inches",
            "notes": "Standard measurements",
        })
        data.measurements.create({
            "client_id": priya.id,
            "garment_type": "blouse",
            "measurements": {
                "length": 15,
                "shoulder": 13,
                "sleeveLength": 12,
                "bust": 36,
                "waist": 32,
                "underbust": 34,
                "armhole": 16,
            },
            "unit": "inches",
        })

        for garment_type, amount in DEFAULT_RATES_CENTS.items():
            data.rates.set(garment_type, amount)

        data.orders.create({
            "client_id": priya.id,
            "garment_type": "churidar",
            "delivery_date": today() + timedelta(days=7),
            "fabric_details": {"type": "Cotton", "providedBy": "client"},
            "design_details": {"description": "Simple churidar with embroidery on sleeves"},
            "pricing": {
                "customizations": [
                    {"description": "Embroidery on sleeves", "amount_cents": 20000},
                    {"description": "Lining", "amount_cents": 10000},
                ],
            },
        })

        data.settings.set(KEY_BUSINESS_NAME, "ThreadCraft Tailoring")
        data.settings.set(KEY_BUSINESS_ADDRESS, "Kochi, Kerala")
        data.settings.set(KEY_BUSINESS_PHONE, "9876543210")
        data.settings.set(KEY_DEFAULT_UNIT, "inches")

    data.storage.logger.info("Database seeded successfully")
    return True
