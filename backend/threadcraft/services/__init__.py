# Overview: Service bundle; one instance of every service over a shared storage context.

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask

from ..storage import StorageContext
from .client_service import ClientService
from .measurement_service import MeasurementService
from .order_service import OrderService
from .portability_service import PortabilityService
from .rates_service import RatesService
from .settings_service import SettingsService


@dataclass
class DataLayer:
    """The surface the UI calls into."""
    storage: StorageContext
    clients: ClientService
    measurements: MeasurementService
    orders: OrderService
    rates: RatesService
    settings: SettingsService
    portability: PortabilityService

    @classmethod
    def from_storage(cls, storage: StorageContext) -> "DataLayer":
        rates = RatesService(storage)
        return cls(
            storage=storage,
            clients=ClientService(storage),
            measurements=MeasurementService(storage),
            orders=OrderService(storage, rates=rates),
            rates=rates,
            settings=SettingsService(storage),
            portability=PortabilityService(storage),
        )


def open_data_layer(app: Flask) -> DataLayer:
    """Build the data layer for app. Call inside an application context."""
    return DataLayer.from_storage(StorageContext.from_app(app))
