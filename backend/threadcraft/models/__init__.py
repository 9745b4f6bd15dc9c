from .clients import Client
from .measurements import Measurement
from .orders import Order, OrderStatusEvent, OrderPayment
from .settings import Setting, Rate
from .sequences import IdentifierSequence

__all__ = [
    'Client',
    'Measurement',
    'Order', 'OrderStatusEvent', 'OrderPayment',
    'Setting', 'Rate',
    'IdentifierSequence',
]
