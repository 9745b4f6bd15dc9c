"""
Pytest fixtures for ThreadCraft backend tests.

Every test gets its own app and in-memory database, so services never share
state between cases.
"""

from datetime import date

import pytest

from threadcraft import create_app
from threadcraft.extensions import db
from threadcraft.services import open_data_layer


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def data(app):
    """Data layer bound to the test app's storage context."""
    return open_data_layer(app)


@pytest.fixture(scope='function')
def cli_runner(app):
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def asha(data):
    """A registered client."""
    return data.clients.create({"name": "Asha", "phone_number": "9876543210"})


@pytest.fixture(scope='function')
def shirt_measurements():
    return {
        "length": 30,
        "shoulder": 17,
        "sleeveLength": 24,
        "chest": 40,
        "waist": 34,
    }


@pytest.fixture(scope='function')
def make_order(data, asha):
    """Factory for orders on the asha client."""
    def _make(**overrides):
        payload = {
            "client_id": asha.id,
            "garment_type": "shirt",
            "order_date": date(2025, 1, 10),
            "delivery_date": date(2025, 1, 20),
        }
        payload.update(overrides)
        return data.orders.create(payload)
    return _make
