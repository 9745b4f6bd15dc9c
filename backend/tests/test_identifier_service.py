"""
Identifier allocation tests (PREFIX-YYYYMMDD-NNNN).
"""

from datetime import date

import pytest

from threadcraft.extensions import db
from threadcraft.models import Client, IdentifierSequence, Order
from threadcraft.services.identifier_service import (
    MAX_DAILY_SEQUENCE,
    format_scope,
    next_client_id,
    next_identifier,
    next_order_id,
    parse_sequence,
)
from threadcraft.errors import StorageError


DAY = date(2025, 1, 10)


class TestFormat:
    def test_scope_uses_prefix_and_compact_date(self):
        assert format_scope("ORD", DAY) == "ORD-20250110"

    def test_parse_sequence(self):
        assert parse_sequence("ORD-20250110-0042", "ORD-20250110") == 42
        assert parse_sequence("ORD-20250111-0042", "ORD-20250110") is None
        assert parse_sequence(None, "ORD-20250110") is None


class TestNextIdentifier:
    def test_first_id_of_the_day(self, app):
        assert next_order_id(db.session, DAY) == "ORD-20250110-0001"

    def test_ids_increase_within_a_day(self, app):
        ids = [next_order_id(db.session, DAY) for _ in range(3)]
        assert ids == ["ORD-20250110-0001", "ORD-20250110-0002", "ORD-20250110-0003"]

    def test_sequence_restarts_on_a_new_day(self, app):
        next_order_id(db.session, DAY)
        assert next_order_id(db.session, date(2025, 1, 11)) == "ORD-20250111-0001"

    def test_clients_and_orders_have_separate_sequences(self, app):
        assert next_order_id(db.session, DAY) == "ORD-20250110-0001"
        assert next_client_id(db.session, DAY) == "CLI-20250110-0001"

    def test_skips_past_ids_already_in_the_table(self, app):
        # e.g. records that arrived through an import
        db.session.add(Client(id="CLI-20250110-0007", name="Imported", phone_number="1"))
        db.session.commit()

        assert next_client_id(db.session, DAY) == "CLI-20250110-0008"

    def test_lost_counter_row_still_yields_unique_ids(self, app, data, asha):
        db.session.query(IdentifierSequence).delete()
        db.session.commit()

        second = data.clients.create({"name": "Second", "phone_number": "2"})
        assert second.id != asha.id

    def test_exhausted_day_fails_instead_of_reusing(self, app):
        scope = format_scope("ORD", DAY)
        db.session.add(IdentifierSequence(scope=scope, next_number=MAX_DAILY_SEQUENCE + 1))
        db.session.flush()

        with pytest.raises(StorageError):
            next_identifier(db.session, prefix="ORD", model=Order, day=DAY)
