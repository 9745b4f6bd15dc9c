import pytest

from threadcraft.errors import NotFoundError, ValidationError
from threadcraft.time_utils import today


class TestCreate:
    def test_assigns_id_and_registration_date(self, data):
        client = data.clients.create({"name": "Asha", "phone_number": "9876543210"})

        assert client.id == f"CLI-{today():%Y%m%d}-0001"
        assert client.registration_date is not None
        assert client.last_order_date is None

    def test_requires_name_and_phone(self, data):
        with pytest.raises(ValidationError):
            data.clients.create({"name": "Asha"})
        with pytest.raises(ValidationError):
            data.clients.create({"name": "   ", "phone_number": "1"})

    def test_rejects_unknown_or_protected_fields(self, data):
        with pytest.raises(ValidationError):
            data.clients.create({"name": "Asha", "phone_number": "1", "id": "CLI-X"})
        with pytest.raises(ValidationError):
            data.clients.create({"name": "Asha", "phone_number": "1", "last_order_date": "2025-01-01"})

    def test_blank_optional_fields_are_stored_as_null(self, data):
        client = data.clients.create({"name": "Asha", "phone_number": "1", "email": ""})
        assert client.email is None

    def test_duplicate_phone_is_advisory_only(self, data, asha):
        assert data.clients.phone_exists("9876543210") is True

        duplicate = data.clients.create({"name": "Asha Again", "phone_number": "9876543210"})

        assert duplicate.id != asha.id
        assert len(data.clients.get_all()) == 2


class TestUpdateDelete:
    def test_update_changes_fields_but_not_identity(self, data, asha):
        registered = asha.registration_date

        updated = data.clients.update(asha.id, {"address": "MG Road", "name": "Asha K"})

        assert updated.id == asha.id
        assert updated.name == "Asha K"
        assert updated.address == "MG Road"
        assert updated.registration_date == registered

    def test_update_missing_client(self, data):
        with pytest.raises(NotFoundError):
            data.clients.update("CLI-00000000-0000", {"name": "Nobody"})

    def test_delete_is_hard_and_does_not_cascade(self, data, asha, make_order):
        order = make_order()

        data.clients.delete(asha.id)

        assert data.clients.get_by_id(asha.id) is None
        orphan = data.orders.get_by_id(order.id)
        assert orphan is not None
        assert orphan.client_name == "Asha"

    def test_delete_missing_client(self, data):
        with pytest.raises(NotFoundError):
            data.clients.delete("CLI-00000000-0000")


class TestPhoneExists:
    def test_matches_secondary_phone(self, data):
        data.clients.create({"name": "Ravi", "phone_number": "111", "secondary_phone": "222"})
        assert data.clients.phone_exists("222") is True
        assert data.clients.phone_exists("333") is False

    def test_exclude_id_ignores_own_record(self, data, asha):
        assert data.clients.phone_exists("9876543210", exclude_id=asha.id) is False


class TestSearch:
    def test_matches_name_phone_and_id_case_insensitively(self, data, asha):
        data.clients.create({"name": "Ravi Kumar", "phone_number": "5550001"})

        assert [c.name for c in data.clients.search("ASH")] == ["Asha"]
        assert [c.name for c in data.clients.search("5550")] == ["Ravi Kumar"]
        assert [c.id for c in data.clients.search(asha.id.lower())] == [asha.id]

    def test_wildcards_are_literal(self, data, asha):
        assert data.clients.search("%") == []

    def test_blank_query_returns_everyone(self, data, asha):
        assert len(data.clients.search("  ")) == 1
