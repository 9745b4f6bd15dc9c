import pytest

from threadcraft.errors import ValidationError


class TestRates:
    def test_unset_rate_is_none(self, data):
        assert data.rates.get("shirt") is None
        assert data.rates.get_all() == {}

    def test_last_write_wins(self, data):
        data.rates.set("shirt", 60000)
        data.rates.set("blouse", 50000)
        data.rates.set("shirt", 65000)

        assert data.rates.get("shirt") == 65000
        assert data.rates.get_all() == {"blouse": 50000, "shirt": 65000}

    def test_zero_is_allowed(self, data):
        data.rates.set("kids_wear", 0)
        assert data.rates.get("kids_wear") == 0

    @pytest.mark.parametrize("amount", [-1, "abc", 12.5, None])
    def test_invalid_amounts(self, data, amount):
        with pytest.raises(ValidationError):
            data.rates.set("shirt", amount)

    def test_garment_type_required(self, data):
        with pytest.raises(ValidationError):
            data.rates.set("  ", 100)


class TestSettings:
    def test_get_with_default(self, data):
        assert data.settings.get("defaultUnit") is None
        assert data.settings.get("defaultUnit", "inches") == "inches"

    def test_values_keep_their_json_type(self, data):
        data.settings.set("businessName", "ThreadCraft")
        data.settings.set("reminderDays", 3)
        data.settings.set("showBalance", False)

        assert data.settings.get_all() == {
            "businessName": "ThreadCraft",
            "reminderDays": 3,
            "showBalance": False,
        }

    def test_overwrite_and_delete(self, data):
        data.settings.set("businessPhone", "111")
        data.settings.set("businessPhone", "222")
        assert data.settings.get("businessPhone") == "222"

        data.settings.delete("businessPhone")
        data.settings.delete("businessPhone")
        assert data.settings.get("businessPhone") is None

    @pytest.mark.parametrize("key", ["", "   ", None, "k" * 129])
    def test_invalid_keys(self, data, key):
        with pytest.raises(ValidationError):
            data.settings.set(key, "x")
