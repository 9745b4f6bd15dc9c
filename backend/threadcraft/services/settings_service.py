# Overview: Service-layer operations for shop settings; flat key/value store.

from __future__ import annotations

from typing import Any

from ..errors import ValidationError
from ..models import Setting
from ..storage import StorageContext
from ..time_utils import utcnow


# Keys the settings screen writes
KEY_BUSINESS_NAME = "businessName"
KEY_BUSINESS_PHONE = "businessPhone"
KEY_BUSINESS_ADDRESS = "businessAddress"
KEY_BUSINESS_EMAIL = "businessEmail"
KEY_DEFAULT_UNIT = "defaultUnit"

MAX_KEY_LENGTH = 128


class SettingsError(ValidationError):
    pass


class SettingsService:
    """Flat key -> value settings. No nesting, no history, last write wins."""

    def __init__(self, storage: StorageContext):
        self.storage = storage

    def get_all(self) -> dict[str, Any]:
        with self.storage.reading() as session:
            return {s.key: s.value for s in session.query(Setting).order_by(Setting.key).all()}

    def get(self, key: str, default: Any = None) -> Any:
        with self.storage.reading() as session:
            setting = session.get(Setting, key)
            return setting.value if setting is not None else default

    def set(self, key: str, value: Any) -> Setting:
        if not isinstance(key, str) or not key.strip():
            raise SettingsError("Setting key must be a non-empty string")
        if len(key) > MAX_KEY_LENGTH:
            raise SettingsError(f"Setting key exceeds max length {MAX_KEY_LENGTH}")

        with self.storage.atomic() as session:
            setting = session.get(Setting, key)
            if setting is None:
                setting = Setting(key=key)
                session.add(setting)
            setting.value = value
            setting.updated_at = utcnow()

        return setting

    def delete(self, key: str) -> None:
        with self.storage.atomic() as session:
            setting = session.get(Setting, key)
            if setting is not None:
                session.delete(setting)
