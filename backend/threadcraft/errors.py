# Overview: Domain error kinds surfaced by the data layer.

"""
Error kinds raised by every service.

- NotFoundError:   a referenced client, order or measurement does not exist
- ValidationError: caller-supplied data violates a field constraint
- StorageError:    the database could not complete a read or write

Nothing here is retried; the caller decides how to present the failure.
"""


class DataLayerError(Exception):
    """Base class for all data layer errors."""


class NotFoundError(DataLayerError):
    """Raised when an operation references a record id that does not exist."""

    def __init__(self, entity: str, record_id):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} {record_id} not found")


class ValidationError(DataLayerError, ValueError):
    """Caller-supplied data violates a field constraint."""


class StorageError(DataLayerError):
    """The underlying transactional store failed. Surfaced as-is."""
