# Overview: Service-layer operations for clients; encapsulates business logic and database work.

"""
Client Service

RULES:
- id and registration_date are assigned on create and never change.
- last_order_date is owned by OrderService; callers cannot write it here.
- Duplicate phone numbers are allowed. phone_exists() is an advisory check
  for the UI to warn on; the store does not enforce uniqueness.
- delete() is a hard delete with no cascade. Orders and measurements that
  reference the client stay in place.
"""

from __future__ import annotations

from sqlalchemy import func, or_

from ..errors import NotFoundError
from ..models import Client
from ..storage import StorageContext
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload
from .identifier_service import next_client_id


CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone_number", "secondary_phone", "address", "email", "notes"},
    required_on_create={"name", "phone_number"},
)


class ClientService:
    def __init__(self, storage: StorageContext):
        self.storage = storage

    def create(self, fields: dict) -> Client:
        patch = validate_payload(model=Client, payload=fields, policy=CLIENT_POLICY, partial=False)

        with self.storage.atomic() as session:
            now = utcnow()
            client = Client(
                id=next_client_id(session, now.date()),
                registration_date=now,
                created_at=now,
                updated_at=now,
                **patch,
            )
            session.add(client)

        self.storage.logger.info("Created client %s", client.id)
        return client

    def update(self, client_id: str, fields: dict) -> Client:
        patch = validate_payload(model=Client, payload=fields, policy=CLIENT_POLICY, partial=True)

        with self.storage.atomic() as session:
            client = session.get(Client, client_id)
            if client is None:
                raise NotFoundError("Client", client_id)
            for key, value in patch.items():
                setattr(client, key, value)
            client.updated_at = utcnow()

        return client

    def delete(self, client_id: str) -> None:
        with self.storage.atomic() as session:
            client = session.get(Client, client_id)
            if client is None:
                raise NotFoundError("Client", client_id)
            session.delete(client)

        self.storage.logger.info("Deleted client %s", client_id)

    def get_by_id(self, client_id: str) -> Client | None:
        with self.storage.reading() as session:
            return session.get(Client, client_id)

    def get_all(self) -> list[Client]:
        with self.storage.reading() as session:
            return session.query(Client).order_by(Client.name, Client.id).all()

    def phone_exists(self, phone_number: str, exclude_id: str | None = None) -> bool:
        """
        Check whether any client already uses phone_number, as primary or
        secondary phone. Exact, case-sensitive match.
        """
        if not phone_number:
            return False
        with self.storage.reading() as session:
            q = session.query(Client.id).filter(
                or_(Client.phone_number == phone_number, Client.secondary_phone == phone_number)
            )
            if exclude_id:
                q = q.filter(Client.id != exclude_id)
            return q.first() is not None

    def search(self, query: str) -> list[Client]:
        """Case-insensitive substring match on name, phone number and id."""
        needle = (query or "").strip().lower()
        if not needle:
            return self.get_all()

        with self.storage.reading() as session:
            return (
                session.query(Client)
                .filter(
                    or_(
                        func.lower(Client.name).contains(needle, autoescape=True),
                        func.lower(Client.phone_number).contains(needle, autoescape=True),
                        func.lower(Client.id).contains(needle, autoescape=True),
                    )
                )
                .order_by(Client.name, Client.id)
                .all()
            )
