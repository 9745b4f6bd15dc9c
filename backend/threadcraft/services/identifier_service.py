# Overview: Service-layer operations for identifiers; allocates human-readable daily ids.

"""
Identifier Service - daily, human-readable record ids

FORMAT: <PREFIX>-<YYYYMMDD>-<NNNN>, e.g. ORD-20250110-0007
- PREFIX: CLI for clients, ORD for orders
- YYYYMMDD: creation date
- NNNN: 4-digit, zero-padded, restarts every day

UNIQUENESS RULES:
- Allocation happens inside the transaction that inserts the record.
- The next number is max(counter, highest id already issued that day + 1),
  so records brought in by an import never collide with new ones.
- If the counter cannot be advanced the caller's transaction fails; a
  duplicate id is never handed out.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import StorageError
from ..models import Client, IdentifierSequence, Order
from ..storage import lock_for_update
from ..time_utils import today, utcnow


CLIENT_PREFIX = "CLI"
ORDER_PREFIX = "ORD"

SEQUENCE_PAD = 4
MAX_DAILY_SEQUENCE = 10 ** SEQUENCE_PAD - 1


def format_scope(prefix: str, day: date) -> str:
    return f"{prefix}-{day:%Y%m%d}"


def parse_sequence(identifier: str, scope: str) -> int | None:
    """Return the numeric suffix of an id issued under scope, or None."""
    if not identifier or not identifier.startswith(scope + "-"):
        return None
    suffix = identifier[len(scope) + 1:]
    if not suffix.isdigit():
        return None
    return int(suffix)


def _highest_issued(session: Session, model, scope: str) -> int:
    # Zero-padded suffixes sort lexically, so MAX() finds the highest one
    highest_id = (
        session.query(func.max(model.id))
        .filter(model.id.like(f"{scope}-%"))
        .scalar()
    )
    return parse_sequence(highest_id, scope) or 0


def next_identifier(session: Session, *, prefix: str, model, day: date | None = None) -> str:
    """
    Allocate the next id for prefix/day without committing.

    The counter row is locked (where the database supports it) and flushed
    in the caller's transaction; the caller commits it together with the
    record that uses the id.

    Raises:
        StorageError: the day is exhausted or the counter could not be advanced
    """
    scope = format_scope(prefix, day or today())

    seq = lock_for_update(
        session.query(IdentifierSequence).filter_by(scope=scope)
    ).first()
    if seq is None:
        seq = IdentifierSequence(scope=scope, next_number=1)
        session.add(seq)

    number = max(seq.next_number or 1, _highest_issued(session, model, scope) + 1)
    if number > MAX_DAILY_SEQUENCE:
        raise StorageError(f"Identifier sequence {scope} exhausted")

    seq.next_number = number + 1
    seq.updated_at = utcnow()
    try:
        session.flush()
    except IntegrityError as exc:
        raise StorageError(f"Could not advance identifier sequence {scope}") from exc

    return f"{scope}-{number:0{SEQUENCE_PAD}d}"


def next_client_id(session: Session, day: date | None = None) -> str:
    return next_identifier(session, prefix=CLIENT_PREFIX, model=Client, day=day)


def next_order_id(session: Session, day: date | None = None) -> str:
    return next_identifier(session, prefix=ORDER_PREFIX, model=Order, day=day)
