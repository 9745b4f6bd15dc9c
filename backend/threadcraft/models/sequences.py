from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow


class IdentifierSequence(db.Model):
    """
    Atomic daily identifier sequences.

    WHY: Prevent duplicate ids when generating client and order numbers.
    scope is "<PREFIX>-<YYYYMMDD>", so numbering restarts every day.
    """
    __tablename__ = "identifier_sequences"
    __table_args__ = (
        db.UniqueConstraint("scope", name="uq_identifier_sequences_scope"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    scope = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
