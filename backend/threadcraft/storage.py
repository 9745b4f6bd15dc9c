# Overview: Storage context shared by the services; owns the session and transaction boundary.

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field

from flask import Flask
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import DataLayerError, StorageError
from .extensions import db


@dataclass
class StorageContext:
    """
    Explicit handle on the database passed to every service.

    WHY: Services never reach for a process-wide connection. Tests build one
    app (and one in-memory database) per case and hand its context to the
    services they exercise.
    """
    session: Session
    logger: logging.Logger
    _depth: int = field(default=0, init=False, repr=False)

    @classmethod
    def from_app(cls, app: Flask) -> "StorageContext":
        """Build a context bound to the app's Flask-SQLAlchemy session."""
        return cls(session=db.session, logger=app.logger)

    @contextmanager
    def atomic(self):
        """
        Run a unit of work as one transaction.

        Commits when the block exits cleanly. Any failure rolls the whole
        unit back; SQLAlchemy errors are surfaced as StorageError.
        """
        if self._depth:
            # Nested unit: the outermost block owns commit and rollback
            self._depth += 1
            try:
                yield self.session
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self.session
            self.session.commit()
        except DataLayerError:
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            self.logger.exception("Storage transaction failed")
            raise StorageError(str(exc)) from exc
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._depth = 0

    @contextmanager
    def reading(self):
        """Read-only block; translates SQLAlchemy errors without committing."""
        try:
            yield self.session
        except SQLAlchemyError as exc:
            self.session.rollback()
            self.logger.exception("Storage read failed")
            raise StorageError(str(exc)) from exc


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def init_storage(app: Flask) -> None:
    """Open the database and create any missing tables."""
    with app.app_context():
        from . import models  # noqa: F401
        db.create_all()
        app.logger.info("Storage initialized at %s", app.config["SQLALCHEMY_DATABASE_URI"])
