"""Base repository with generic CRUD operations.

Concrete repositories inherit from this and can add domain-specific queries.
Store errors surface as ``PersistenceError`` after the session is rolled back,
so a failed write never leaves half a transaction behind.
"""

import logging
from contextlib import contextmanager
from typing import TypeVar, Generic, Type

from sqlalchemy.exc import SQLAlchemyError

from app.domain.exceptions import PersistenceError
from app.extensions import db

T = TypeVar("T", bound=db.Model)

logger = logging.getLogger(__name__)


@contextmanager
def persistence_guard(operation: str):
    """Roll back and raise ``PersistenceError`` on any SQLAlchemy failure."""
    try:
        yield
    except SQLAlchemyError as err:
        db.session.rollback()
        logger.error("Database error during %s: %s", operation, err)
        raise PersistenceError(f"Failed to {operation}") from err


class BaseRepository(Generic[T]):
    """Generic repository providing common database operations.

    Args:
        model_class: The SQLAlchemy model class to operate on.
    """

    def __init__(self, model_class: Type[T]):
        self._model = model_class

    def create(self, **kwargs) -> T:
        """Insert a new record and flush to obtain its id."""
        instance = self._model(**kwargs)
        db.session.add(instance)
        db.session.flush()
        return instance

    def get_by_id(self, record_id: int) -> T | None:
        """Fetch a single record by primary key."""
        return db.session.get(self._model, record_id)

    def get_all(self) -> list[T]:
        """Return every record of this model."""
        return self._model.query.all()

    def filter_by(self, **kwargs) -> list[T]:
        """Return records matching the given column filters."""
        return self._model.query.filter_by(**kwargs).all()

    def update(self, instance: T, **kwargs) -> T:
        """Update an existing instance with keyword arguments."""
        for key, value in kwargs.items():
            setattr(instance, key, value)
        db.session.flush()
        return instance

    @staticmethod
    def refresh(instance: T) -> T:
        """Reload an instance after a bulk UPDATE bypassed the identity map."""
        db.session.refresh(instance)
        return instance

    @staticmethod
    def commit() -> None:
        """Commit the current transaction."""
        with persistence_guard("commit transaction"):
            db.session.commit()

    @staticmethod
    def rollback() -> None:
        """Discard everything pending in the current transaction."""
        db.session.rollback()
