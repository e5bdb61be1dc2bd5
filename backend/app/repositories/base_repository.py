# backend/app/repositories/base_repository.py
"""
Base Repository for the coaching platform.

Shared data access for sessions, bookings, subscriptions and users.
Repositories flush but never commit; the owning service decides when a
unit of work ends (see BaseService.transaction).

Every SQLAlchemyError is re-raised as RepositoryException with the
original error chained, so services can still tell an IntegrityError
(e.g. the active-booking unique index) from other failures.
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, literal, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Generic repository keyed by ULID string primary keys.

    Attributes:
        db: SQLAlchemy session owned by the calling service
        model: Mapped model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def _name(self) -> str:
        return self.model.__name__

    def get_by_id(self, id: str) -> Optional[T]:
        """Load one row by id, or None."""
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading {self._name} {id}: {str(e)}")
            raise RepositoryException(f"Failed to load {self._name}: {str(e)}") from e

    def create(self, **values: Any) -> T:
        """
        Add a new row and flush so its id and defaults are populated.

        Raises:
            RepositoryException: chained to IntegrityError on constraint
                violations, so callers can map them to domain errors
        """
        entity = self.model(**values)
        try:
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError as e:
            self.logger.warning(f"Constraint violated creating {self._name}: {str(e.orig)}")
            self.db.rollback()
            raise RepositoryException(f"Integrity constraint violated: {str(e.orig)}") from e
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self._name}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to create {self._name}: {str(e)}") from e

    def refresh(self, instance: T) -> None:
        """Reload column values, picking up server defaults and bulk updates."""
        self.db.refresh(instance)

    def delete_instance(self, entity: T) -> None:
        """Delete a loaded row and flush."""
        try:
            self.db.delete(entity)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting {self._name}: {str(e)}")
            raise RepositoryException(f"Failed to delete {self._name}: {str(e)}") from e

    def find_one_by(self, **criteria: Any) -> Optional[T]:
        """First row whose columns equal ``criteria``, or None."""
        try:
            return self.db.query(self.model).filter_by(**criteria).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding {self._name} by {sorted(criteria)}: {str(e)}")
            raise RepositoryException(f"Failed to find {self._name}: {str(e)}") from e

    # Helpers for subclasses

    def _execute_query(self, query: Query) -> List:
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"{self._name} query failed: {str(e)}")
            raise RepositoryException(f"Query failed: {str(e)}") from e

    def _execute_scalar(self, query: Query) -> Any:
        try:
            return query.scalar()
        except SQLAlchemyError as e:
            self.logger.error(f"{self._name} scalar query failed: {str(e)}")
            raise RepositoryException(f"Scalar query failed: {str(e)}") from e

    def _execute_conditional(self, stmt: Any) -> bool:
        """
        Run a guarded INSERT ... SELECT / UPDATE / DELETE and flush.

        Returns True when exactly one row matched the guard.

        Raises:
            RepositoryException: chained to IntegrityError on constraint violations
        """
        try:
            result = self.db.execute(stmt)
            self.db.flush()
            return bool(result.rowcount == 1)
        except IntegrityError as e:
            self.logger.warning(f"Constraint violated writing {self._name}: {str(e.orig)}")
            self.db.rollback()
            raise RepositoryException(f"Integrity constraint violated: {str(e.orig)}") from e
        except SQLAlchemyError as e:
            self.logger.error(f"Conditional write on {self._name} failed: {str(e)}")
            raise RepositoryException(f"Conditional write failed: {str(e)}") from e

    def _insert_values_select(self, values: Dict[str, Any]) -> Select:
        """SELECT of typed bind parameters, usable as the source of an INSERT ... SELECT."""
        table = self.model.__table__  # type: ignore[attr-defined]
        return select(*[literal(value, type_=table.c[name].type) for name, value in values.items()])
