"""
Base repository implementation shared by the SQL repositories.

Repositories are bound to a session and a tenant. Every statement they build
starts from ``_select``, which already filters on the tenant column.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, select
from sqlmodel.sql.expression import SelectOfScalar

from schedule_core.core.observability import get_logger
from schedule_core.domain.shared.exceptions import DomainError, ErrorType

RecordType = TypeVar("RecordType", bound=SQLModel)

logger = get_logger(__name__)


class DatabaseError(DomainError):
    """Raised when a database operation fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorType.REPOSITORY)


class EntityAlreadyExistsError(DatabaseError):
    """Raised when attempting to create a row that already exists."""


class BaseRepository(Generic[RecordType]):
    """
    Tenant-scoped repository over one SQLModel record type.

    Subclasses set ``record_class``; the record must have a ``tenant_id``
    column.
    """

    record_class: type[RecordType]

    def __init__(self, session: Session, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id

    @contextmanager
    def _db_errors(self, operation: str) -> Iterator[None]:
        """Translate SQLAlchemy failures into ``DatabaseError``."""
        try:
            yield
        except IntegrityError as e:
            logger.warning("Integrity error", operation=operation, error=str(e))
            raise EntityAlreadyExistsError(
                f"Integrity error during {operation}: {str(e)}"
            ) from e
        except SQLAlchemyError as e:
            logger.error("Database error", operation=operation, error=str(e))
            raise DatabaseError(f"Database error during {operation}: {str(e)}") from e

    def _select(self) -> SelectOfScalar[RecordType]:
        return select(self.record_class).where(
            self.record_class.tenant_id == self.tenant_id
        )

    def _get_record(self, *key) -> RecordType | None:
        return self.session.get(self.record_class, (self.tenant_id, *key))

    def _delete_records(self, records) -> int:
        count = 0
        for record in records:
            self.session.delete(record)
            count += 1
        return count
