"""
Unit of Work implementation for managing transactions across repositories.

One unit of work equals one database transaction for one tenant. Leaving the
context normally commits; an exception rolls everything back. Storage failures
surface as ``TransactionFailedError`` so callers see a single error type for
"nothing was applied"; domain errors propagate unchanged after the rollback.
"""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from schedule_core.core.observability import get_logger
from schedule_core.domain.scheduling.repositories.unit_of_work import UnitOfWork
from schedule_core.domain.shared.exceptions import TransactionFailedError

from .repositories.base import DatabaseError
from .repositories.conflict_repository import SqlConflictRepository
from .repositories.schedule_entry_repository import SqlScheduleEntryRepository

logger = get_logger(__name__)

SessionFactory = Callable[[], Session]


class SqlModelUnitOfWork(UnitOfWork):
    """
    SQLModel-based implementation of the Unit of Work pattern.

    Manages one session and gives access to the tenant-scoped repositories
    within a single transactional boundary.
    """

    def __init__(
        self,
        tenant_id: str,
        session_factory: SessionFactory,
        operation: str = "scheduling",
    ):
        self.tenant_id = tenant_id
        self.operation = operation
        self._session_factory = session_factory
        self._session: Session | None = None

    @property
    def session(self) -> Session:
        if self._session is None:
            raise DatabaseError("No active session")
        return self._session

    def __enter__(self) -> SqlModelUnitOfWork:
        if self._session is not None:
            raise RuntimeError("UnitOfWork is already active")
        self._session = self._session_factory()
        self.entries = SqlScheduleEntryRepository(self._session, self.tenant_id)
        self.conflicts = SqlConflictRepository(self._session, self.tenant_id)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        try:
            if exc_val is not None:
                self.rollback()
                if isinstance(exc_val, SQLAlchemyError | DatabaseError):
                    logger.error(
                        "Transaction rolled back",
                        operation=self.operation,
                        error=str(exc_val),
                    )
                    raise TransactionFailedError(self.operation, str(exc_val)) from exc_val
                return
            self.commit()
        finally:
            if self._session is not None:
                self._session.close()
                self._session = None

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.rollback()
            logger.error("Commit failed", operation=self.operation, error=str(e))
            raise TransactionFailedError(self.operation, str(e)) from e

    def rollback(self) -> None:
        try:
            self.session.rollback()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to rollback transaction: {str(e)}") from e


def unit_of_work_factory(
    session_factory: SessionFactory,
) -> Callable[[str], SqlModelUnitOfWork]:
    """Bind a session factory, leaving the tenant to be chosen per call."""

    def factory(tenant_id: str) -> SqlModelUnitOfWork:
        return SqlModelUnitOfWork(tenant_id, session_factory)

    return factory
