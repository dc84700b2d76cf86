"""
Unit of Work Interface

A unit of work groups the repositories of one tenant behind a single
transaction. Leaving the context without an exception commits; any exception
rolls everything back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType

from .conflict_repository import ConflictRepository
from .schedule_entry_repository import ScheduleEntryRepository


class UnitOfWork(ABC):
    """Transactional boundary over the scheduling repositories."""

    tenant_id: str
    entries: ScheduleEntryRepository
    conflicts: ConflictRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork:
        pass

    @abstractmethod
    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass
