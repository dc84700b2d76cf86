"""
Conflict Repository Interface

Persisted conflict records are advisory bookkeeping. They are keyed by the
canonical pair of entry references plus the conflict type.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from uuid import UUID

from ..entities.scheduled_item import ScheduleConflict
from ..value_objects.identifiers import EntryRef


class ConflictRepository(ABC):
    """Abstract repository for schedule conflict records of one tenant."""

    @abstractmethod
    def get(self, conflict_id: UUID) -> ScheduleConflict | None:
        pass

    @abstractmethod
    def list_involving(self, refs: Iterable[EntryRef]) -> list[ScheduleConflict]:
        """Return records where either side is one of ``refs``."""
        pass

    @abstractmethod
    def list_for_entries(self, entry_ids: Iterable[UUID]) -> list[ScheduleConflict]:
        """Return records where either side resolves through one of ``entry_ids``."""
        pass

    @abstractmethod
    def add(self, conflict: ScheduleConflict) -> ScheduleConflict:
        """Persist a new record, assigning its ``conflict_id``."""
        pass

    @abstractmethod
    def update(self, conflict: ScheduleConflict) -> ScheduleConflict:
        pass

    @abstractmethod
    def delete(self, conflict_id: UUID) -> None:
        pass

    @abstractmethod
    def delete_for_entry(self, entry_id: UUID) -> int:
        """Delete every record whose either side resolves through ``entry_id``."""
        pass
