"""
Schedule Entry Repository Interface

Defines the contract for tenant-scoped schedule entry persistence. An
implementation is bound to exactly one tenant; none of its methods can see or
touch another tenant's rows.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from uuid import UUID

from ..entities.schedule_entry import ScheduleEntry


class ScheduleEntryRepository(ABC):
    """Abstract repository for standalone entries, masters and exceptions."""

    @abstractmethod
    def get(self, entry_id: UUID) -> ScheduleEntry | None:
        pass

    @abstractmethod
    def get_exception(self, series_id: UUID, anchor_date: date) -> ScheduleEntry | None:
        """Return the detached exception standing in for one occurrence, if any."""
        pass

    @abstractmethod
    def list_in_window(
        self, window_start: datetime, window_end: datetime
    ) -> list[ScheduleEntry]:
        """
        Return every row a query over ``[window_start, window_end)`` needs.

        Standalone entries and detached exceptions are returned when their own
        time range overlaps the window. Masters are returned whenever their
        series could produce an occurrence in it; callers expand them.
        """
        pass

    @abstractmethod
    def list_exceptions(self, series_id: UUID) -> list[ScheduleEntry]:
        pass

    @abstractmethod
    def list_split_children(self, series_id: UUID) -> list[ScheduleEntry]:
        """Masters created by splitting ``series_id`` with a ``future`` edit."""
        pass

    @abstractmethod
    def get_earliest(self) -> ScheduleEntry | None:
        pass

    @abstractmethod
    def add(self, entry: ScheduleEntry) -> ScheduleEntry:
        pass

    @abstractmethod
    def update(self, entry: ScheduleEntry) -> ScheduleEntry:
        pass

    @abstractmethod
    def delete(self, entry_id: UUID) -> None:
        pass
