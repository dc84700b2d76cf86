"""
Scheduled items and conflicts as returned to callers.

These are read-side projections: a query merges standalone entries, detached
exceptions and virtual occurrences of masters into one ordered list of
``ScheduledItem`` objects, each annotated with the conflicts it takes part in.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from uuid import UUID

from ..value_objects.enums import ConflictType, EntryKind, EntryStatus, WorkItemType
from ..value_objects.identifiers import EntryRef, OccurrenceRef, ref_sort_key
from ..value_objects.recurrence import RecurrencePattern
from .schedule_entry import ScheduleEntry


@dataclass(frozen=True)
class ScheduleConflict:
    """
    Advisory double booking between two entries.

    The pair is kept in canonical order so the same overlap is always reported
    with the same key, whichever side triggered the check.
    """

    entry_1: EntryRef
    entry_2: EntryRef
    conflict_type: ConflictType = ConflictType.DOUBLE_BOOKING
    shared_user_ids: tuple[str, ...] = ()
    overlap_start: datetime | None = None
    overlap_end: datetime | None = None
    conflict_id: UUID | None = None
    resolved: bool = False
    resolution_notes: str | None = None

    @classmethod
    def between(
        cls,
        first: EntryRef,
        second: EntryRef,
        **kwargs,
    ) -> ScheduleConflict:
        if ref_sort_key(second) < ref_sort_key(first):
            first, second = second, first
        return cls(entry_1=first, entry_2=second, **kwargs)

    @property
    def key(self) -> tuple[EntryRef, EntryRef, ConflictType]:
        return (self.entry_1, self.entry_2, self.conflict_type)

    def involves(self, ref: EntryRef) -> bool:
        return ref in (self.entry_1, self.entry_2)

    def other(self, ref: EntryRef) -> EntryRef:
        return self.entry_2 if self.entry_1 == ref else self.entry_1

    def with_record(
        self,
        conflict_id: UUID,
        resolved: bool,
        resolution_notes: str | None,
    ) -> ScheduleConflict:
        return replace(
            self,
            conflict_id=conflict_id,
            resolved=resolved,
            resolution_notes=resolution_notes,
        )


@dataclass
class ScheduledItem:
    """One row of a schedule as seen by a caller."""

    kind: EntryKind
    entry_id: UUID
    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    assigned_user_ids: tuple[str, ...]
    status: EntryStatus = EntryStatus.SCHEDULED
    notes: str | None = None
    work_item_type: WorkItemType = WorkItemType.AD_HOC
    work_item_id: str | None = None
    series_id: UUID | None = None
    anchor_date: date | None = None
    recurrence_pattern: RecurrencePattern | None = None
    conflicts: list[ScheduleConflict] = field(default_factory=list)

    @property
    def ref(self) -> EntryRef:
        if self.kind is EntryKind.OCCURRENCE:
            assert self.series_id is not None and self.anchor_date is not None
            return OccurrenceRef(self.series_id, self.anchor_date)
        return self.entry_id

    @property
    def sort_key(self) -> tuple[datetime, tuple[str, date]]:
        return (self.scheduled_start, ref_sort_key(self.ref))

    @classmethod
    def from_entry(cls, entry: ScheduleEntry) -> ScheduledItem:
        return cls(
            kind=entry.kind,
            entry_id=entry.id,
            title=entry.title,
            scheduled_start=entry.scheduled_start,
            scheduled_end=entry.scheduled_end,
            assigned_user_ids=tuple(entry.assigned_user_ids),
            status=entry.status,
            notes=entry.notes,
            work_item_type=entry.work_item_type,
            work_item_id=entry.work_item_id,
            series_id=entry.original_entry_id,
            anchor_date=entry.anchor_date,
            recurrence_pattern=entry.recurrence_pattern,
        )

    @classmethod
    def virtual(
        cls,
        master: ScheduleEntry,
        anchor_date: date,
        scheduled_start: datetime,
        scheduled_end: datetime,
    ) -> ScheduledItem:
        """Projection of one occurrence of ``master`` that has no row of its own."""
        return cls(
            kind=EntryKind.OCCURRENCE,
            entry_id=master.id,
            title=master.title,
            scheduled_start=scheduled_start,
            scheduled_end=scheduled_end,
            assigned_user_ids=tuple(master.assigned_user_ids),
            status=master.status,
            notes=master.notes,
            work_item_type=master.work_item_type,
            work_item_id=master.work_item_id,
            series_id=master.id,
            anchor_date=anchor_date,
        )
