"""
Schedule Entry Entity

A schedule entry is one of three things, told apart by which optional fields
are set:

* a standalone entry (neither ``recurrence_pattern`` nor ``original_entry_id``)
* a recurrence master (``recurrence_pattern`` set)
* a detached exception (``original_entry_id`` and ``anchor_date`` set), which
  replaces exactly one occurrence of its master
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from uuid import UUID

from pydantic import Field

from ...shared.base import Entity
from ...shared.exceptions import InvalidPatternError, ValidationError
from ..value_objects.enums import EntryKind, EntryStatus, WorkItemType
from ..value_objects.identifiers import EntryRef, OccurrenceRef
from ..value_objects.recurrence import RecurrencePattern


class ScheduleEntry(Entity):
    """Persisted schedule entry of a tenant."""

    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    assigned_user_ids: list[str] = Field(default_factory=list)
    status: EntryStatus = EntryStatus.SCHEDULED
    notes: str | None = None
    work_item_type: WorkItemType = WorkItemType.AD_HOC
    work_item_id: str | None = None

    recurrence_pattern: RecurrencePattern | None = None
    original_entry_id: UUID | None = None
    anchor_date: date | None = None
    split_from_entry_id: UUID | None = None

    @property
    def kind(self) -> EntryKind:
        if self.recurrence_pattern is not None:
            return EntryKind.MASTER
        if self.original_entry_id is not None:
            return EntryKind.EXCEPTION
        return EntryKind.STANDALONE

    @property
    def is_master(self) -> bool:
        return self.recurrence_pattern is not None

    @property
    def is_exception(self) -> bool:
        return self.original_entry_id is not None

    @property
    def duration(self) -> timedelta:
        return self.scheduled_end - self.scheduled_start

    @property
    def occurrence_ref(self) -> OccurrenceRef | None:
        """Series slot a detached exception stands in for."""
        if self.original_entry_id is None or self.anchor_date is None:
            return None
        return OccurrenceRef(self.original_entry_id, self.anchor_date)

    @property
    def ref(self) -> EntryRef:
        return self.id

    def check_invariants(self) -> None:
        if not self.title or not self.title.strip():
            raise ValidationError("title", self.title, "title is required", "REQUIRED")
        if self.scheduled_end <= self.scheduled_start:
            raise ValidationError(
                "scheduled_end",
                self.scheduled_end.isoformat(),
                "scheduled_end must be after scheduled_start",
                "END_BEFORE_START",
            )
        if not self.assigned_user_ids:
            raise ValidationError(
                "assigned_user_ids",
                None,
                "at least one assignee is required",
                "REQUIRED",
            )
        if self.recurrence_pattern is not None and self.original_entry_id is not None:
            raise InvalidPatternError(
                "a detached exception cannot carry its own recurrence pattern",
                "recurrence_pattern",
            )
        if self.original_entry_id is not None and self.anchor_date is None:
            raise ValidationError(
                "anchor_date",
                None,
                "a detached exception must name the occurrence it replaces",
                "REQUIRED",
            )
        if self.work_item_type is WorkItemType.AD_HOC and self.work_item_id:
            raise ValidationError(
                "work_item_id",
                self.work_item_id,
                "ad hoc entries are not linked to a work item",
                "UNEXPECTED_WORK_ITEM",
            )
