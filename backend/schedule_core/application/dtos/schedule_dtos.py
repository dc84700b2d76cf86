"""
Schedule Data Transfer Objects.

Request and response DTOs for the schedule entry and conflict endpoints.
Request DTOs convert into domain inputs; response DTOs are built from
``ScheduledItem`` and ``ScheduleConflict`` read models.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from schedule_core.domain.scheduling.entities.scheduled_item import (
    ScheduleConflict,
    ScheduledItem,
)
from schedule_core.domain.scheduling.services.edit_scope_resolver import EntryChanges
from schedule_core.domain.scheduling.services.scheduling_service import EntryDraft
from schedule_core.domain.scheduling.value_objects.enums import (
    ConflictType,
    EntryKind,
    EntryStatus,
    Frequency,
    WorkItemType,
)
from schedule_core.domain.scheduling.value_objects.identifiers import (
    EntryRef,
    OccurrenceRef,
)
from schedule_core.domain.scheduling.value_objects.recurrence import (
    DailyPattern,
    RecurrencePattern,
    WeeklyPattern,
    build_pattern,
)


class RecurrencePatternRequest(BaseModel):
    """
    Recurrence rule of a series.

    The series is anchored on the entry's start date, so the rule carries no
    start date of its own.
    """

    frequency: Frequency
    interval: int = Field(1, description="Repeat every N periods")
    end_date: date | None = Field(None, description="Last possible series date")
    occurrence_count: int | None = Field(
        None, description="Number of series positions, cancelled ones included"
    )
    exceptions: list[date] = Field(default_factory=list)
    workdays_only: bool = Field(False, description="Daily series only")
    days_of_week: list[int] = Field(
        default_factory=list, description="Weekly series only, 0=Monday"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "frequency": "weekly",
                "interval": 1,
                "occurrence_count": 5,
                "days_of_week": [0, 2],
            }
        }
    )

    def to_domain(self, placeholder_start: date) -> RecurrencePattern:
        return build_pattern(
            self.frequency,
            placeholder_start,
            interval=self.interval,
            end_date=self.end_date,
            occurrence_count=self.occurrence_count,
            exceptions=self.exceptions,
            workdays_only=self.workdays_only,
            days_of_week=self.days_of_week,
            validate=False,
        )


class RecurrencePatternResponse(BaseModel):
    frequency: Frequency
    interval: int
    start_date: date
    end_date: date | None
    occurrence_count: int | None
    exceptions: list[date]
    workdays_only: bool = False
    days_of_week: list[int] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, pattern: RecurrencePattern) -> "RecurrencePatternResponse":
        return cls(
            frequency=pattern.frequency,
            interval=pattern.interval,
            start_date=pattern.start_date,
            end_date=pattern.end_date,
            occurrence_count=pattern.occurrence_count,
            exceptions=sorted(pattern.exceptions),
            workdays_only=isinstance(pattern, DailyPattern) and pattern.workdays_only,
            days_of_week=(
                list(pattern.weekdays) if isinstance(pattern, WeeklyPattern) else []
            ),
        )


class ScheduleEntryCreateRequest(BaseModel):
    """DTO for creating a standalone entry or a recurrence master."""

    title: str = Field(..., max_length=255)
    scheduled_start: datetime = Field(
        ..., description="Naive values are read in the tenant time zone"
    )
    scheduled_end: datetime
    assigned_user_ids: list[str] = Field(default_factory=list)
    status: EntryStatus = EntryStatus.SCHEDULED
    notes: str | None = None
    work_item_type: WorkItemType = WorkItemType.AD_HOC
    work_item_id: str | None = Field(None, max_length=64)
    recurrence_pattern: RecurrencePatternRequest | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Front desk shift",
                "scheduled_start": "2024-01-01T09:00:00Z",
                "scheduled_end": "2024-01-01T10:00:00Z",
                "assigned_user_ids": ["user-1"],
                "work_item_type": "ad_hoc",
                "recurrence_pattern": {
                    "frequency": "weekly",
                    "interval": 1,
                    "occurrence_count": 5,
                },
            }
        }
    )

    def to_draft(self) -> EntryDraft:
        pattern = None
        if self.recurrence_pattern is not None:
            pattern = self.recurrence_pattern.to_domain(self.scheduled_start.date())
        return EntryDraft(
            title=self.title,
            scheduled_start=self.scheduled_start,
            scheduled_end=self.scheduled_end,
            assigned_user_ids=list(self.assigned_user_ids),
            status=self.status,
            notes=self.notes,
            work_item_type=self.work_item_type,
            work_item_id=self.work_item_id,
            recurrence_pattern=pattern,
        )


class ScheduleEntryUpdateRequest(BaseModel):
    """DTO for partial updates; only fields present in the body are applied."""

    title: str | None = Field(None, max_length=255)
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    assigned_user_ids: list[str] | None = None
    status: EntryStatus | None = None
    notes: str | None = None
    work_item_type: WorkItemType | None = None
    work_item_id: str | None = Field(None, max_length=64)
    recurrence_pattern: RecurrencePatternRequest | None = None

    def to_changes(self) -> EntryChanges:
        values = {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "recurrence_pattern"
        }
        pattern = None
        if self.recurrence_pattern is not None:
            placeholder = (
                self.scheduled_start.date() if self.scheduled_start else date.today()
            )
            pattern = self.recurrence_pattern.to_domain(placeholder)
        return EntryChanges(values, pattern)


class EntryRefResponse(BaseModel):
    entry_id: UUID
    occurrence_date: date | None = None

    @classmethod
    def from_ref(cls, ref: EntryRef) -> "EntryRefResponse":
        if isinstance(ref, OccurrenceRef):
            return cls(entry_id=ref.series_id, occurrence_date=ref.anchor_date)
        return cls(entry_id=ref)


class ScheduleConflictResponse(BaseModel):
    conflict_id: UUID | None
    conflict_type: ConflictType
    entry_1: EntryRefResponse
    entry_2: EntryRefResponse
    shared_user_ids: list[str] = Field(default_factory=list)
    overlap_start: datetime | None = None
    overlap_end: datetime | None = None
    resolved: bool = False
    resolution_notes: str | None = None

    @classmethod
    def from_domain(cls, conflict: ScheduleConflict) -> "ScheduleConflictResponse":
        return cls(
            conflict_id=conflict.conflict_id,
            conflict_type=conflict.conflict_type,
            entry_1=EntryRefResponse.from_ref(conflict.entry_1),
            entry_2=EntryRefResponse.from_ref(conflict.entry_2),
            shared_user_ids=list(conflict.shared_user_ids),
            overlap_start=conflict.overlap_start,
            overlap_end=conflict.overlap_end,
            resolved=conflict.resolved,
            resolution_notes=conflict.resolution_notes,
        )


class ScheduleEntryResponse(BaseModel):
    """One scheduled item: a persisted entry or a virtual occurrence."""

    kind: EntryKind
    entry_id: UUID
    series_id: UUID | None = None
    occurrence_date: date | None = None
    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    assigned_user_ids: list[str]
    status: EntryStatus
    notes: str | None = None
    work_item_type: WorkItemType
    work_item_id: str | None = None
    recurrence_pattern: RecurrencePatternResponse | None = None
    conflicts: list[ScheduleConflictResponse] = Field(default_factory=list)

    @classmethod
    def from_item(cls, item: ScheduledItem) -> "ScheduleEntryResponse":
        return cls(
            kind=item.kind,
            entry_id=item.entry_id,
            series_id=item.series_id,
            occurrence_date=item.anchor_date,
            title=item.title,
            scheduled_start=item.scheduled_start,
            scheduled_end=item.scheduled_end,
            assigned_user_ids=list(item.assigned_user_ids),
            status=item.status,
            notes=item.notes,
            work_item_type=item.work_item_type,
            work_item_id=item.work_item_id,
            recurrence_pattern=(
                RecurrencePatternResponse.from_domain(item.recurrence_pattern)
                if item.recurrence_pattern is not None
                else None
            ),
            conflicts=[ScheduleConflictResponse.from_domain(c) for c in item.conflicts],
        )


class ScheduleEntriesResponse(BaseModel):
    data: list[ScheduleEntryResponse]
    count: int


class ConflictResolveRequest(BaseModel):
    resolution_notes: str | None = Field(None, max_length=2000)
