"""
Mapper for converting between schedule domain objects and SQL records.

A ``ScheduleEntry`` is spread over three tables (entry row, optional pattern
row, ordered assignee rows); conflicts map one-to-one onto conflict rows with
each entry reference flattened into an id and an optional anchor date.
"""

from datetime import UTC, date, datetime
from uuid import UUID

from schedule_core.domain.scheduling.entities.schedule_entry import ScheduleEntry
from schedule_core.domain.scheduling.entities.scheduled_item import ScheduleConflict
from schedule_core.domain.scheduling.value_objects.enums import (
    ConflictType,
    EntryStatus,
    Frequency,
    WorkItemType,
)
from schedule_core.domain.scheduling.value_objects.identifiers import EntryRef, OccurrenceRef
from schedule_core.domain.scheduling.value_objects.recurrence import (
    DailyPattern,
    MonthlyPattern,
    RecurrencePattern,
    WeeklyPattern,
    YearlyPattern,
    recurrence_pattern_adapter,
)
from schedule_core.infrastructure.database.models import (
    RecurrencePatternRecord,
    ScheduleConflictRecord,
    ScheduleEntryAssigneeRecord,
    ScheduleEntryRecord,
)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything is stored in UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ScheduleEntryMapper:
    """Translation between ``ScheduleEntry`` and its SQL records."""

    @staticmethod
    def domain_to_sql(
        tenant_id: str, entry: ScheduleEntry
    ) -> tuple[
        ScheduleEntryRecord,
        RecurrencePatternRecord | None,
        list[ScheduleEntryAssigneeRecord],
    ]:
        record = ScheduleEntryRecord(tenant_id=tenant_id, id=entry.id)
        ScheduleEntryMapper.copy_fields(entry, record)
        record.created_at = entry.created_at

        pattern = None
        if entry.recurrence_pattern is not None:
            pattern = RecurrencePatternRecord(tenant_id=tenant_id, entry_id=entry.id)
            ScheduleEntryMapper.copy_pattern(entry.recurrence_pattern, pattern)

        return record, pattern, ScheduleEntryMapper.assignee_records(tenant_id, entry)

    @staticmethod
    def copy_fields(entry: ScheduleEntry, record: ScheduleEntryRecord) -> None:
        """Overwrite the mutable columns of ``record`` from ``entry``."""
        record.title = entry.title
        record.scheduled_start = entry.scheduled_start
        record.scheduled_end = entry.scheduled_end
        record.status = entry.status.value
        record.notes = entry.notes
        record.work_item_type = entry.work_item_type.value
        record.work_item_id = entry.work_item_id
        record.original_entry_id = entry.original_entry_id
        record.anchor_date = entry.anchor_date
        record.split_from_entry_id = entry.split_from_entry_id
        record.updated_at = entry.updated_at

    @staticmethod
    def copy_pattern(
        pattern: RecurrencePattern, record: RecurrencePatternRecord
    ) -> None:
        record.frequency = pattern.frequency.value
        record.interval = pattern.interval
        record.start_date = pattern.start_date
        record.end_date = pattern.end_date
        record.occurrence_count = pattern.occurrence_count
        record.workdays_only = isinstance(pattern, DailyPattern) and pattern.workdays_only
        record.days_of_week = (
            sorted(pattern.days_of_week) if isinstance(pattern, WeeklyPattern) else []
        )
        record.exceptions = sorted(d.isoformat() for d in pattern.exceptions)
        record.anchor_day = (
            pattern.anchor_day
            if isinstance(pattern, MonthlyPattern | YearlyPattern)
            else None
        )

    @staticmethod
    def assignee_records(
        tenant_id: str, entry: ScheduleEntry
    ) -> list[ScheduleEntryAssigneeRecord]:
        return [
            ScheduleEntryAssigneeRecord(
                tenant_id=tenant_id, entry_id=entry.id, user_id=user_id, position=index
            )
            for index, user_id in enumerate(entry.assigned_user_ids)
        ]

    @staticmethod
    def pattern_to_domain(record: RecurrencePatternRecord) -> RecurrencePattern:
        data = {
            "frequency": Frequency(record.frequency),
            "interval": record.interval,
            "start_date": record.start_date,
            "end_date": record.end_date,
            "occurrence_count": record.occurrence_count,
            "exceptions": [date.fromisoformat(d) for d in record.exceptions or []],
        }
        if data["frequency"] is Frequency.DAILY:
            data["workdays_only"] = record.workdays_only
        elif data["frequency"] is Frequency.WEEKLY:
            data["days_of_week"] = record.days_of_week or []
        else:
            data["anchor_day"] = record.anchor_day
        return recurrence_pattern_adapter.validate_python(data)

    @staticmethod
    def sql_to_domain(
        record: ScheduleEntryRecord,
        pattern: RecurrencePatternRecord | None,
        assignees: list[ScheduleEntryAssigneeRecord],
    ) -> ScheduleEntry:
        return ScheduleEntry(
            id=record.id,
            title=record.title,
            scheduled_start=as_utc(record.scheduled_start),
            scheduled_end=as_utc(record.scheduled_end),
            assigned_user_ids=[
                a.user_id for a in sorted(assignees, key=lambda a: a.position)
            ],
            status=EntryStatus(record.status),
            notes=record.notes,
            work_item_type=WorkItemType(record.work_item_type),
            work_item_id=record.work_item_id,
            recurrence_pattern=(
                ScheduleEntryMapper.pattern_to_domain(pattern) if pattern else None
            ),
            original_entry_id=record.original_entry_id,
            anchor_date=record.anchor_date,
            split_from_entry_id=record.split_from_entry_id,
            created_at=as_utc(record.created_at),
            updated_at=as_utc(record.updated_at),
        )


class ScheduleConflictMapper:
    """Translation between ``ScheduleConflict`` and conflict records."""

    @staticmethod
    def split_ref(ref: EntryRef) -> tuple[UUID, date | None]:
        if isinstance(ref, OccurrenceRef):
            return ref.series_id, ref.anchor_date
        return ref, None

    @staticmethod
    def join_ref(entry_id: UUID, anchor_date: date | None) -> EntryRef:
        if anchor_date is None:
            return entry_id
        return OccurrenceRef(entry_id, anchor_date)

    @staticmethod
    def domain_to_sql(
        tenant_id: str, conflict: ScheduleConflict, conflict_id: UUID
    ) -> ScheduleConflictRecord:
        entry_id_1, anchor_date_1 = ScheduleConflictMapper.split_ref(conflict.entry_1)
        entry_id_2, anchor_date_2 = ScheduleConflictMapper.split_ref(conflict.entry_2)
        return ScheduleConflictRecord(
            tenant_id=tenant_id,
            id=conflict_id,
            entry_id_1=entry_id_1,
            anchor_date_1=anchor_date_1,
            entry_id_2=entry_id_2,
            anchor_date_2=anchor_date_2,
            conflict_type=conflict.conflict_type.value,
            resolved=conflict.resolved,
            resolution_notes=conflict.resolution_notes,
        )

    @staticmethod
    def sql_to_domain(record: ScheduleConflictRecord) -> ScheduleConflict:
        return ScheduleConflict(
            entry_1=ScheduleConflictMapper.join_ref(
                record.entry_id_1, record.anchor_date_1
            ),
            entry_2=ScheduleConflictMapper.join_ref(
                record.entry_id_2, record.anchor_date_2
            ),
            conflict_type=ConflictType(record.conflict_type),
            conflict_id=record.id,
            resolved=record.resolved,
            resolution_notes=record.resolution_notes,
        )
