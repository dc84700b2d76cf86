"""
SQL implementation of the schedule entry repository.

Entries are assembled from the entry row, its optional recurrence pattern row
and its ordered assignee rows. Writes are flushed immediately so later
statements in the same unit of work see them; committing is left to the unit
of work.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime
from uuid import UUID

from sqlmodel import Session, select

from schedule_core.domain.scheduling.entities.schedule_entry import ScheduleEntry
from schedule_core.domain.scheduling.repositories.schedule_entry_repository import (
    ScheduleEntryRepository,
)
from schedule_core.domain.shared.exceptions import EntryNotFoundError
from schedule_core.infrastructure.database.models import (
    RecurrencePatternRecord,
    ScheduleEntryAssigneeRecord,
    ScheduleEntryRecord,
)

from .base import BaseRepository
from .mappers.schedule_entry_mapper import ScheduleEntryMapper


class SqlScheduleEntryRepository(
    BaseRepository[ScheduleEntryRecord], ScheduleEntryRepository
):
    """Schedule entry repository backed by SQLModel."""

    record_class = ScheduleEntryRecord

    def __init__(self, session: Session, tenant_id: str):
        super().__init__(session, tenant_id)

    # Assembly

    def _patterns_for(
        self, entry_ids: list[UUID]
    ) -> dict[UUID, RecurrencePatternRecord]:
        if not entry_ids:
            return {}
        statement = select(RecurrencePatternRecord).where(
            RecurrencePatternRecord.tenant_id == self.tenant_id,
            RecurrencePatternRecord.entry_id.in_(entry_ids),
        )
        return {p.entry_id: p for p in self.session.exec(statement).all()}

    def _assignees_for(
        self, entry_ids: list[UUID]
    ) -> dict[UUID, list[ScheduleEntryAssigneeRecord]]:
        grouped: dict[UUID, list[ScheduleEntryAssigneeRecord]] = defaultdict(list)
        if not entry_ids:
            return grouped
        statement = (
            select(ScheduleEntryAssigneeRecord)
            .where(
                ScheduleEntryAssigneeRecord.tenant_id == self.tenant_id,
                ScheduleEntryAssigneeRecord.entry_id.in_(entry_ids),
            )
            .order_by(ScheduleEntryAssigneeRecord.position)
        )
        for assignee in self.session.exec(statement).all():
            grouped[assignee.entry_id].append(assignee)
        return grouped

    def _to_domain(self, records: Iterable[ScheduleEntryRecord]) -> list[ScheduleEntry]:
        records = list(records)
        ids = [r.id for r in records]
        patterns = self._patterns_for(ids)
        assignees = self._assignees_for(ids)
        return [
            ScheduleEntryMapper.sql_to_domain(
                r, patterns.get(r.id), assignees.get(r.id, [])
            )
            for r in records
        ]

    def _first(self, records: Iterable[ScheduleEntryRecord]) -> ScheduleEntry | None:
        entries = self._to_domain(records)
        return entries[0] if entries else None

    # Queries

    def get(self, entry_id: UUID) -> ScheduleEntry | None:
        with self._db_errors("get"):
            record = self._get_record(entry_id)
            return self._first([record] if record else [])

    def get_exception(self, series_id: UUID, anchor_date: date) -> ScheduleEntry | None:
        with self._db_errors("get_exception"):
            statement = self._select().where(
                ScheduleEntryRecord.original_entry_id == series_id,
                ScheduleEntryRecord.anchor_date == anchor_date,
            )
            return self._first(self.session.exec(statement).all())

    def list_in_window(
        self, window_start: datetime, window_end: datetime
    ) -> list[ScheduleEntry]:
        with self._db_errors("list_in_window"):
            master_ids = select(RecurrencePatternRecord.entry_id).where(
                RecurrencePatternRecord.tenant_id == self.tenant_id
            )
            # masters are filtered only by start; the expander drops ended series
            statement = (
                self._select()
                .where(ScheduleEntryRecord.scheduled_start < window_end)
                .where(
                    (ScheduleEntryRecord.scheduled_end > window_start)
                    | ScheduleEntryRecord.id.in_(master_ids)
                )
                .order_by(ScheduleEntryRecord.scheduled_start, ScheduleEntryRecord.id)
            )
            return self._to_domain(self.session.exec(statement).all())

    def list_exceptions(self, series_id: UUID) -> list[ScheduleEntry]:
        with self._db_errors("list_exceptions"):
            statement = (
                self._select()
                .where(ScheduleEntryRecord.original_entry_id == series_id)
                .order_by(ScheduleEntryRecord.anchor_date)
            )
            return self._to_domain(self.session.exec(statement).all())

    def list_split_children(self, series_id: UUID) -> list[ScheduleEntry]:
        with self._db_errors("list_split_children"):
            statement = (
                self._select()
                .where(ScheduleEntryRecord.split_from_entry_id == series_id)
                .order_by(ScheduleEntryRecord.scheduled_start)
            )
            return self._to_domain(self.session.exec(statement).all())

    def get_earliest(self) -> ScheduleEntry | None:
        with self._db_errors("get_earliest"):
            statement = (
                self._select()
                .order_by(ScheduleEntryRecord.scheduled_start, ScheduleEntryRecord.id)
                .limit(1)
            )
            return self._first(self.session.exec(statement).all())

    # Commands

    def add(self, entry: ScheduleEntry) -> ScheduleEntry:
        with self._db_errors("add"):
            record, pattern, assignees = ScheduleEntryMapper.domain_to_sql(
                self.tenant_id, entry
            )
            self.session.add(record)
            # parent row first so the composite foreign keys hold
            self.session.flush()
            if pattern is not None:
                self.session.add(pattern)
            self.session.add_all(assignees)
            self.session.flush()
        return entry

    def update(self, entry: ScheduleEntry) -> ScheduleEntry:
        with self._db_errors("update"):
            record = self._get_record(entry.id)
            if record is None:
                raise EntryNotFoundError(entry.id)
            ScheduleEntryMapper.copy_fields(entry, record)
            self.session.add(record)

            pattern = self.session.get(
                RecurrencePatternRecord, (self.tenant_id, entry.id)
            )
            if entry.recurrence_pattern is not None:
                if pattern is None:
                    pattern = RecurrencePatternRecord(
                        tenant_id=self.tenant_id, entry_id=entry.id
                    )
                ScheduleEntryMapper.copy_pattern(entry.recurrence_pattern, pattern)
                self.session.add(pattern)
            elif pattern is not None:
                self.session.delete(pattern)

            current = self._assignees_for([entry.id]).get(entry.id, [])
            if [a.user_id for a in current] != list(entry.assigned_user_ids):
                self._delete_records(current)
                self.session.flush()
                self.session.add_all(
                    ScheduleEntryMapper.assignee_records(self.tenant_id, entry)
                )
            self.session.flush()
        return entry

    def delete(self, entry_id: UUID) -> None:
        with self._db_errors("delete"):
            record = self._get_record(entry_id)
            if record is None:
                raise EntryNotFoundError(entry_id)
            self._delete_records(self._assignees_for([entry_id]).get(entry_id, []))
            pattern = self.session.get(
                RecurrencePatternRecord, (self.tenant_id, entry_id)
            )
            if pattern is not None:
                self.session.delete(pattern)
            self.session.flush()
            self.session.delete(record)
            self.session.flush()
