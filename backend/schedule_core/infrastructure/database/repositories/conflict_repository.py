"""SQL implementation of the conflict record repository."""

from collections.abc import Iterable
from uuid import UUID, uuid4

from sqlmodel import Session, or_

from schedule_core.domain.scheduling.entities.scheduled_item import ScheduleConflict
from schedule_core.domain.scheduling.repositories.conflict_repository import (
    ConflictRepository,
)
from schedule_core.domain.scheduling.value_objects.identifiers import (
    EntryRef,
    ref_entry_id,
)
from schedule_core.domain.shared.base import utc_now
from schedule_core.domain.shared.exceptions import ConflictNotFoundError
from schedule_core.infrastructure.database.models import ScheduleConflictRecord

from .base import BaseRepository
from .mappers.schedule_entry_mapper import ScheduleConflictMapper


class SqlConflictRepository(BaseRepository[ScheduleConflictRecord], ConflictRepository):
    """Conflict repository backed by SQLModel."""

    record_class = ScheduleConflictRecord

    def __init__(self, session: Session, tenant_id: str):
        super().__init__(session, tenant_id)

    def _records_for(self, entry_ids: Iterable[UUID]) -> list[ScheduleConflictRecord]:
        ids = list(set(entry_ids))
        if not ids:
            return []
        statement = self._select().where(
            or_(
                ScheduleConflictRecord.entry_id_1.in_(ids),
                ScheduleConflictRecord.entry_id_2.in_(ids),
            )
        )
        return list(self.session.exec(statement).all())

    def get(self, conflict_id: UUID) -> ScheduleConflict | None:
        with self._db_errors("get"):
            record = self._get_record(conflict_id)
            return ScheduleConflictMapper.sql_to_domain(record) if record else None

    def list_involving(self, refs: Iterable[EntryRef]) -> list[ScheduleConflict]:
        refs = set(refs)
        with self._db_errors("list_involving"):
            records = self._records_for(ref_entry_id(r) for r in refs)
        conflicts = [ScheduleConflictMapper.sql_to_domain(r) for r in records]
        return [c for c in conflicts if c.entry_1 in refs or c.entry_2 in refs]

    def list_for_entries(self, entry_ids: Iterable[UUID]) -> list[ScheduleConflict]:
        with self._db_errors("list_for_entries"):
            records = self._records_for(entry_ids)
        return [ScheduleConflictMapper.sql_to_domain(r) for r in records]

    def add(self, conflict: ScheduleConflict) -> ScheduleConflict:
        conflict_id = conflict.conflict_id or uuid4()
        with self._db_errors("add"):
            self.session.add(
                ScheduleConflictMapper.domain_to_sql(
                    self.tenant_id, conflict, conflict_id
                )
            )
            self.session.flush()
        return conflict.with_record(
            conflict_id, conflict.resolved, conflict.resolution_notes
        )

    def update(self, conflict: ScheduleConflict) -> ScheduleConflict:
        with self._db_errors("update"):
            record = self._get_record(conflict.conflict_id)
            if record is None:
                raise ConflictNotFoundError(conflict.conflict_id)
            record.resolved = conflict.resolved
            record.resolution_notes = conflict.resolution_notes
            record.updated_at = utc_now()
            self.session.add(record)
            self.session.flush()
            return ScheduleConflictMapper.sql_to_domain(record)

    def delete(self, conflict_id: UUID) -> None:
        with self._db_errors("delete"):
            record = self._get_record(conflict_id)
            if record is not None:
                self.session.delete(record)
                self.session.flush()

    def delete_for_entry(self, entry_id: UUID) -> int:
        with self._db_errors("delete_for_entry"):
            count = self._delete_records(self._records_for([entry_id]))
            self.session.flush()
        return count
