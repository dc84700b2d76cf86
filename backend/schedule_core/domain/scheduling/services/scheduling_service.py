"""
Scheduling Service

Façade over the scheduling core. Reads fetch a tenant's rows, expand recurrence
masters, merge everything into one ordered list and annotate conflicts. Writes
go through the edit-scope resolver inside a single unit of work, then re-run
conflict detection for the affected window and record the result.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

from ....core.observability import get_logger, monitor_performance, set_tenant_id
from ...shared.base import utc_now
from ...shared.exceptions import (
    ConflictNotFoundError,
    EntryNotFoundError,
    ValidationError,
)
from ..collaborators import AssigneeDirectory, TenantTimeZoneProvider
from ..entities.schedule_entry import ScheduleEntry
from ..entities.scheduled_item import ScheduleConflict, ScheduledItem
from ..repositories.unit_of_work import UnitOfWork
from ..value_objects.enums import EditScope, EntryKind, EntryStatus, WorkItemType
from ..value_objects.holiday_calendar import (
    HolidayCalendar,
    NoHolidays,
    UsFederalHolidayCalendar,
)
from ..value_objects.identifiers import EntryRef, OccurrenceRef
from ..value_objects.recurrence import RecurrencePattern
from .conflict_detector import ConflictDetector
from .edit_scope_resolver import EditScopeResolver, EntryChanges
from .pattern_expander import PatternExpander

logger = get_logger(__name__)

UnitOfWorkFactory = Callable[[str], UnitOfWork]


@dataclass
class EntryDraft:
    """Data for a new entry. A pattern's ``start_date`` is a placeholder."""

    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    assigned_user_ids: list[str] = field(default_factory=list)
    status: EntryStatus = EntryStatus.SCHEDULED
    notes: str | None = None
    work_item_type: WorkItemType = WorkItemType.AD_HOC
    work_item_id: str | None = None
    recurrence_pattern: RecurrencePattern | None = None


def build_holiday_calendar(name: str) -> HolidayCalendar:
    """Holiday calendar for a ``HOLIDAY_CALENDAR`` setting value."""
    calendars: dict[str, Callable[[], HolidayCalendar]] = {
        "none": NoHolidays,
        "us_federal": UsFederalHolidayCalendar,
    }
    try:
        return calendars[name]()
    except KeyError:
        raise ValueError(f"Unknown holiday calendar: {name}") from None


def to_utc(value: datetime, time_zone: ZoneInfo) -> datetime:
    """Interpret naive datetimes as tenant-local and convert to UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=time_zone)
    return value.astimezone(UTC)


class SchedulingService:
    """
    Tenant-scoped scheduling operations.

    Every public method takes the tenant id first and opens its own unit of
    work for that tenant, so no call ever reads or writes another tenant's
    rows.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        expander: PatternExpander,
        conflict_detector: ConflictDetector,
        time_zones: TenantTimeZoneProvider,
        directory: AssigneeDirectory,
        conflict_horizon_days: int = 31,
    ) -> None:
        self._uow_factory = uow_factory
        self._expander = expander
        self._detector = conflict_detector
        self._time_zones = time_zones
        self._directory = directory
        self._conflict_horizon = timedelta(days=conflict_horizon_days)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @monitor_performance("get_entries")
    def get_entries(
        self, tenant_id: str, range_start: datetime, range_end: datetime
    ) -> list[ScheduledItem]:
        """
        Every item overlapping ``[range_start, range_end)``, ordered by start.

        Ties are broken by entry reference. Each item carries the conflicts it
        takes part in within the range.
        """
        set_tenant_id(tenant_id)
        time_zone = self._time_zones.time_zone_for(tenant_id)
        window_start = to_utc(range_start, time_zone)
        window_end = to_utc(range_end, time_zone)
        if window_end <= window_start:
            raise ValidationError(
                "range_end",
                window_end.isoformat(),
                "range_end must be after range_start",
                "INVALID_RANGE",
            )
        self._expander.check_window(window_start, window_end)

        with self._uow_factory(tenant_id) as uow:
            rows = uow.entries.list_in_window(window_start, window_end)
            items = self._merge(rows, window_start, window_end, time_zone)
            conflicts = self._detector.detect_all(items)
            conflicts = self._with_records(uow, conflicts)

        self._detector.annotate(items, conflicts)
        logger.info(
            "Fetched schedule entries",
            range_start=window_start.isoformat(),
            range_end=window_end.isoformat(),
            item_count=len(items),
            conflict_count=len(conflicts),
        )
        return items

    @monitor_performance("get_entry")
    def get_entry(self, tenant_id: str, ref: EntryRef) -> ScheduledItem:
        """A persisted entry, or one virtual occurrence of a series."""
        set_tenant_id(tenant_id)
        time_zone = self._time_zones.time_zone_for(tenant_id)
        with self._uow_factory(tenant_id) as uow:
            item = self._load_item(uow, ref, time_zone)
            if item.kind is not EntryKind.MASTER:
                window_start, window_end = self._clip(
                    item.scheduled_start, item.scheduled_end
                )
                others = self._merge(
                    uow.entries.list_in_window(window_start, window_end),
                    window_start,
                    window_end,
                    time_zone,
                )
                item.conflicts = self._with_records(
                    uow, self._detector.detect(item, others)
                )
        return item

    @monitor_performance("get_earliest")
    def get_earliest(self, tenant_id: str) -> ScheduledItem | None:
        """The entry with the earliest ``scheduled_start``, if the tenant has any."""
        set_tenant_id(tenant_id)
        with self._uow_factory(tenant_id) as uow:
            entry = uow.entries.get_earliest()
        return ScheduledItem.from_entry(entry) if entry is not None else None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @monitor_performance("create_entry")
    def create_entry(self, tenant_id: str, draft: EntryDraft) -> ScheduledItem:
        set_tenant_id(tenant_id)
        time_zone = self._time_zones.time_zone_for(tenant_id)
        assignees = self._normalize_assignees(tenant_id, draft.assigned_user_ids)

        now = utc_now()
        entry = ScheduleEntry(
            title=draft.title.strip() if draft.title else draft.title,
            scheduled_start=to_utc(draft.scheduled_start, time_zone),
            scheduled_end=to_utc(draft.scheduled_end, time_zone),
            assigned_user_ids=assignees,
            status=draft.status,
            notes=draft.notes,
            work_item_type=draft.work_item_type,
            work_item_id=(
                None
                if draft.work_item_type is WorkItemType.AD_HOC
                else draft.work_item_id
            ),
            created_at=now,
            updated_at=now,
        )
        if draft.recurrence_pattern is not None:
            pattern = draft.recurrence_pattern.anchored_on(
                entry.scheduled_start.astimezone(time_zone).date()
            )
            entry = entry.model_copy(update={"recurrence_pattern": pattern})
        entry.check_invariants()

        with self._uow_factory(tenant_id) as uow:
            stored = uow.entries.add(entry)
            item = self._refresh_conflicts(uow, stored, time_zone)

        logger.info(
            "Created schedule entry",
            entry_id=str(stored.id),
            kind=stored.kind.value,
            conflict_count=len(item.conflicts),
        )
        return item

    @monitor_performance("update_entry")
    def update_entry(
        self,
        tenant_id: str,
        ref: EntryRef,
        changes: EntryChanges,
        scope: EditScope = EditScope.SINGLE,
    ) -> ScheduledItem:
        set_tenant_id(tenant_id)
        time_zone = self._time_zones.time_zone_for(tenant_id)
        changes = self._normalize_changes(tenant_id, changes, time_zone)

        with self._uow_factory(tenant_id) as uow:
            resolver = EditScopeResolver(uow, self._expander, time_zone)
            row = resolver.update(ref, changes, scope)
            item = self._refresh_conflicts(uow, row, time_zone)

        logger.info(
            "Updated schedule entry",
            ref=str(ref),
            scope=scope.value,
            result_id=str(row.id),
            conflict_count=len(item.conflicts),
        )
        return item

    @monitor_performance("delete_entry")
    def delete_entry(
        self, tenant_id: str, ref: EntryRef, scope: EditScope = EditScope.SINGLE
    ) -> None:
        set_tenant_id(tenant_id)
        time_zone = self._time_zones.time_zone_for(tenant_id)
        with self._uow_factory(tenant_id) as uow:
            removed = EditScopeResolver(uow, self._expander, time_zone).delete(
                ref, scope
            )
        logger.info(
            "Deleted schedule entry",
            ref=str(ref),
            scope=scope.value,
            removed_rows=len(removed),
        )

    @monitor_performance("resolve_conflict")
    def resolve_conflict(
        self, tenant_id: str, conflict_id: UUID, resolution_notes: str | None = None
    ) -> ScheduleConflict:
        """Mark a conflict record resolved. Record keeping only."""
        set_tenant_id(tenant_id)
        with self._uow_factory(tenant_id) as uow:
            conflict = uow.conflicts.get(conflict_id)
            if conflict is None:
                raise ConflictNotFoundError(conflict_id)
            resolved = uow.conflicts.update(
                conflict.with_record(conflict_id, True, resolution_notes)
            )
        logger.info("Resolved schedule conflict", conflict_id=str(conflict_id))
        return resolved

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _normalize_assignees(self, tenant_id: str, user_ids: Iterable[str]) -> list[str]:
        # ordered set: first occurrence wins
        assignees = list(dict.fromkeys(u.strip() for u in user_ids if u and u.strip()))
        if not assignees:
            raise ValidationError(
                "assigned_user_ids", None, "at least one assignee is required", "REQUIRED"
            )
        self._directory.ensure_known(tenant_id, assignees)
        return assignees

    def _normalize_changes(
        self, tenant_id: str, changes: EntryChanges, time_zone: ZoneInfo
    ) -> EntryChanges:
        values = dict(changes.values)
        for key in ("scheduled_start", "scheduled_end"):
            if values.get(key) is not None:
                values[key] = to_utc(values[key], time_zone)
            elif key in values:
                raise ValidationError(key, None, f"{key} cannot be cleared", "REQUIRED")
        if "assigned_user_ids" in values:
            values["assigned_user_ids"] = self._normalize_assignees(
                tenant_id, values["assigned_user_ids"] or []
            )
        if "title" in values:
            title = values["title"]
            values["title"] = title.strip() if title else title
        for key in ("status", "work_item_type"):
            if key in values and values[key] is None:
                raise ValidationError(key, None, f"{key} cannot be cleared", "REQUIRED")
        return EntryChanges(values, changes.recurrence_pattern)

    def _merge(
        self,
        rows: Iterable[ScheduleEntry],
        window_start: datetime,
        window_end: datetime,
        time_zone: ZoneInfo,
    ) -> list[ScheduledItem]:
        """
        Merge standalone rows, detached exceptions and expanded masters.

        A detached exception supersedes the virtual occurrence it replaces, so
        no occurrence is listed twice.
        """
        rows = list(rows)
        overrides: dict[UUID, dict[OccurrenceRef, ScheduleEntry]] = defaultdict(dict)
        for row in rows:
            if row.is_exception:
                overrides[row.original_entry_id][row.occurrence_ref] = row

        items = []
        emitted: set[UUID] = set()
        for row in rows:
            if not row.is_master:
                continue
            for occurrence in self._expander.expand_entry(
                row, window_start, window_end, time_zone, overrides.get(row.id)
            ):
                if occurrence.detached_entry is not None:
                    emitted.add(occurrence.detached_entry.id)
                    items.append(ScheduledItem.from_entry(occurrence.detached_entry))
                else:
                    items.append(
                        ScheduledItem.virtual(
                            row,
                            occurrence.anchor_date,
                            occurrence.scheduled_start,
                            occurrence.scheduled_end,
                        )
                    )

        for row in rows:
            if row.is_master or row.id in emitted:
                continue
            if row.scheduled_start < window_end and row.scheduled_end > window_start:
                items.append(ScheduledItem.from_entry(row))

        items.sort(key=lambda item: item.sort_key)
        return items

    def _clip(
        self, window_start: datetime, window_end: datetime
    ) -> tuple[datetime, datetime]:
        """Keep an internal check window within the query span limit."""
        limit = timedelta(days=self._expander.max_window_days)
        return window_start, min(window_end, window_start + limit)

    def _load_item(
        self, uow: UnitOfWork, ref: EntryRef, time_zone: ZoneInfo
    ) -> ScheduledItem:
        if not isinstance(ref, OccurrenceRef):
            entry = uow.entries.get(ref)
            if entry is None:
                raise EntryNotFoundError(ref)
            return ScheduledItem.from_entry(entry)

        master = uow.entries.get(ref.series_id)
        if master is None or not master.is_master:
            raise EntryNotFoundError(ref.series_id, ref.anchor_date)
        occurrence = self._expander.occurrence_on(master, ref.anchor_date, time_zone)
        if occurrence is not None:
            return ScheduledItem.virtual(
                master,
                ref.anchor_date,
                occurrence.scheduled_start,
                occurrence.scheduled_end,
            )
        detached = uow.entries.get_exception(ref.series_id, ref.anchor_date)
        if detached is None:
            raise EntryNotFoundError(ref.series_id, ref.anchor_date)
        return ScheduledItem.from_entry(detached)

    def _with_records(
        self, uow: UnitOfWork, conflicts: list[ScheduleConflict]
    ) -> list[ScheduleConflict]:
        """Attach persisted id, resolution flag and notes where a record exists."""
        if not conflicts:
            return conflicts
        refs = {c.entry_1 for c in conflicts} | {c.entry_2 for c in conflicts}
        records = {r.key: r for r in uow.conflicts.list_involving(refs)}
        merged = []
        for conflict in conflicts:
            record = records.get(conflict.key)
            if record is not None:
                conflict = conflict.with_record(
                    record.conflict_id, record.resolved, record.resolution_notes
                )
            merged.append(conflict)
        return merged

    def _refresh_conflicts(
        self, uow: UnitOfWork, row: ScheduleEntry, time_zone: ZoneInfo
    ) -> ScheduledItem:
        """
        Re-run detection for a changed row and sync the conflict records.

        A master is checked over its occurrences in the conflict horizon from
        its start; any other row over its own time range. Unresolved records of
        the row that no longer hold are pruned.
        """
        window_end = row.scheduled_end
        if row.is_master:
            window_end = max(window_end, row.scheduled_start + self._conflict_horizon)
        window_start, window_end = self._clip(row.scheduled_start, window_end)

        items = self._merge(
            uow.entries.list_in_window(window_start, window_end),
            window_start,
            window_end,
            time_zone,
        )
        if row.is_master:
            own_refs = {
                item.ref
                for item in items
                if item.kind is EntryKind.OCCURRENCE and item.series_id == row.id
            }
        else:
            own_refs = {row.id}

        current = [
            c
            for c in self._detector.detect_all(items)
            if c.entry_1 in own_refs or c.entry_2 in own_refs
        ]
        current_keys = {c.key for c in current}

        existing = {}
        for record in uow.conflicts.list_involving(own_refs):
            if record.key in current_keys:
                existing[record.key] = record
            elif not record.resolved:
                uow.conflicts.delete(record.conflict_id)

        recorded = []
        for conflict in current:
            record = existing.get(conflict.key)
            if record is None:
                record = uow.conflicts.add(conflict)
            recorded.append(
                conflict.with_record(
                    record.conflict_id, record.resolved, record.resolution_notes
                )
            )

        item = ScheduledItem.from_entry(row)
        item.conflicts = recorded
        return item
