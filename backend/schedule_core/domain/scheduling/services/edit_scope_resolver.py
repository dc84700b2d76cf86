"""
Edit-Scope Resolver

Applies an update or delete to a schedule entry with one of three scopes:

* ``single``: only the referenced occurrence. A virtual occurrence is
  materialised as a detached exception and its date is added to the master's
  exceptions; persisted rows are changed in place.
* ``future``: the referenced occurrence and everything after it. The master is
  truncated before the boundary date and, for updates, a new master continues
  the series from the boundary with the changes applied.
* ``all``: the whole series through its master row.

The resolver only stages changes on the unit of work it is given; committing
or rolling back is the caller's business.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

from ....core.observability import get_logger
from ...shared.base import utc_now
from ...shared.exceptions import (
    EntryNotFoundError,
    InvalidPatternError,
    InvalidScopeError,
)
from ..entities.schedule_entry import ScheduleEntry
from ..repositories.unit_of_work import UnitOfWork
from ..value_objects.enums import EditScope, WorkItemType
from ..value_objects.identifiers import EntryRef, OccurrenceRef
from ..value_objects.recurrence import RecurrencePattern
from .pattern_expander import PatternExpander, shift_to_date

logger = get_logger(__name__)


@dataclass(frozen=True)
class EntryChanges:
    """
    Partial update of an entry.

    ``values`` holds only the fields the caller actually supplied. A new
    ``recurrence_pattern`` is re-anchored on the resulting start date, so its
    own ``start_date`` is only a placeholder.
    """

    FIELDS = frozenset(
        {
            "title",
            "scheduled_start",
            "scheduled_end",
            "assigned_user_ids",
            "status",
            "notes",
            "work_item_type",
            "work_item_id",
        }
    )

    values: Mapping[str, Any] = field(default_factory=dict)
    recurrence_pattern: RecurrencePattern | None = None

    def __post_init__(self) -> None:
        unknown = set(self.values) - self.FIELDS
        if unknown:
            raise ValueError(f"Unsupported entry fields: {sorted(unknown)}")

    def apply_to(self, entry: ScheduleEntry) -> ScheduleEntry:
        """
        Copy of ``entry`` with the changes merged over it.

        Moving only the start keeps the entry's duration.
        """
        update = dict(self.values)
        if "scheduled_start" in update and "scheduled_end" not in update:
            update["scheduled_end"] = update["scheduled_start"] + entry.duration
        if "assigned_user_ids" in update:
            update["assigned_user_ids"] = list(update["assigned_user_ids"])
        if update.get("work_item_type", entry.work_item_type) is WorkItemType.AD_HOC:
            update["work_item_id"] = None
        update["updated_at"] = utc_now()
        return entry.model_copy(update=update)


class EditScopeResolver:
    """Scoped updates and deletes over one tenant's unit of work."""

    def __init__(
        self,
        uow: UnitOfWork,
        expander: PatternExpander,
        time_zone: ZoneInfo,
    ) -> None:
        self.uow = uow
        self.expander = expander
        self.time_zone = time_zone

    # ------------------------------------------------------------------
    # Reference resolution
    # ------------------------------------------------------------------

    def _local_date(self, entry: ScheduleEntry) -> date:
        return entry.scheduled_start.astimezone(self.time_zone).date()

    def _get(self, entry_id: UUID, anchor_date: date | None = None) -> ScheduleEntry:
        entry = self.uow.entries.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id, anchor_date)
        return entry

    def _target(
        self, ref: EntryRef, scope: EditScope
    ) -> tuple[ScheduleEntry, date | None]:
        """
        Resolve ``ref`` to the row an operation works on.

        Returns the row plus the series date when the operation addresses an
        occurrence of a master; the date is None for in-place row edits.
        """
        if isinstance(ref, OccurrenceRef):
            entry = self._get(ref.series_id, ref.anchor_date)
            if not entry.is_master:
                raise InvalidScopeError(
                    entry.id, scope.value, "entry is not a recurring series"
                )
            return entry, ref.anchor_date

        entry = self._get(ref)
        if entry.is_master:
            return entry, entry.recurrence_pattern.start_date
        if entry.is_exception:
            if scope is EditScope.SINGLE:
                return entry, None
            master = self._get(entry.original_entry_id)
            return master, entry.anchor_date
        if scope is not EditScope.SINGLE:
            raise InvalidScopeError(
                entry.id,
                scope.value,
                "entry is neither a recurring series nor an exception of one",
            )
        return entry, None

    def _ensure_occurrence(self, master: ScheduleEntry, day: date) -> None:
        """A virtual reference must name a live or detached occurrence."""
        if self.expander.is_live(master.recurrence_pattern, day):
            return
        if self.uow.entries.get_exception(master.id, day) is None:
            raise EntryNotFoundError(master.id, day)

    def _prune_conflicts(self, master_id: UUID, from_date: date | None = None) -> None:
        """Drop records about virtual occurrences of ``master_id`` on/after a date."""
        for conflict in self.uow.conflicts.list_for_entries([master_id]):
            for side in (conflict.entry_1, conflict.entry_2):
                if (
                    isinstance(side, OccurrenceRef)
                    and side.series_id == master_id
                    and (from_date is None or side.anchor_date >= from_date)
                ):
                    self.uow.conflicts.delete(conflict.conflict_id)
                    break

    def _delete_row(self, entry_id: UUID) -> None:
        self.uow.conflicts.delete_for_entry(entry_id)
        self.uow.entries.delete(entry_id)

    def _reanchor(
        self, pattern: RecurrencePattern, entry: ScheduleEntry
    ) -> RecurrencePattern:
        return pattern.anchored_on(self._local_date(entry))

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(
        self, ref: EntryRef, changes: EntryChanges, scope: EditScope
    ) -> ScheduleEntry:
        """Apply ``changes`` with ``scope`` and return the resulting row."""
        target, anchor = self._target(ref, scope)
        logger.info(
            "Resolving update",
            ref=str(ref),
            scope=scope.value,
            target_id=str(target.id),
            anchor_date=anchor.isoformat() if anchor else None,
        )

        if anchor is None:
            return self._update_in_place(target, changes)
        if scope is EditScope.SINGLE:
            return self._update_occurrence(target, anchor, changes)
        if isinstance(ref, OccurrenceRef):
            self._ensure_occurrence(target, anchor)
        if scope is EditScope.ALL:
            return self._update_series(target, changes)
        return self._update_future(target, anchor, changes)

    def _update_in_place(
        self, entry: ScheduleEntry, changes: EntryChanges
    ) -> ScheduleEntry:
        updated = changes.apply_to(entry)
        if changes.recurrence_pattern is not None:
            if entry.is_exception:
                raise InvalidPatternError(
                    "a detached exception cannot carry its own recurrence pattern",
                    "recurrence_pattern",
                )
            # a standalone entry given a pattern becomes a master
            updated = updated.model_copy(
                update={
                    "recurrence_pattern": self._reanchor(
                        changes.recurrence_pattern, updated
                    )
                }
            )
        updated.check_invariants()
        return self.uow.entries.update(updated)

    def _update_occurrence(
        self, master: ScheduleEntry, anchor: date, changes: EntryChanges
    ) -> ScheduleEntry:
        if changes.recurrence_pattern is not None:
            raise InvalidPatternError(
                "a single occurrence cannot carry its own recurrence pattern",
                "recurrence_pattern",
            )

        occurrence = self.expander.occurrence_on(master, anchor, self.time_zone)
        if occurrence is None:
            detached = self.uow.entries.get_exception(master.id, anchor)
            if detached is None:
                raise EntryNotFoundError(master.id, anchor)
            return self._update_in_place(detached, changes)

        now = utc_now()
        detached = ScheduleEntry(
            title=master.title,
            scheduled_start=occurrence.scheduled_start,
            scheduled_end=occurrence.scheduled_end,
            assigned_user_ids=list(master.assigned_user_ids),
            status=master.status,
            notes=master.notes,
            work_item_type=master.work_item_type,
            work_item_id=master.work_item_id,
            original_entry_id=master.id,
            anchor_date=anchor,
            created_at=now,
            updated_at=now,
        )
        detached = changes.apply_to(detached)
        detached.check_invariants()

        self.uow.entries.update(
            master.model_copy(
                update={
                    "recurrence_pattern": master.recurrence_pattern.with_exceptions(
                        [anchor]
                    ),
                    "updated_at": now,
                }
            )
        )
        self._prune_conflicts_on(master.id, anchor)
        return self.uow.entries.add(detached)

    def _prune_conflicts_on(self, master_id: UUID, day: date) -> None:
        virtual = OccurrenceRef(master_id, day)
        for conflict in self.uow.conflicts.list_involving([virtual]):
            self.uow.conflicts.delete(conflict.conflict_id)

    def _update_series(
        self, master: ScheduleEntry, changes: EntryChanges
    ) -> ScheduleEntry:
        updated = changes.apply_to(master)
        pattern = master.recurrence_pattern
        if changes.recurrence_pattern is not None:
            pattern = changes.recurrence_pattern.with_exceptions(pattern.exceptions)
        updated = updated.model_copy(
            update={"recurrence_pattern": self._reanchor(pattern, updated)}
        )
        updated.check_invariants()
        # virtual occurrence times may all have moved
        self._prune_conflicts(master.id)
        return self.uow.entries.update(updated)

    def _update_future(
        self, master: ScheduleEntry, boundary: date, changes: EntryChanges
    ) -> ScheduleEntry:
        pattern = master.recurrence_pattern
        if pattern.positions_before(boundary) == 0:
            return self._update_series(master, changes)

        start, end = shift_to_date(
            master.scheduled_start, master.scheduled_end, boundary, self.time_zone
        )
        now = utc_now()
        continuation = master.model_copy(
            update={
                "id": uuid4(),
                "scheduled_start": start,
                "scheduled_end": end,
                "split_from_entry_id": master.id,
                "created_at": now,
                "updated_at": now,
            }
        )
        continuation = changes.apply_to(continuation)
        if changes.recurrence_pattern is not None:
            new_pattern = changes.recurrence_pattern.with_exceptions(
                d for d in pattern.exceptions if d >= boundary
            )
        else:
            new_pattern = pattern.continued_from(boundary, boundary)
        continuation = continuation.model_copy(
            update={"recurrence_pattern": self._reanchor(new_pattern, continuation)}
        )
        continuation.check_invariants()

        self.uow.entries.update(
            master.model_copy(
                update={
                    "recurrence_pattern": pattern.truncated_before(boundary),
                    "updated_at": now,
                }
            )
        )
        self.uow.entries.add(continuation)

        moved = 0
        for exception in self.uow.entries.list_exceptions(master.id):
            if exception.anchor_date >= boundary:
                self.uow.entries.update(
                    exception.model_copy(
                        update={"original_entry_id": continuation.id, "updated_at": now}
                    )
                )
                moved += 1
        self._prune_conflicts(master.id, boundary)

        logger.info(
            "Split recurring series",
            master_id=str(master.id),
            continuation_id=str(continuation.id),
            boundary=boundary.isoformat(),
            reparented_exceptions=moved,
        )
        return continuation

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(self, ref: EntryRef, scope: EditScope) -> list[UUID]:
        """Delete with ``scope``; returns the ids of the rows removed."""
        target, anchor = self._target(ref, scope)
        logger.info(
            "Resolving delete",
            ref=str(ref),
            scope=scope.value,
            target_id=str(target.id),
            anchor_date=anchor.isoformat() if anchor else None,
        )

        if anchor is None:
            self._delete_row(target.id)
            return [target.id]
        if scope is EditScope.SINGLE:
            return self._delete_occurrence(target, anchor)
        if isinstance(ref, OccurrenceRef):
            self._ensure_occurrence(target, anchor)
        if scope is EditScope.ALL:
            return self._delete_series(target)
        return self._delete_future(target, anchor)

    def _delete_occurrence(self, master: ScheduleEntry, anchor: date) -> list[UUID]:
        if not self.expander.is_live(master.recurrence_pattern, anchor):
            detached = self.uow.entries.get_exception(master.id, anchor)
            if detached is None:
                raise EntryNotFoundError(master.id, anchor)
            # the anchor is already in the master's exceptions
            self._delete_row(detached.id)
            return [detached.id]

        self.uow.entries.update(
            master.model_copy(
                update={
                    "recurrence_pattern": master.recurrence_pattern.with_exceptions(
                        [anchor]
                    ),
                    "updated_at": utc_now(),
                }
            )
        )
        self._prune_conflicts_on(master.id, anchor)
        return []

    def _delete_series(
        self, master: ScheduleEntry, with_continuations: bool = False
    ) -> list[UUID]:
        removed = []
        for exception in self.uow.entries.list_exceptions(master.id):
            self._delete_row(exception.id)
            removed.append(exception.id)
        if with_continuations:
            for child in self.uow.entries.list_split_children(master.id):
                removed.extend(self._delete_series(child, with_continuations=True))
        self._delete_row(master.id)
        removed.append(master.id)
        return removed

    def _delete_future(self, master: ScheduleEntry, boundary: date) -> list[UUID]:
        pattern = master.recurrence_pattern
        if pattern.positions_before(boundary) == 0:
            return self._delete_series(master, with_continuations=True)

        removed = []
        for exception in self.uow.entries.list_exceptions(master.id):
            if exception.anchor_date >= boundary:
                self._delete_row(exception.id)
                removed.append(exception.id)
        for child in self.uow.entries.list_split_children(master.id):
            if self._local_date(child) >= boundary:
                removed.extend(self._delete_series(child, with_continuations=True))

        self.uow.entries.update(
            master.model_copy(
                update={
                    "recurrence_pattern": pattern.truncated_before(boundary),
                    "updated_at": utc_now(),
                }
            )
        )
        self._prune_conflicts(master.id, boundary)
        logger.info(
            "Truncated recurring series",
            master_id=str(master.id),
            boundary=boundary.isoformat(),
            removed_rows=len(removed),
        )
        return removed
