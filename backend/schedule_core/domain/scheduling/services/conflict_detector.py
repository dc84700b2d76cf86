"""
Conflict Detector

Finds double bookings: two entries conflict when they share at least one
assignee and their half-open ``[start, end)`` ranges intersect. Detection is
advisory; it never blocks a write.
"""

from collections.abc import Iterable, Sequence

from ....core.observability import CONFLICTS_DETECTED
from ..entities.scheduled_item import ScheduleConflict, ScheduledItem
from ..value_objects.enums import ConflictType


class ConflictDetector:
    """Stateless double-booking detection over scheduled items."""

    def conflict_between(
        self, first: ScheduledItem, second: ScheduledItem
    ) -> ScheduleConflict | None:
        if first.ref == second.ref:
            return None
        if not (
            first.scheduled_start < second.scheduled_end
            and second.scheduled_start < first.scheduled_end
        ):
            return None
        shared = [u for u in first.assigned_user_ids if u in second.assigned_user_ids]
        if not shared:
            return None
        return ScheduleConflict.between(
            first.ref,
            second.ref,
            conflict_type=ConflictType.DOUBLE_BOOKING,
            shared_user_ids=tuple(sorted(shared)),
            overlap_start=max(first.scheduled_start, second.scheduled_start),
            overlap_end=min(first.scheduled_end, second.scheduled_end),
        )

    def detect(
        self, candidate: ScheduledItem, others: Iterable[ScheduledItem]
    ) -> list[ScheduleConflict]:
        """Conflicts between ``candidate`` and each of ``others``."""
        conflicts = []
        seen = set()
        for other in others:
            conflict = self.conflict_between(candidate, other)
            if conflict is not None and conflict.key not in seen:
                seen.add(conflict.key)
                conflicts.append(conflict)
        CONFLICTS_DETECTED.labels(source="candidate").inc(len(conflicts))
        return conflicts

    def detect_all(self, items: Sequence[ScheduledItem]) -> list[ScheduleConflict]:
        """
        Every conflicting pair within ``items``, each reported exactly once.

        Sweep line over start times: an item only needs comparing with the
        items still open when it starts.
        """
        ordered = sorted(items, key=lambda item: item.sort_key)
        active: list[ScheduledItem] = []
        conflicts = []
        seen = set()
        for item in ordered:
            active = [a for a in active if a.scheduled_end > item.scheduled_start]
            for open_item in active:
                conflict = self.conflict_between(open_item, item)
                if conflict is not None and conflict.key not in seen:
                    seen.add(conflict.key)
                    conflicts.append(conflict)
            active.append(item)
        CONFLICTS_DETECTED.labels(source="sweep").inc(len(conflicts))
        return conflicts

    @staticmethod
    def annotate(
        items: Iterable[ScheduledItem], conflicts: Iterable[ScheduleConflict]
    ) -> None:
        """Attach each conflict to both items it involves."""
        by_ref = {}
        for item in items:
            by_ref.setdefault(item.ref, []).append(item)
        for conflict in conflicts:
            for ref in (conflict.entry_1, conflict.entry_2):
                for item in by_ref.get(ref, ()):
                    item.conflicts.append(conflict)
