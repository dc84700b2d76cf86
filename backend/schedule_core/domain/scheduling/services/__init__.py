"""
Domain Services

Stateless services holding the scheduling logic that does not belong to a
single entity: recurrence expansion, conflict detection, edit-scope resolution
and the scheduling façade composing them.
"""

from .conflict_detector import ConflictDetector
from .edit_scope_resolver import EditScopeResolver, EntryChanges
from .pattern_expander import TOMBSTONE, Occurrence, PatternExpander, shift_to_date
from .scheduling_service import (
    EntryDraft,
    SchedulingService,
    build_holiday_calendar,
)

__all__ = [
    "ConflictDetector",
    "EditScopeResolver",
    "EntryChanges",
    "EntryDraft",
    "Occurrence",
    "PatternExpander",
    "SchedulingService",
    "TOMBSTONE",
    "build_holiday_calendar",
    "shift_to_date",
]
