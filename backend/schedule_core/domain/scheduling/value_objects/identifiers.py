"""
Entry identifiers.

A persisted entry is addressed by its UUID. A virtual occurrence of a series has
no row of its own and is addressed by the structured pair of its series id and
anchor date.
"""

from dataclasses import dataclass
from datetime import date
from typing import TypeAlias
from uuid import UUID


@dataclass(frozen=True, order=True)
class OccurrenceRef:
    """Identity of one occurrence of a recurring series."""

    series_id: UUID
    anchor_date: date

    def __str__(self) -> str:
        return f"{self.series_id}@{self.anchor_date.isoformat()}"


EntryRef: TypeAlias = UUID | OccurrenceRef


def ref_entry_id(ref: EntryRef) -> UUID:
    """Return the row id a reference resolves through (the series id for occurrences)."""
    return ref.series_id if isinstance(ref, OccurrenceRef) else ref


def ref_sort_key(ref: EntryRef) -> tuple[str, date]:
    """Total order over references, used for canonical conflict pairs and ties."""
    if isinstance(ref, OccurrenceRef):
        return (str(ref.series_id), ref.anchor_date)
    return (str(ref), date.min)
