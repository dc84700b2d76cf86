"""SQL repository implementations."""

from .base import BaseRepository, DatabaseError, EntityAlreadyExistsError
from .conflict_repository import SqlConflictRepository
from .schedule_entry_repository import SqlScheduleEntryRepository

__all__ = [
    "BaseRepository",
    "DatabaseError",
    "EntityAlreadyExistsError",
    "SqlConflictRepository",
    "SqlScheduleEntryRepository",
]
