"""
Scheduling Enumerations

Enumerations shared across the scheduling domain: recurrence frequencies, edit
scopes, entry states and kinds, work item types and conflict types.
"""

from enum import Enum


class Frequency(str, Enum):
    """Recurrence frequency of a series."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class EditScope(str, Enum):
    """Blast radius of an update or delete on a recurring series."""

    SINGLE = "single"  # this occurrence only
    FUTURE = "future"  # this and later occurrences
    ALL = "all"  # the whole series


class EntryStatus(str, Enum):
    """Lifecycle status of a schedule entry."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WorkItemType(str, Enum):
    """Kind of work item an entry is linked to."""

    TICKET = "ticket"
    PROJECT_TASK = "project_task"
    AD_HOC = "ad_hoc"


class EntryKind(str, Enum):
    """Role an entry plays in a series."""

    STANDALONE = "standalone"
    MASTER = "master"
    OCCURRENCE = "occurrence"  # virtual, never persisted
    EXCEPTION = "exception"  # detached override of one occurrence


class ConflictType(str, Enum):
    """Type of scheduling conflict."""

    DOUBLE_BOOKING = "double_booking"
