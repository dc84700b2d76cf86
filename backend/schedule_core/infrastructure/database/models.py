"""
SQLModel database models for the scheduling core.

Every table carries ``tenant_id`` as the leading primary key column, so rows of
different tenants can never be addressed by id alone. Masters, standalone
entries and detached exceptions share ``schedule_entries`` and are told apart
by ``original_entry_id`` and the presence of a ``recurrence_patterns`` row.
"""

from datetime import UTC, date, datetime
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKeyConstraint,
    Index,
    Text,
)
from sqlmodel import Column, Field, SQLModel


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _timestamp_column() -> Column:
    return Column(DateTime(timezone=True), nullable=False)


class ScheduleEntryRecord(SQLModel, table=True):
    """Schedule entry table: standalone entries, masters and exceptions."""

    __tablename__ = "schedule_entries"
    __table_args__ = (
        CheckConstraint(
            "scheduled_end > scheduled_start", name="ck_schedule_entries_end_after_start"
        ),
        ForeignKeyConstraint(
            ["tenant_id", "original_entry_id"],
            ["schedule_entries.tenant_id", "schedule_entries.id"],
            name="fk_schedule_entries_original_entry",
        ),
        Index(
            "ux_schedule_entries_series_anchor",
            "tenant_id",
            "original_entry_id",
            "anchor_date",
            unique=True,
        ),
        Index("ix_schedule_entries_tenant_start", "tenant_id", "scheduled_start"),
        Index("ix_schedule_entries_split_from", "tenant_id", "split_from_entry_id"),
    )

    tenant_id: str = Field(primary_key=True, max_length=64)
    id: UUID = Field(primary_key=True)

    title: str = Field(max_length=255)
    scheduled_start: datetime = Field(sa_column=_timestamp_column())
    scheduled_end: datetime = Field(sa_column=_timestamp_column())
    status: str = Field(default="scheduled", max_length=20)
    notes: str | None = Field(default=None, sa_column=Column(Text))
    work_item_type: str = Field(default="ad_hoc", max_length=20)
    work_item_id: str | None = Field(default=None, max_length=64)

    # Series structure
    original_entry_id: UUID | None = Field(default=None)
    anchor_date: date | None = Field(default=None)
    split_from_entry_id: UUID | None = Field(default=None)

    created_at: datetime = Field(default_factory=_utc_now, sa_column=_timestamp_column())
    updated_at: datetime = Field(default_factory=_utc_now, sa_column=_timestamp_column())


class RecurrencePatternRecord(SQLModel, table=True):
    """Recurrence pattern table, one row per master."""

    __tablename__ = "recurrence_patterns"
    __table_args__ = (
        ForeignKeyConstraint(
            ["tenant_id", "entry_id"],
            ["schedule_entries.tenant_id", "schedule_entries.id"],
            name="fk_recurrence_patterns_entry",
        ),
    )

    tenant_id: str = Field(primary_key=True, max_length=64)
    entry_id: UUID = Field(primary_key=True)

    frequency: str = Field(max_length=10)
    interval: int = Field(default=1)
    start_date: date
    end_date: date | None = Field(default=None)
    occurrence_count: int | None = Field(default=None)
    workdays_only: bool = Field(default=False)
    days_of_week: list[int] = Field(default_factory=list, sa_column=Column(JSON))
    # original day of month of a monthly or yearly continuation
    anchor_day: int | None = Field(default=None)
    # ISO dates of cancelled or detached occurrences
    exceptions: list[str] = Field(default_factory=list, sa_column=Column(JSON))


class ScheduleEntryAssigneeRecord(SQLModel, table=True):
    """Ordered assignees of an entry."""

    __tablename__ = "schedule_entry_assignees"
    __table_args__ = (
        ForeignKeyConstraint(
            ["tenant_id", "entry_id"],
            ["schedule_entries.tenant_id", "schedule_entries.id"],
            name="fk_schedule_entry_assignees_entry",
        ),
        Index("ix_schedule_entry_assignees_user", "tenant_id", "user_id"),
    )

    tenant_id: str = Field(primary_key=True, max_length=64)
    entry_id: UUID = Field(primary_key=True)
    user_id: str = Field(primary_key=True, max_length=64)
    position: int = Field(default=0)


class ScheduleConflictRecord(SQLModel, table=True):
    """
    Conflict record table.

    Each side is an entry reference: a row id with a null anchor date, or a
    series id plus the anchor date of a virtual occurrence.
    """

    __tablename__ = "schedule_conflicts"
    __table_args__ = (
        Index("ix_schedule_conflicts_entry_1", "tenant_id", "entry_id_1"),
        Index("ix_schedule_conflicts_entry_2", "tenant_id", "entry_id_2"),
    )

    tenant_id: str = Field(primary_key=True, max_length=64)
    id: UUID = Field(primary_key=True)

    entry_id_1: UUID
    anchor_date_1: date | None = Field(default=None)
    entry_id_2: UUID
    anchor_date_2: date | None = Field(default=None)
    conflict_type: str = Field(default="double_booking", max_length=32)
    resolved: bool = Field(default=False)
    resolution_notes: str | None = Field(default=None, sa_column=Column(Text))

    created_at: datetime = Field(default_factory=_utc_now, sa_column=_timestamp_column())
    updated_at: datetime = Field(default_factory=_utc_now, sa_column=_timestamp_column())
