"""
Scenario Tests for the Scheduling Service

Exercises the service end to end over SQLite: series expansion, the three
edit scopes for updates and deletes, conflict bookkeeping, tenant isolation
and input normalisation.
"""

from datetime import date, datetime, timedelta
from uuid import uuid4

import pytest
from sqlmodel import Session

from schedule_core.domain.scheduling.collaborators import (
    OpenAssigneeDirectory,
    StaticAssigneeDirectory,
    StaticTimeZoneProvider,
)
from schedule_core.domain.scheduling.services.conflict_detector import ConflictDetector
from schedule_core.domain.scheduling.services.edit_scope_resolver import EntryChanges
from schedule_core.domain.scheduling.services.pattern_expander import PatternExpander
from schedule_core.domain.scheduling.services.scheduling_service import (
    EntryDraft,
    SchedulingService,
)
from schedule_core.domain.scheduling.value_objects.enums import (
    EditScope,
    EntryKind,
    Frequency,
    WorkItemType,
)
from schedule_core.domain.scheduling.value_objects.identifiers import OccurrenceRef
from schedule_core.domain.scheduling.value_objects.recurrence import build_pattern
from schedule_core.domain.shared.exceptions import (
    ConflictNotFoundError,
    EntryNotFoundError,
    InvalidPatternError,
    InvalidScopeError,
    RangeTooLargeError,
    TransactionFailedError,
    UnknownAssigneeError,
    ValidationError,
)
from schedule_core.infrastructure.database.repositories.base import DatabaseError
from schedule_core.infrastructure.database.unit_of_work import SqlModelUnitOfWork
from schedule_core.tests.utils import BERLIN_TENANT, OTHER_TENANT, TENANT, utc

JANUARY = (utc(2024, 1, 1), utc(2024, 2, 5))


def standalone(day: int, start_hour: int, users=("user-1",), **kwargs) -> EntryDraft:
    return EntryDraft(
        title="One-off visit",
        scheduled_start=utc(2024, 1, day, start_hour),
        scheduled_end=utc(2024, 1, day, start_hour + 1),
        assigned_user_ids=list(users),
        **kwargs,
    )


@pytest.fixture
def series(service, weekly_draft):
    return service.create_entry(TENANT, weekly_draft)


def occurrence(series, day: int) -> OccurrenceRef:
    return OccurrenceRef(series.entry_id, date(2024, 1, day))


class TestQueries:
    def test_series_expands_into_occurrences(self, service, series):
        items = service.get_entries(TENANT, *JANUARY)

        assert series.kind is EntryKind.MASTER
        assert [i.anchor_date for i in items] == [
            date(2024, 1, d) for d in (1, 8, 15, 22, 29)
        ]
        assert {i.kind for i in items} == {EntryKind.OCCURRENCE}
        assert all(i.series_id == series.entry_id for i in items)

    def test_results_are_ordered_by_start(self, service, series):
        service.create_entry(TENANT, standalone(3, 8))

        items = service.get_entries(TENANT, *JANUARY)

        starts = [i.scheduled_start for i in items]
        assert starts == sorted(starts)
        assert items[1].kind is EntryKind.STANDALONE

    def test_get_virtual_occurrence(self, service, series):
        item = service.get_entry(TENANT, occurrence(series, 15))

        assert item.kind is EntryKind.OCCURRENCE
        assert item.scheduled_start == utc(2024, 1, 15, 9)

    def test_occurrence_outside_series_is_not_found(self, service, series):
        with pytest.raises(EntryNotFoundError):
            service.get_entry(TENANT, occurrence(series, 16))

    def test_get_earliest(self, service):
        assert service.get_earliest(TENANT) is None

        service.create_entry(TENANT, standalone(10, 9))
        first = service.create_entry(TENANT, standalone(2, 9))

        assert service.get_earliest(TENANT).entry_id == first.entry_id

    def test_range_must_not_be_empty(self, service):
        with pytest.raises(ValidationError):
            service.get_entries(TENANT, utc(2024, 1, 2), utc(2024, 1, 1))

    def test_range_span_is_limited(self, service):
        with pytest.raises(RangeTooLargeError):
            service.get_entries(TENANT, utc(2024, 1, 1), utc(2025, 6, 1))

    def test_tenants_never_see_each_other(self, service, series):
        assert service.get_entries(OTHER_TENANT, *JANUARY) == []
        with pytest.raises(EntryNotFoundError):
            service.get_entry(OTHER_TENANT, series.entry_id)
        with pytest.raises(EntryNotFoundError):
            service.delete_entry(OTHER_TENANT, series.entry_id, EditScope.ALL)


class TestCreate:
    def test_assignees_are_deduplicated_in_order(self, service):
        item = service.create_entry(
            TENANT, standalone(2, 9, users=("user-2", "user-1", "user-2"))
        )

        assert item.assigned_user_ids == ("user-2", "user-1")

    def test_assignees_are_required(self, service):
        with pytest.raises(ValidationError):
            service.create_entry(TENANT, standalone(2, 9, users=()))

    def test_end_must_follow_start(self, service):
        draft = standalone(2, 9)
        draft.scheduled_end = draft.scheduled_start

        with pytest.raises(ValidationError):
            service.create_entry(TENANT, draft)

    def test_ad_hoc_entries_drop_work_item_id(self, service):
        ad_hoc = service.create_entry(TENANT, standalone(2, 9, work_item_id="T-1"))
        ticket = service.create_entry(
            TENANT,
            standalone(
                3, 9, work_item_type=WorkItemType.TICKET, work_item_id="T-1"
            ),
        )

        assert ad_hoc.work_item_id is None
        assert ticket.work_item_id == "T-1"

    def test_unknown_assignees_are_rejected(self, uow_factory):
        service = SchedulingService(
            uow_factory=uow_factory,
            expander=PatternExpander(),
            conflict_detector=ConflictDetector(),
            time_zones=StaticTimeZoneProvider(),
            directory=StaticAssigneeDirectory({TENANT: ["user-1"]}),
        )

        with pytest.raises(UnknownAssigneeError):
            service.create_entry(TENANT, standalone(2, 9, users=("user-1", "ghost")))

    def test_naive_times_are_tenant_local(self, service):
        draft = standalone(10, 9)
        draft.scheduled_start = datetime(2024, 1, 10, 9)
        draft.scheduled_end = datetime(2024, 1, 10, 10)

        item = service.create_entry(BERLIN_TENANT, draft)

        assert item.scheduled_start == utc(2024, 1, 10, 8)

    def test_pattern_is_anchored_on_start(self, service):
        draft = standalone(10, 9)
        draft.recurrence_pattern = build_pattern(
            Frequency.DAILY, date(2000, 1, 1), occurrence_count=2
        )

        item = service.create_entry(TENANT, draft)

        assert item.recurrence_pattern.start_date == date(2024, 1, 10)

    def test_invalid_pattern_is_rejected(self, service):
        draft = standalone(10, 9)
        draft.recurrence_pattern = build_pattern(
            Frequency.DAILY, date(2024, 1, 10), interval=0, validate=False
        )

        with pytest.raises(InvalidPatternError):
            service.create_entry(TENANT, draft)


class TestSingleScope:
    def test_update_detaches_one_occurrence(self, service, series):
        moved = service.update_entry(
            TENANT,
            occurrence(series, 15),
            EntryChanges({"scheduled_start": utc(2024, 1, 15, 14)}),
            EditScope.SINGLE,
        )

        assert moved.kind is EntryKind.EXCEPTION
        assert moved.series_id == series.entry_id
        assert moved.anchor_date == date(2024, 1, 15)
        assert moved.scheduled_end == utc(2024, 1, 15, 15)

        items = service.get_entries(TENANT, *JANUARY)
        assert len(items) == 5
        assert [i.kind for i in items].count(EntryKind.EXCEPTION) == 1
        assert items[2].entry_id == moved.entry_id

        master = service.get_entry(TENANT, series.entry_id)
        assert master.recurrence_pattern.exceptions == frozenset({date(2024, 1, 15)})

    def test_second_edit_reuses_the_exception(self, service, series):
        ref = occurrence(series, 15)
        first = service.update_entry(
            TENANT, ref, EntryChanges({"title": "Moved"}), EditScope.SINGLE
        )

        second = service.update_entry(
            TENANT, ref, EntryChanges({"title": "Moved again"}), EditScope.SINGLE
        )

        assert second.entry_id == first.entry_id
        assert service.get_entry(TENANT, ref).title == "Moved again"
        assert len(service.get_entries(TENANT, *JANUARY)) == 5

    def test_exception_can_be_edited_by_id(self, service, series):
        moved = service.update_entry(
            TENANT, occurrence(series, 15), EntryChanges({"notes": "a"}), EditScope.SINGLE
        )

        edited = service.update_entry(
            TENANT, moved.entry_id, EntryChanges({"notes": "b"}), EditScope.SINGLE
        )

        assert edited.kind is EntryKind.EXCEPTION
        assert edited.notes == "b"

    def test_single_occurrence_cannot_get_a_pattern(self, service, series):
        with pytest.raises(InvalidPatternError):
            service.update_entry(
                TENANT,
                occurrence(series, 15),
                EntryChanges(
                    recurrence_pattern=build_pattern(Frequency.DAILY, date(2024, 1, 15))
                ),
                EditScope.SINGLE,
            )

    def test_delete_cancels_one_occurrence(self, service, series):
        service.delete_entry(TENANT, occurrence(series, 8), EditScope.SINGLE)

        items = service.get_entries(TENANT, *JANUARY)
        assert date(2024, 1, 8) not in [i.anchor_date for i in items]
        assert len(items) == 4
        with pytest.raises(EntryNotFoundError):
            service.get_entry(TENANT, occurrence(series, 8))

    def test_delete_detached_exception_keeps_date_cancelled(self, service, series):
        moved = service.update_entry(
            TENANT, occurrence(series, 8), EntryChanges({"title": "x"}), EditScope.SINGLE
        )

        service.delete_entry(TENANT, occurrence(series, 8), EditScope.SINGLE)

        items = service.get_entries(TENANT, *JANUARY)
        assert len(items) == 4
        assert moved.entry_id not in [i.entry_id for i in items]

    def test_standalone_update_in_place(self, service):
        item = service.create_entry(TENANT, standalone(2, 9))

        updated = service.update_entry(
            TENANT, item.entry_id, EntryChanges({"title": "Renamed"})
        )

        assert updated.entry_id == item.entry_id
        assert updated.title == "Renamed"

    def test_standalone_becomes_series(self, service):
        item = service.create_entry(TENANT, standalone(2, 9))

        updated = service.update_entry(
            TENANT,
            item.entry_id,
            EntryChanges(
                recurrence_pattern=build_pattern(
                    Frequency.DAILY, date(2000, 1, 1), occurrence_count=3
                )
            ),
        )

        assert updated.kind is EntryKind.MASTER
        assert updated.recurrence_pattern.start_date == date(2024, 1, 2)
        assert len(service.get_entries(TENANT, *JANUARY)) == 3

    def test_fields_cannot_be_cleared(self, service):
        item = service.create_entry(TENANT, standalone(2, 9))

        with pytest.raises(ValidationError):
            service.update_entry(
                TENANT, item.entry_id, EntryChanges({"scheduled_start": None})
            )


class TestFutureScope:
    def test_update_splits_the_series(self, service, series):
        continuation = service.update_entry(
            TENANT,
            occurrence(series, 15),
            EntryChanges({"title": "Renamed"}),
            EditScope.FUTURE,
        )

        assert continuation.kind is EntryKind.MASTER
        assert continuation.entry_id != series.entry_id
        assert continuation.recurrence_pattern.start_date == date(2024, 1, 15)
        assert continuation.recurrence_pattern.occurrence_count == 3

        items = service.get_entries(TENANT, *JANUARY)
        assert [i.title for i in items] == ["Weekly standup"] * 2 + ["Renamed"] * 3

        master = service.get_entry(TENANT, series.entry_id)
        assert master.recurrence_pattern.occurrence_count == 2

    def test_split_reparents_later_exceptions(self, service, series):
        moved = service.update_entry(
            TENANT,
            occurrence(series, 22),
            EntryChanges({"scheduled_start": utc(2024, 1, 22, 13)}),
            EditScope.SINGLE,
        )

        continuation = service.update_entry(
            TENANT,
            occurrence(series, 15),
            EntryChanges({"notes": "later"}),
            EditScope.FUTURE,
        )

        items = service.get_entries(TENANT, *JANUARY)
        assert len(items) == 5
        detached = [i for i in items if i.kind is EntryKind.EXCEPTION]
        assert [i.entry_id for i in detached] == [moved.entry_id]
        assert detached[0].series_id == continuation.entry_id

    def test_update_from_first_occurrence_changes_whole_series(self, service, series):
        updated = service.update_entry(
            TENANT,
            occurrence(series, 1),
            EntryChanges({"title": "Renamed"}),
            EditScope.FUTURE,
        )

        assert updated.entry_id == series.entry_id
        assert {i.title for i in service.get_entries(TENANT, *JANUARY)} == {"Renamed"}

    def test_delete_truncates_the_series(self, service, series):
        service.delete_entry(TENANT, occurrence(series, 22), EditScope.FUTURE)

        items = service.get_entries(TENANT, *JANUARY)
        assert [i.anchor_date for i in items] == [
            date(2024, 1, 1),
            date(2024, 1, 8),
            date(2024, 1, 15),
        ]

    def test_delete_from_first_occurrence_removes_series(self, service, series):
        service.delete_entry(TENANT, occurrence(series, 1), EditScope.FUTURE)

        assert service.get_entries(TENANT, *JANUARY) == []
        with pytest.raises(EntryNotFoundError):
            service.get_entry(TENANT, series.entry_id)

    def test_delete_removes_split_continuations(self, service, series):
        service.update_entry(
            TENANT,
            occurrence(series, 22),
            EntryChanges({"title": "Renamed"}),
            EditScope.FUTURE,
        )

        service.delete_entry(TENANT, occurrence(series, 15), EditScope.FUTURE)

        assert len(service.get_entries(TENANT, *JANUARY)) == 2

    def test_standalone_rejects_future_scope(self, service):
        item = service.create_entry(TENANT, standalone(2, 9))

        with pytest.raises(InvalidScopeError):
            service.update_entry(
                TENANT, item.entry_id, EntryChanges({"title": "x"}), EditScope.FUTURE
            )
        with pytest.raises(InvalidScopeError):
            service.delete_entry(TENANT, item.entry_id, EditScope.FUTURE)

    def test_occurrence_ref_needs_a_series(self, service):
        item = service.create_entry(TENANT, standalone(2, 9))

        with pytest.raises(InvalidScopeError):
            service.delete_entry(
                TENANT, OccurrenceRef(item.entry_id, date(2024, 1, 2)), EditScope.FUTURE
            )

    def test_failed_split_changes_nothing(self, engine, service, series):
        service.update_entry(
            TENANT, occurrence(series, 22), EntryChanges({"title": "Moved"}), EditScope.SINGLE
        )
        before = [
            (i.ref, i.series_id, i.title) for i in service.get_entries(TENANT, *JANUARY)
        ]

        class ReparentFailsUnitOfWork(SqlModelUnitOfWork):
            def __enter__(self):
                uow = super().__enter__()
                update = uow.entries.update

                def update_or_fail(entry):
                    if entry.is_exception and entry.original_entry_id != series.entry_id:
                        raise DatabaseError("connection lost")
                    return update(entry)

                uow.entries.update = update_or_fail
                return uow

        failing = SchedulingService(
            uow_factory=lambda tenant_id: ReparentFailsUnitOfWork(
                tenant_id, lambda: Session(engine)
            ),
            expander=PatternExpander(),
            conflict_detector=ConflictDetector(),
            time_zones=StaticTimeZoneProvider(),
            directory=OpenAssigneeDirectory(),
        )

        with pytest.raises(TransactionFailedError):
            failing.update_entry(
                TENANT,
                occurrence(series, 15),
                EntryChanges({"title": "Renamed"}),
                EditScope.FUTURE,
            )

        master = service.get_entry(TENANT, series.entry_id)
        assert master.recurrence_pattern.occurrence_count == 5
        assert master.recurrence_pattern.exceptions == frozenset({date(2024, 1, 22)})
        assert [
            (i.ref, i.series_id, i.title) for i in service.get_entries(TENANT, *JANUARY)
        ] == before

    def test_cancelled_date_cannot_anchor_a_scoped_edit(self, service, series):
        service.delete_entry(TENANT, occurrence(series, 15), EditScope.SINGLE)

        with pytest.raises(EntryNotFoundError):
            service.update_entry(
                TENANT, occurrence(series, 15), EntryChanges({"title": "x"}), EditScope.FUTURE
            )
        with pytest.raises(EntryNotFoundError):
            service.delete_entry(TENANT, occurrence(series, 15), EditScope.ALL)
        assert len(service.get_entries(TENANT, *JANUARY)) == 4

    def test_detached_date_can_anchor_a_scoped_edit(self, service, series):
        service.update_entry(
            TENANT, occurrence(series, 15), EntryChanges({"title": "Moved"}), EditScope.SINGLE
        )

        continuation = service.update_entry(
            TENANT, occurrence(series, 15), EntryChanges({"notes": "n"}), EditScope.FUTURE
        )

        assert continuation.recurrence_pattern.start_date == date(2024, 1, 15)
        assert len(service.get_entries(TENANT, *JANUARY)) == 5


def series_draft(start: datetime, pattern) -> EntryDraft:
    return EntryDraft(
        title="Site inspection",
        scheduled_start=start,
        scheduled_end=start + timedelta(hours=1),
        assigned_user_ids=["user-1"],
        recurrence_pattern=pattern,
    )


def anchor_dates(service, start: datetime, end: datetime) -> list[date]:
    """Anchor dates in ``[start, end)``, queried a year at a time."""
    found = []
    while start < end:
        stop = min(start + timedelta(days=365), end)
        found.extend(i.anchor_date for i in service.get_entries(TENANT, start, stop))
        start = stop
    return found


SERIES_SHAPES = [
    pytest.param(
        build_pattern(Frequency.DAILY, date(2024, 1, 1), end_date=date(2024, 1, 5)),
        utc(2024, 1, 1, 9),
        date(2024, 1, 5),
        utc(2024, 2, 1),
        id="end-date-last-occurrence",
    ),
    pytest.param(
        build_pattern(Frequency.DAILY, date(2024, 1, 1), end_date=date(2024, 1, 10)),
        utc(2024, 1, 1, 9),
        date(2024, 1, 4),
        utc(2024, 2, 1),
        id="end-date",
    ),
    pytest.param(
        build_pattern(Frequency.MONTHLY, date(2024, 1, 31), occurrence_count=5),
        utc(2024, 1, 31, 9),
        date(2024, 2, 29),
        utc(2024, 7, 1),
        id="monthly-31st",
    ),
    pytest.param(
        build_pattern(Frequency.YEARLY, date(2024, 2, 29), occurrence_count=5),
        utc(2024, 2, 29, 9),
        date(2025, 2, 28),
        utc(2029, 1, 1),
        id="yearly-leap-day",
    ),
    pytest.param(
        build_pattern(
            Frequency.WEEKLY, date(2024, 1, 1), occurrence_count=6, days_of_week=[2]
        ),
        utc(2024, 1, 1, 9),
        date(2024, 1, 10),
        utc(2024, 2, 1),
        id="weekly-extra-days",
    ),
]


class TestFutureScopeSeriesShapes:
    """A ``future`` edit neither adds nor drops series dates."""

    @pytest.mark.parametrize("pattern, first, boundary, until", SERIES_SHAPES)
    def test_update_keeps_every_date(self, service, pattern, first, boundary, until):
        series = service.create_entry(TENANT, series_draft(first, pattern))
        before = anchor_dates(service, first, until)

        continuation = service.update_entry(
            TENANT,
            OccurrenceRef(series.entry_id, boundary),
            EntryChanges({"title": "Renamed"}),
            EditScope.FUTURE,
        )

        assert continuation.recurrence_pattern.start_date == boundary
        assert anchor_dates(service, first, until) == before

    @pytest.mark.parametrize("pattern, first, boundary, until", SERIES_SHAPES)
    def test_delete_keeps_earlier_dates(self, service, pattern, first, boundary, until):
        series = service.create_entry(TENANT, series_draft(first, pattern))
        before = anchor_dates(service, first, until)

        service.delete_entry(
            TENANT, OccurrenceRef(series.entry_id, boundary), EditScope.FUTURE
        )

        assert anchor_dates(service, first, until) == [d for d in before if d < boundary]

    def test_monthly_split_returns_to_the_31st(self, service):
        pattern = build_pattern(Frequency.MONTHLY, date(2024, 1, 31), occurrence_count=5)
        series = service.create_entry(TENANT, series_draft(utc(2024, 1, 31, 9), pattern))

        continuation = service.update_entry(
            TENANT,
            OccurrenceRef(series.entry_id, date(2024, 2, 29)),
            EntryChanges({"title": "Renamed"}),
            EditScope.FUTURE,
        )

        items = service.get_entries(TENANT, utc(2024, 1, 1), utc(2024, 7, 1))
        assert [(i.anchor_date, i.series_id) for i in items] == [
            (date(2024, 1, 31), series.entry_id),
            (date(2024, 2, 29), continuation.entry_id),
            (date(2024, 3, 31), continuation.entry_id),
            (date(2024, 4, 30), continuation.entry_id),
            (date(2024, 5, 31), continuation.entry_id),
        ]

    def test_weekly_split_keeps_the_anchor_weekday(self, service):
        pattern = build_pattern(
            Frequency.WEEKLY, date(2024, 1, 1), occurrence_count=6, days_of_week=[2]
        )
        series = service.create_entry(TENANT, series_draft(utc(2024, 1, 1, 9), pattern))

        service.update_entry(
            TENANT,
            OccurrenceRef(series.entry_id, date(2024, 1, 10)),
            EntryChanges({"title": "Renamed"}),
            EditScope.FUTURE,
        )

        assert anchor_dates(service, utc(2024, 1, 1), utc(2024, 2, 1)) == [
            date(2024, 1, d) for d in (1, 3, 8, 10, 15, 17)
        ]


class TestAllScope:
    def test_update_changes_every_occurrence(self, service, series):
        service.update_entry(
            TENANT,
            occurrence(series, 15),
            EntryChanges({"scheduled_start": utc(2024, 1, 1, 11)}),
            EditScope.ALL,
        )

        items = service.get_entries(TENANT, *JANUARY)
        assert len(items) == 5
        assert {i.scheduled_start.hour for i in items} == {11}

    def test_delete_removes_series_and_exceptions(self, service, series):
        moved = service.update_entry(
            TENANT, occurrence(series, 8), EntryChanges({"title": "x"}), EditScope.SINGLE
        )

        service.delete_entry(TENANT, moved.entry_id, EditScope.ALL)

        assert service.get_entries(TENANT, *JANUARY) == []
        with pytest.raises(EntryNotFoundError):
            service.get_entry(TENANT, moved.entry_id)

    def test_unknown_entry(self, service):
        with pytest.raises(EntryNotFoundError):
            service.update_entry(
                TENANT, uuid4(), EntryChanges({"title": "x"}), EditScope.ALL
            )


class TestConflicts:
    def test_double_booking_is_recorded(self, service, series):
        visit = service.create_entry(TENANT, standalone(8, 9))

        assert len(visit.conflicts) == 1
        conflict = visit.conflicts[0]
        assert conflict.conflict_id is not None
        assert conflict.involves(occurrence(series, 8))
        assert conflict.shared_user_ids == ("user-1",)

        items = service.get_entries(TENANT, *JANUARY)
        flagged = [i for i in items if i.conflicts]
        assert {i.ref for i in flagged} == {visit.entry_id, occurrence(series, 8)}
        assert all(i.conflicts[0].conflict_id == conflict.conflict_id for i in flagged)

    def test_different_assignees_do_not_conflict(self, service, series):
        visit = service.create_entry(TENANT, standalone(8, 9, users=("user-9",)))

        assert visit.conflicts == []

    def test_resolve_is_record_keeping_only(self, service, series):
        visit = service.create_entry(TENANT, standalone(8, 9))
        conflict_id = visit.conflicts[0].conflict_id

        resolved = service.resolve_conflict(TENANT, conflict_id, "Approved overtime")

        assert resolved.resolved
        assert resolved.resolution_notes == "Approved overtime"
        item = service.get_entry(TENANT, visit.entry_id)
        assert item.scheduled_start == utc(2024, 1, 8, 9)
        assert item.conflicts[0].resolved

    def test_moving_away_prunes_stale_conflicts(self, service, series):
        visit = service.create_entry(TENANT, standalone(8, 9))
        conflict_id = visit.conflicts[0].conflict_id

        moved = service.update_entry(
            TENANT,
            visit.entry_id,
            EntryChanges({"scheduled_start": utc(2024, 1, 8, 12)}),
        )

        assert moved.conflicts == []
        with pytest.raises(ConflictNotFoundError):
            service.resolve_conflict(TENANT, conflict_id)

    def test_detaching_the_occurrence_clears_its_record(self, service, series):
        visit = service.create_entry(TENANT, standalone(8, 9))
        conflict_id = visit.conflicts[0].conflict_id

        service.update_entry(
            TENANT,
            occurrence(series, 8),
            EntryChanges({"scheduled_start": utc(2024, 1, 8, 14)}),
            EditScope.SINGLE,
        )

        with pytest.raises(ConflictNotFoundError):
            service.resolve_conflict(TENANT, conflict_id)
        assert all(not i.conflicts for i in service.get_entries(TENANT, *JANUARY))

    def test_unknown_conflict(self, service):
        with pytest.raises(ConflictNotFoundError):
            service.resolve_conflict(TENANT, uuid4())


class TestWeeklySeriesScenario:
    """Five weekly occurrences from Monday 2024-01-01, edited step by step."""

    def test_move_one_occurrence_then_delete_the_tail(self, service, series):
        service.update_entry(
            TENANT,
            occurrence(series, 15),
            EntryChanges(
                {
                    "scheduled_start": utc(2024, 1, 16, 14),
                    "scheduled_end": utc(2024, 1, 16, 15),
                }
            ),
            EditScope.SINGLE,
        )

        items = service.get_entries(TENANT, *JANUARY)
        assert [i.scheduled_start.date() for i in items] == [
            date(2024, 1, 1),
            date(2024, 1, 8),
            date(2024, 1, 16),
            date(2024, 1, 22),
            date(2024, 1, 29),
        ]
        assert items[2].kind is EntryKind.EXCEPTION
        assert items[2].scheduled_start == utc(2024, 1, 16, 14)
        assert items[2].anchor_date == date(2024, 1, 15)

        service.delete_entry(TENANT, occurrence(series, 22), EditScope.FUTURE)

        items = service.get_entries(TENANT, utc(2024, 1, 1), utc(2024, 6, 1))
        assert [i.scheduled_start.date() for i in items] == [
            date(2024, 1, 1),
            date(2024, 1, 8),
            date(2024, 1, 16),
        ]

    def test_repeated_queries_are_identical(self, service, series):
        service.create_entry(TENANT, standalone(8, 9))

        first = service.get_entries(TENANT, *JANUARY)
        second = service.get_entries(TENANT, *JANUARY)

        assert [(i.ref, i.scheduled_start) for i in first] == [
            (i.ref, i.scheduled_start) for i in second
        ]
