"""
Schedule Entry API Routes.

CRUD over schedule entries with recurrence support. A virtual occurrence of a
series is addressed by the series id plus ``occurrence_date``; edits and
deletes take a ``scope`` of ``single``, ``future`` or ``all``.
"""

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Response, status

from schedule_core.api.deps import SchedulingServiceDep, TenantDep
from schedule_core.api.routes.errors import to_http_exception
from schedule_core.application.dtos.schedule_dtos import (
    ScheduleEntriesResponse,
    ScheduleEntryCreateRequest,
    ScheduleEntryResponse,
    ScheduleEntryUpdateRequest,
)
from schedule_core.core.observability import get_logger
from schedule_core.domain.scheduling.value_objects.enums import EditScope
from schedule_core.domain.scheduling.value_objects.identifiers import (
    EntryRef,
    OccurrenceRef,
)
from schedule_core.domain.shared.exceptions import DomainError

logger = get_logger(__name__)

router = APIRouter(prefix="/schedule-entries", tags=["schedule-entries"])


def _entry_ref(entry_id: UUID, occurrence_date: date | None) -> EntryRef:
    if occurrence_date is None:
        return entry_id
    return OccurrenceRef(entry_id, occurrence_date)


@router.get(
    "/",
    summary="List schedule entries in a range",
    description="Standalone entries, detached exceptions and expanded series "
    "occurrences overlapping the range, ordered by start time.",
    response_model=ScheduleEntriesResponse,
    responses={400: {"description": "Invalid or too large range"}},
)
def list_entries(
    tenant_id: TenantDep,
    service: SchedulingServiceDep,
    range_start: datetime = Query(..., description="Inclusive range start"),
    range_end: datetime = Query(..., description="Exclusive range end"),
) -> ScheduleEntriesResponse:
    try:
        items = service.get_entries(tenant_id, range_start, range_end)
    except DomainError as e:
        raise to_http_exception(e) from e
    data = [ScheduleEntryResponse.from_item(item) for item in items]
    return ScheduleEntriesResponse(data=data, count=len(data))


@router.get(
    "/earliest",
    summary="Get the earliest schedule entry",
    response_model=ScheduleEntryResponse,
    responses={404: {"description": "Tenant has no entries"}},
)
def get_earliest_entry(
    tenant_id: TenantDep, service: SchedulingServiceDep
) -> ScheduleEntryResponse:
    try:
        item = service.get_earliest(tenant_id)
    except DomainError as e:
        raise to_http_exception(e) from e
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No schedule entries"
        )
    return ScheduleEntryResponse.from_item(item)


@router.get(
    "/{entry_id}",
    summary="Get a schedule entry or a series occurrence",
    response_model=ScheduleEntryResponse,
    responses={404: {"description": "Entry or occurrence not found"}},
)
def get_entry(
    entry_id: UUID,
    tenant_id: TenantDep,
    service: SchedulingServiceDep,
    occurrence_date: date | None = Query(
        None, description="Address one occurrence of the series entry_id"
    ),
) -> ScheduleEntryResponse:
    try:
        item = service.get_entry(tenant_id, _entry_ref(entry_id, occurrence_date))
    except DomainError as e:
        raise to_http_exception(e) from e
    return ScheduleEntryResponse.from_item(item)


@router.post(
    "/",
    summary="Create a schedule entry",
    description="Create a standalone entry, or a recurring series when a "
    "recurrence pattern is given. Overlaps are reported as conflicts.",
    response_model=ScheduleEntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid entry or recurrence pattern"}},
)
def create_entry(
    request: ScheduleEntryCreateRequest,
    tenant_id: TenantDep,
    service: SchedulingServiceDep,
) -> ScheduleEntryResponse:
    try:
        item = service.create_entry(tenant_id, request.to_draft())
    except DomainError as e:
        raise to_http_exception(e) from e
    return ScheduleEntryResponse.from_item(item)


@router.patch(
    "/{entry_id}",
    summary="Update a schedule entry",
    response_model=ScheduleEntryResponse,
    responses={
        400: {"description": "Invalid changes"},
        404: {"description": "Entry or occurrence not found"},
        409: {"description": "Scope does not apply to this entry"},
        500: {"description": "Transaction failed, nothing was changed"},
    },
)
def update_entry(
    entry_id: UUID,
    request: ScheduleEntryUpdateRequest,
    tenant_id: TenantDep,
    service: SchedulingServiceDep,
    scope: EditScope = Query(EditScope.SINGLE),
    occurrence_date: date | None = Query(None),
) -> ScheduleEntryResponse:
    try:
        item = service.update_entry(
            tenant_id,
            _entry_ref(entry_id, occurrence_date),
            request.to_changes(),
            scope,
        )
    except DomainError as e:
        raise to_http_exception(e) from e
    return ScheduleEntryResponse.from_item(item)


@router.delete(
    "/{entry_id}",
    summary="Delete a schedule entry",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        404: {"description": "Entry or occurrence not found"},
        409: {"description": "Scope does not apply to this entry"},
        500: {"description": "Transaction failed, nothing was changed"},
    },
)
def delete_entry(
    entry_id: UUID,
    tenant_id: TenantDep,
    service: SchedulingServiceDep,
    scope: EditScope = Query(EditScope.SINGLE),
    occurrence_date: date | None = Query(None),
) -> Response:
    try:
        service.delete_entry(tenant_id, _entry_ref(entry_id, occurrence_date), scope)
    except DomainError as e:
        raise to_http_exception(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
