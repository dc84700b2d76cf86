"""Schedule Conflict API Routes."""

from uuid import UUID

from fastapi import APIRouter

from schedule_core.api.deps import SchedulingServiceDep, TenantDep
from schedule_core.api.routes.errors import to_http_exception
from schedule_core.application.dtos.schedule_dtos import (
    ConflictResolveRequest,
    ScheduleConflictResponse,
)
from schedule_core.domain.shared.exceptions import DomainError

router = APIRouter(prefix="/schedule-conflicts", tags=["schedule-conflicts"])


@router.patch(
    "/{conflict_id}",
    summary="Mark a conflict resolved",
    description="Record keeping only: stores the resolution notes and flags the "
    "conflict as resolved. Entries are not changed.",
    response_model=ScheduleConflictResponse,
    responses={404: {"description": "Conflict not found"}},
)
def resolve_conflict(
    conflict_id: UUID,
    request: ConflictResolveRequest,
    tenant_id: TenantDep,
    service: SchedulingServiceDep,
) -> ScheduleConflictResponse:
    try:
        conflict = service.resolve_conflict(
            tenant_id, conflict_id, request.resolution_notes
        )
    except DomainError as e:
        raise to_http_exception(e) from e
    return ScheduleConflictResponse.from_domain(conflict)
