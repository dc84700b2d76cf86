"""
API Dependencies

Wires the scheduling service from settings and exposes request-scoped values
(tenant id, service) as ``Annotated`` dependencies.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from schedule_core.core.config import settings
from schedule_core.core.db import get_session
from schedule_core.core.observability import set_tenant_id
from schedule_core.domain.scheduling.collaborators import (
    OpenAssigneeDirectory,
    StaticTimeZoneProvider,
)
from schedule_core.domain.scheduling.services.conflict_detector import ConflictDetector
from schedule_core.domain.scheduling.services.pattern_expander import PatternExpander
from schedule_core.domain.scheduling.services.scheduling_service import (
    SchedulingService,
    build_holiday_calendar,
)
from schedule_core.infrastructure.database.unit_of_work import unit_of_work_factory


@lru_cache
def get_scheduling_service() -> SchedulingService:
    expander = PatternExpander(
        max_occurrences=settings.MAX_EXPANSION_OCCURRENCES,
        max_window_days=settings.MAX_QUERY_WINDOW_DAYS,
        holidays=build_holiday_calendar(settings.HOLIDAY_CALENDAR),
    )
    return SchedulingService(
        uow_factory=unit_of_work_factory(get_session),
        expander=expander,
        conflict_detector=ConflictDetector(),
        time_zones=StaticTimeZoneProvider(
            settings.DEFAULT_TIMEZONE, settings.TENANT_TIMEZONES
        ),
        directory=OpenAssigneeDirectory(),
        conflict_horizon_days=settings.CONFLICT_HORIZON_DAYS,
    )


def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> str:
    if not x_tenant_id or not x_tenant_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )
    tenant_id = x_tenant_id.strip()
    set_tenant_id(tenant_id)
    return tenant_id


TenantDep = Annotated[str, Depends(get_tenant_id)]
SchedulingServiceDep = Annotated[SchedulingService, Depends(get_scheduling_service)]
