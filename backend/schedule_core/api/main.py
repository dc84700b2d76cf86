from fastapi import APIRouter

from schedule_core.api.routes import schedule_conflicts, schedule_entries

api_router = APIRouter()
api_router.include_router(schedule_entries.router)
api_router.include_router(schedule_conflicts.router)
