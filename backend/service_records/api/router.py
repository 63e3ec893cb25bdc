from fastapi import APIRouter

from service_records.api.employees import employees_router
from service_records.api.timeline import timeline_router

api_router = APIRouter()
api_router.include_router(employees_router)
api_router.include_router(timeline_router)
