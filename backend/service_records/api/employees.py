from __future__ import annotations

from datetime import date

from fastapi import APIRouter

from service_records.api.deps import AdminDep, AuthDep
from service_records.config import records_today
from service_records.db import SessionDep
from service_records.schemas.lifecycle import RejoinPayload, SuccessionPayload, TransferPayload
from service_records.schemas.records import (
    EmployeeListResponse,
    EmployeeResponse,
    LifecycleResponse,
    UpsertEmployeeRequest,
)
from service_records.schemas.timeline import RejoinPreview
from service_records.services import records
from service_records.services.employee import get_employee_record_service
from service_records.services.master_data import get_posting_classifier

employees_router = APIRouter(prefix="/employees", tags=["employees"])


@employees_router.get("", response_model=EmployeeListResponse)
async def list_employees(auth: AuthDep) -> EmployeeListResponse:
    """List all employee records."""
    items = await records.list_employee_records(get_employee_record_service())
    return EmployeeListResponse(items=items, total=len(items))


@employees_router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: str, auth: AuthDep) -> EmployeeResponse:
    """Get an employee record, sorted and clamped for editing."""
    return await records.get_employee_record(get_employee_record_service(), employee_id)


@employees_router.put("/{employee_id}", response_model=EmployeeResponse)
async def upsert_employee(
    employee_id: str,
    payload: UpsertEmployeeRequest,
    session: SessionDep,
    auth: AdminDep,
) -> EmployeeResponse:
    """Validate and save an employee record (admin only)."""
    return await records.save_employee_record(session, get_employee_record_service(), auth, employee_id, payload)


@employees_router.post("/{employee_id}/transfer", response_model=LifecycleResponse)
async def transfer_employee(
    employee_id: str,
    payload: TransferPayload,
    session: SessionDep,
    auth: AdminDep,
) -> LifecycleResponse:
    """Transfer the employee from the current posting to a new one (admin only)."""
    return await records.transfer_employee(session, get_employee_record_service(), auth, employee_id, payload)


@employees_router.get("/{employee_id}/rejoin-preview", response_model=RejoinPreview)
async def rejoin_preview(
    employee_id: str,
    auth: AuthDep,
    today: date | None = None,
) -> RejoinPreview:
    """Pre-filled rejoin form; ``today`` defaults to the current date in the records timezone."""
    return await records.get_rejoin_preview(get_employee_record_service(), employee_id, today or records_today())


@employees_router.post("/{employee_id}/rejoin", response_model=LifecycleResponse)
async def rejoin_employee(
    employee_id: str,
    payload: RejoinPayload,
    session: SessionDep,
    auth: AdminDep,
) -> LifecycleResponse:
    """Return the employee to service after a rejoinable exit (admin only)."""
    return await records.rejoin_employee(session, get_employee_record_service(), auth, employee_id, payload)


@employees_router.post("/{employee_id}/succession", response_model=LifecycleResponse)
async def succession_employee(
    employee_id: str,
    payload: SuccessionPayload,
    session: SessionDep,
    auth: AdminDep,
) -> LifecycleResponse:
    """Update the posting title of the current posting (admin only)."""
    return await records.succession_employee(
        session,
        get_employee_record_service(),
        get_posting_classifier(),
        auth,
        employee_id,
        payload,
    )
