from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from service_records.exceptions import AppError, TimelineRejected
from service_records.models.enums import AuditAction, AuditEntityType, LifecycleOperation
from service_records.schemas.employment import Employee
from service_records.schemas.records import EmployeeResponse, LifecycleResponse
from service_records.services import lifecycle
from service_records.services.audit import model_to_audit_dict, write_audit_log
from service_records.services.timeline import finalize_history, prepare_loaded_history, validate_employee

if TYPE_CHECKING:
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession

    from service_records.schemas.auth import AuthContext
    from service_records.schemas.lifecycle import RejoinPayload, SuccessionPayload, TransferPayload
    from service_records.schemas.records import UpsertEmployeeRequest
    from service_records.schemas.timeline import HistoryPatch, LifecycleOutcome, RejoinPreview
    from service_records.services.employee import EmployeeRecordService
    from service_records.services.master_data import PostingClassifier

logger = logging.getLogger(__name__)

_AUDIT_ACTIONS: dict[LifecycleOperation, AuditAction] = {
    LifecycleOperation.TRANSFER: AuditAction.TRANSFER,
    LifecycleOperation.REJOIN: AuditAction.REJOIN,
    LifecycleOperation.SUCCESSION: AuditAction.SUCCESSION,
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_employee_response(employee: Employee, applied_patch: HistoryPatch | None = None) -> EmployeeResponse:
    return EmployeeResponse(**employee.model_dump(), applied_patch=applied_patch)


async def _get_employee_or_404(store: EmployeeRecordService, employee_id: str) -> Employee:
    employee = await store.get_employee(employee_id)
    if employee is None:
        raise AppError("Employee not found", status_code=404)
    return employee


async def _commit(
    session: AsyncSession,
    store: EmployeeRecordService,
    auth: AuthContext,
    *,
    action: AuditAction,
    before: Employee | None,
    after: Employee,
) -> Employee:
    """Hand the record to the store and audit the change in one transaction."""
    saved = await store.save_employee(after)
    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.EMPLOYEE,
        entity_id=saved.id,
        action=action,
        before_json=model_to_audit_dict(before) if before is not None else None,
        after_json=model_to_audit_dict(saved),
    )
    await session.commit()
    return saved


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


async def get_employee_record(store: EmployeeRecordService, employee_id: str) -> EmployeeResponse:
    """Load an employee with the history shaped for editing."""
    employee = await _get_employee_or_404(store, employee_id)
    employee.employment_history = prepare_loaded_history(employee.employment_history)
    return _build_employee_response(employee)


async def list_employee_records(store: EmployeeRecordService) -> list[EmployeeResponse]:
    employees = await store.list_employees()
    return [_build_employee_response(e) for e in employees]


async def save_employee_record(
    session: AsyncSession,
    store: EmployeeRecordService,
    auth: AuthContext,
    employee_id: str,
    payload: UpsertEmployeeRequest,
) -> EmployeeResponse:
    """Validate a submitted record and save it with any auto-fill applied.

    Raises TimelineRejected with every outstanding issue when the record is
    not consistent; nothing is saved in that case.
    """
    before = await store.get_employee(employee_id)
    employee = Employee(
        id=employee_id,
        full_name=payload.full_name,
        dob=payload.dob,
        date_of_appointment=payload.date_of_appointment,
        employment_history=payload.employment_history,
    )
    result = validate_employee(employee)
    if not result.ok:
        raise TimelineRejected("Employment history is not consistent", result.issues)

    employee.employment_history = finalize_history(employee.employment_history, result.auto_fill)
    saved = await _commit(
        session,
        store,
        auth,
        action=AuditAction.CREATE if before is None else AuditAction.UPDATE,
        before=before,
        after=employee,
    )
    logger.info(
        "Saved employee %s (%d blocks, auto-filled: %s)",
        saved.id,
        len(saved.employment_history),
        result.auto_fill is not None,
    )
    return _build_employee_response(saved, result.auto_fill)


# ---------------------------------------------------------------------------
# Lifecycle operations
# ---------------------------------------------------------------------------


async def _commit_outcome(
    session: AsyncSession,
    store: EmployeeRecordService,
    auth: AuthContext,
    employee: Employee,
    outcome: LifecycleOutcome,
) -> LifecycleResponse:
    if not outcome.ok or outcome.history is None:
        logger.info("%s rejected for employee %s", outcome.operation, employee.id)
        raise TimelineRejected(f"{outcome.operation.title()} rejected", outcome.issues)

    updated = employee.model_copy(update={"employment_history": outcome.history})
    saved = await _commit(
        session,
        store,
        auth,
        action=_AUDIT_ACTIONS[outcome.operation],
        before=employee,
        after=updated,
    )
    logger.info("%s committed for employee %s", outcome.operation, saved.id)
    return LifecycleResponse(
        operation=outcome.operation,
        employee=_build_employee_response(saved, outcome.applied_patch),
    )


async def transfer_employee(
    session: AsyncSession,
    store: EmployeeRecordService,
    auth: AuthContext,
    employee_id: str,
    payload: TransferPayload,
) -> LifecycleResponse:
    employee = await _get_employee_or_404(store, employee_id)
    outcome = lifecycle.transfer(employee, payload)
    return await _commit_outcome(session, store, auth, employee, outcome)


async def get_rejoin_preview(store: EmployeeRecordService, employee_id: str, today: date) -> RejoinPreview:
    """Pre-filled rejoin form. Raises 409 when the employee has no rejoinable exit."""
    employee = await _get_employee_or_404(store, employee_id)
    preview = lifecycle.preview_rejoin(employee, today)
    if preview is None:
        raise AppError("Employee has no rejoinable exit status", status_code=409)
    return preview


async def rejoin_employee(
    session: AsyncSession,
    store: EmployeeRecordService,
    auth: AuthContext,
    employee_id: str,
    payload: RejoinPayload,
) -> LifecycleResponse:
    employee = await _get_employee_or_404(store, employee_id)
    outcome = lifecycle.rejoin(employee, payload)
    return await _commit_outcome(session, store, auth, employee, outcome)


async def succession_employee(
    session: AsyncSession,
    store: EmployeeRecordService,
    classifier: PostingClassifier,
    auth: AuthContext,
    employee_id: str,
    payload: SuccessionPayload,
) -> LifecycleResponse:
    employee = await _get_employee_or_404(store, employee_id)
    outcome = lifecycle.succession(
        employee,
        payload,
        is_judicial_officer=classifier.is_judicial_officer,
        is_office_category=classifier.is_office_category,
    )
    return await _commit_outcome(session, store, auth, employee, outcome)
