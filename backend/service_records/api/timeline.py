from __future__ import annotations

from fastapi import APIRouter

from service_records.api.deps import AuthDep
from service_records.schemas.employment import EmploymentBlock
from service_records.schemas.records import (
    AutoFillResponse,
    BlockRequest,
    CurrentPostingRequest,
    RevalidateRequest,
    StatusChangeRequest,
    TimelineRequest,
)
from service_records.schemas.timeline import HistoryEdit, ValidationResult
from service_records.services import timeline
from service_records.services.leaves import clamp_leaves
from service_records.services.status_policy import apply_status_change, set_currently_working

# Stateless calls backing the edit form. Nothing here is stored or audited.
timeline_router = APIRouter(prefix="/timeline", tags=["timeline"])


@timeline_router.post("/validate", response_model=ValidationResult)
async def validate(payload: TimelineRequest, auth: AuthDep) -> ValidationResult:
    return timeline.validate_history(payload.date_of_appointment, payload.employment_history)


@timeline_router.post("/revalidate", response_model=ValidationResult)
async def revalidate(payload: RevalidateRequest, auth: AuthDep) -> ValidationResult:
    """Re-check only what an edit of one field can affect."""
    return timeline.revalidate_field(
        payload.date_of_appointment,
        payload.employment_history,
        payload.block_index,
        payload.field,
    )


@timeline_router.post("/status-change", response_model=EmploymentBlock)
async def status_change(payload: StatusChangeRequest, auth: AuthDep) -> EmploymentBlock:
    return apply_status_change(payload.block, payload.status)


@timeline_router.post("/auto-fill", response_model=AutoFillResponse)
async def auto_fill(payload: TimelineRequest, auth: AuthDep) -> AutoFillResponse:
    patch = timeline.propose_auto_fill(payload.employment_history)
    return AutoFillResponse(
        patch=patch,
        employment_history=timeline.apply_patch(payload.employment_history, patch),
    )


@timeline_router.post("/leaves/clamp", response_model=EmploymentBlock)
async def clamp(block: EmploymentBlock, auth: AuthDep) -> EmploymentBlock:
    return clamp_leaves(block)


@timeline_router.post("/current-posting", response_model=list[EmploymentBlock])
async def current_posting(payload: CurrentPostingRequest, auth: AuthDep) -> list[EmploymentBlock]:
    return set_currently_working(payload.employment_history, payload.block_index, payload.value)


@timeline_router.post("/blocks", response_model=HistoryEdit)
async def add_block(payload: TimelineRequest, auth: AuthDep) -> HistoryEdit:
    return timeline.new_service_block(payload.employment_history)


@timeline_router.post("/blocks/remove", response_model=HistoryEdit)
async def remove_block(payload: BlockRequest, auth: AuthDep) -> HistoryEdit:
    return timeline.remove_block(payload.employment_history, payload.block_index)
