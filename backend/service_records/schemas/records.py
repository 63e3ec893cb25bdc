# ruff: noqa: TC001
from __future__ import annotations

from typing import Self

from pydantic import BaseModel, model_validator

from service_records.models.enums import EmploymentStatus, LifecycleOperation
from service_records.schemas.employment import Employee, EmploymentBlock
from service_records.schemas.timeline import HistoryPatch

# ---------------------------------------------------------------------------
# Record payloads
# ---------------------------------------------------------------------------


class UpsertEmployeeRequest(BaseModel):
    """Request body for saving an employee's record from the edit form."""

    full_name: str = ""
    dob: str | None = None
    date_of_appointment: str | None = None
    employment_history: list[EmploymentBlock] = []


class EmployeeResponse(Employee):
    """A stored employee record, with the auto-fill changes applied while saving it."""

    applied_patch: HistoryPatch | None = None


class EmployeeListResponse(BaseModel):
    """Response schema for listing employees."""

    items: list[EmployeeResponse]
    total: int


class LifecycleResponse(BaseModel):
    """Response schema for a committed transfer, rejoin or succession."""

    operation: LifecycleOperation
    employee: EmployeeResponse


# ---------------------------------------------------------------------------
# Stateless engine calls
# ---------------------------------------------------------------------------


class TimelineRequest(BaseModel):
    """An employment history as currently held by the edit form."""

    date_of_appointment: str | None = None
    employment_history: list[EmploymentBlock] = []


class BlockRequest(TimelineRequest):
    """A form history plus the position of one block in it."""

    block_index: int

    @model_validator(mode="after")
    def _validate_index(self) -> Self:
        if not 0 <= self.block_index < len(self.employment_history):
            msg = "block_index must point at a block of employment_history"
            raise ValueError(msg)
        return self


class RevalidateRequest(BlockRequest):
    """Request body for re-checking a single edited field."""

    field: str


class CurrentPostingRequest(BlockRequest):
    """Request body for marking (or unmarking) the current posting."""

    value: bool = True


class StatusChangeRequest(BaseModel):
    """Request body for switching the status of one block."""

    block: EmploymentBlock
    status: EmploymentStatus


class AutoFillResponse(BaseModel):
    """Proposed auto-fill and the history it produces."""

    patch: HistoryPatch | None
    employment_history: list[EmploymentBlock]
