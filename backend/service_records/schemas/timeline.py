from __future__ import annotations

from pydantic import BaseModel, Field

from service_records.models.enums import EmploymentStatus, IssueKind, LifecycleOperation
from service_records.schemas.employment import EmploymentBlock

# ---------------------------------------------------------------------------
# Engine results
# ---------------------------------------------------------------------------


class TimelineIssue(BaseModel):
    """A single rule violation, addressed to the field the user has to fix."""

    kind: IssueKind
    code: str
    message: str
    block_index: int | None = None
    field: str
    related_index: int | None = None

    @property
    def key(self) -> tuple[int | None, str]:
        return (self.block_index, self.field)


class BlockChange(BaseModel):
    """One field update proposed for one block."""

    block_index: int = Field(ge=0)
    field: str
    value: str | bool | None
    reason: str = ""


class HistoryPatch(BaseModel):
    """Field updates the caller applies explicitly to an employment history."""

    changes: list[BlockChange] = []


class ValidationResult(BaseModel):
    """Outcome of validating an employment history."""

    issues: list[TimelineIssue] = []
    auto_fill: HistoryPatch | None = None

    @property
    def ok(self) -> bool:
        return not self.issues

    def field_errors(self) -> dict[tuple[int | None, str], str]:
        """Map (block index, field) to the first message reported for it."""
        errors: dict[tuple[int | None, str], str] = {}
        for issue in self.issues:
            errors.setdefault(issue.key, issue.message)
        return errors

    def of_kind(self, kind: IssueKind) -> list[TimelineIssue]:
        return [issue for issue in self.issues if issue.kind == kind]


class LifecycleOutcome(BaseModel):
    """Result of a transfer, rejoin or succession. ``history`` is set only on success."""

    operation: LifecycleOperation
    history: list[EmploymentBlock] | None = None
    issues: list[TimelineIssue] = []
    applied_patch: HistoryPatch | None = None

    @property
    def ok(self) -> bool:
        return self.history is not None and not self.issues


class RejoinPreview(BaseModel):
    """Pre-filled rejoin form derived from the employee's latest exit block."""

    prev_index: int
    prev_block_id: str
    prev_status: EmploymentStatus
    prev_status_date: str | None
    rejoin_date: str
    absent_days: int
    posting_place_title: str = ""
    hq_id: str = ""
    tehsil_id: str = ""
    posting_category_id: str = ""
    unit_id: str = ""
    designation_id: str = ""
    bps: str = ""


class HistoryEdit(BaseModel):
    """Result of adding or removing a block in the form. ``history`` is None when refused."""

    history: list[EmploymentBlock] | None = None
    issues: list[TimelineIssue] = []

    @property
    def ok(self) -> bool:
        return self.history is not None and not self.issues
