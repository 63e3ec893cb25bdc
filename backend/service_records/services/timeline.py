"""Chronological consistency of an employee's employment history.

Every check works on a working copy sorted by effective start, but reports
issues against the block's position in the list the user is editing.
Nothing here mutates its input: auto-fill is returned as a HistoryPatch that
the caller applies explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from functools import cached_property
from itertools import pairwise
from typing import TYPE_CHECKING, Any

from service_records.models.enums import BoundaryMode, EmploymentStatus, IssueKind
from service_records.schemas.employment import EmploymentBlock
from service_records.schemas.timeline import BlockChange, HistoryEdit, HistoryPatch, TimelineIssue, ValidationResult
from service_records.services.calendar import (
    DateInput,
    add_years,
    display,
    format_display,
    is_blank,
    is_malformed,
    normalize_date,
    to_date,
)
from service_records.services.intervals import Interval, find_all_overlapping_pairs
from service_records.services.leaves import (
    clamp_leaves,
    recount_leave_days,
    validate_disciplinary_actions,
    validate_leaves,
)
from service_records.services.status_policy import (
    effective_interval,
    effective_start,
    is_empty_block,
    is_exit,
    sequencing_end,
    start_field,
    start_label,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from service_records.schemas.employment import Employee

logger = logging.getLogger(__name__)

MIN_APPOINTMENT_AGE_YEARS = 18

_BLOCK_DATE_FIELDS = ("from_date", "to_date", "status_date", "order_date")


# ---------------------------------------------------------------------------
# Working copy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Row:
    index: int
    block: EmploymentBlock

    @property
    def start(self) -> date | None:
        return effective_start(self.block)

    @property
    def interval(self) -> Interval | None:
        return effective_interval(self.block)


@dataclass
class _Timeline:
    doa: date | None
    rows: list[_Row]

    @classmethod
    def build(cls, doa: DateInput, history: Sequence[EmploymentBlock]) -> _Timeline:
        rows = [_Row(i, block) for i, block in enumerate(history) if not is_empty_block(block)]
        return cls(doa=to_date(doa), rows=rows)

    @cached_property
    def chrono(self) -> list[_Row]:
        """Non-empty rows with a usable start, oldest first; ties keep list order."""
        dated = [row for row in self.rows if row.start is not None]
        return sorted(dated, key=lambda row: (row.start, row.index))


def _chronological(history: Sequence[EmploymentBlock]) -> list[_Row]:
    return _Timeline.build(None, history).chrono


def sort_key(block: EmploymentBlock) -> date:
    """Effective start, with undated blocks sorted last."""
    return effective_start(block) or date.max


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def _check_dates(tl: _Timeline) -> list[TimelineIssue]:
    issues: list[TimelineIssue] = []
    for row in tl.rows:
        block = row.block
        field = start_field(block)
        label = start_label(block)
        raw = getattr(block, field)

        if is_blank(raw):
            issues.append(
                TimelineIssue(
                    kind=IssueKind.REQUIRED,
                    code="start_required",
                    message=f"{label} is required",
                    block_index=row.index,
                    field=field,
                )
            )
        elif is_malformed(raw):
            issues.append(
                TimelineIssue(
                    kind=IssueKind.FORMAT,
                    code="invalid_date",
                    message=f"{label} is not a valid date",
                    block_index=row.index,
                    field=field,
                )
            )
        elif tl.doa is not None and row.start is not None and row.start < tl.doa:
            issues.append(
                TimelineIssue(
                    kind=IssueKind.SEQUENCING,
                    code="starts_before_doa",
                    message=f"{label} must be on/after Date of Appointment ({format_display(tl.doa)})",
                    block_index=row.index,
                    field=field,
                )
            )

        for other in ("to_date", "order_date"):
            if is_malformed(getattr(block, other)):
                issues.append(
                    TimelineIssue(
                        kind=IssueKind.FORMAT,
                        code="invalid_date",
                        message="Invalid date format",
                        block_index=row.index,
                        field=other,
                    )
                )

        end = to_date(block.to_date)
        if row.start is not None and end is not None and end < row.start:
            issues.append(
                TimelineIssue(
                    kind=IssueKind.SEQUENCING,
                    code="ends_before_start",
                    message=f"To Date must be on/after {label} ({format_display(row.start)})",
                    block_index=row.index,
                    field="to_date",
                )
            )
    return issues


def _check_doa_anchor(tl: _Timeline) -> list[TimelineIssue]:
    """The first block starts on the DOA, and only the first block does."""
    if tl.doa is None or not tl.chrono:
        return []
    issues: list[TimelineIssue] = []
    doa_rows = [row for row in tl.chrono if row.start == tl.doa]

    if not doa_rows:
        first = tl.chrono[0]
        if first.start is not None and first.start > tl.doa:
            issues.append(
                TimelineIssue(
                    kind=IssueKind.SEQUENCING,
                    code="first_block_not_at_doa",
                    message=(
                        f"{start_label(first.block)} of the first service record must equal "
                        f"Date of Appointment ({format_display(tl.doa)})"
                    ),
                    block_index=first.index,
                    field=start_field(first.block),
                )
            )
        return issues

    for row in doa_rows[1:]:
        issues.append(
            TimelineIssue(
                kind=IssueKind.SEQUENCING,
                code="duplicate_doa_start",
                message="From Date equal to Date of Appointment can appear only once in employment history",
                block_index=row.index,
                field=start_field(row.block),
                related_index=doa_rows[0].index,
            )
        )
    if tl.chrono[0] is not doa_rows[0]:
        issues.append(
            TimelineIssue(
                kind=IssueKind.SEQUENCING,
                code="doa_start_not_first",
                message="From Date equal to Date of Appointment must be the first service record",
                block_index=doa_rows[0].index,
                field=start_field(doa_rows[0].block),
                related_index=tl.chrono[0].index,
            )
        )
    return issues


def _check_predecessors(tl: _Timeline) -> list[TimelineIssue]:
    issues: list[TimelineIssue] = []
    for prev, cur in pairwise(tl.chrono):
        prev_end = sequencing_end(prev.block)
        if prev_end is None:
            # An open current posting followed by another block is an overlap
            # and is reported by _check_overlaps.
            if prev.block.is_currently_working:
                continue
            issues.append(
                TimelineIssue(
                    kind=IssueKind.SEQUENCING,
                    code="predecessor_missing_end",
                    message="Previous service block is missing To Date",
                    block_index=cur.index,
                    field=start_field(cur.block),
                    related_index=prev.index,
                )
            )
        elif cur.start is not None and cur.start < prev_end:
            issues.append(
                TimelineIssue(
                    kind=IssueKind.SEQUENCING,
                    code="starts_before_predecessor_ends",
                    message=(
                        f"{start_label(cur.block)} must be on/after previous block To Date "
                        f"({format_display(prev_end)})"
                    ),
                    block_index=cur.index,
                    field=start_field(cur.block),
                    related_index=prev.index,
                )
            )
    return issues


def _check_overlaps(tl: _Timeline) -> list[TimelineIssue]:
    issues: list[TimelineIssue] = []
    intervals = [row.interval for row in tl.rows]
    for i, j in find_all_overlapping_pairs(intervals, BoundaryMode.TOUCHING_ALLOWED):
        first, second = tl.rows[i], tl.rows[j]
        first_range = _describe(first.block)
        second_range = _describe(second.block)
        issues.append(
            TimelineIssue(
                kind=IssueKind.OVERLAP,
                code="block_overlap",
                message=(
                    f"Service block {first.index + 1} ({first_range}) overlaps with "
                    f"this block ({second_range})"
                ),
                block_index=second.index,
                field="service_overlap",
                related_index=first.index,
            )
        )
    return issues


def _check_incomplete(tl: _Timeline) -> list[TimelineIssue]:
    issues: list[TimelineIssue] = []
    for row in tl.rows:
        block = row.block
        if block.status != EmploymentStatus.IN_SERVICE or block.is_currently_working:
            continue
        if is_blank(block.to_date):
            issues.append(
                TimelineIssue(
                    kind=IssueKind.INCOMPLETENESS,
                    code="missing_to_date",
                    message="To Date is required or mark as Current Posting",
                    block_index=row.index,
                    field="to_date",
                )
            )
    return issues


def _check_current_unique(tl: _Timeline) -> list[TimelineIssue]:
    current = [row for row in tl.rows if row.block.is_currently_working]
    return [
        TimelineIssue(
            kind=IssueKind.SEQUENCING,
            code="multiple_current_postings",
            message=f"Only one posting can be current; service block {current[0].index + 1} is already current",
            block_index=row.index,
            field="is_currently_working",
            related_index=current[0].index,
        )
        for row in current[1:]
    ]


def _check_doa_value(tl: _Timeline, raw_doa: DateInput) -> list[TimelineIssue]:
    if is_blank(raw_doa):
        message, kind = "Date of Appointment is required", IssueKind.REQUIRED
    elif tl.doa is None:
        message, kind = "Date of Appointment is not a valid date", IssueKind.FORMAT
    else:
        return []
    return [
        TimelineIssue(
            kind=kind,
            code="doa_invalid" if kind == IssueKind.FORMAT else "doa_required",
            message=message,
            field="date_of_appointment",
        )
    ]


_ALL_CHECKS: tuple[Callable[[_Timeline], list[TimelineIssue]], ...] = (
    _check_dates,
    _check_doa_anchor,
    _check_predecessors,
    _check_overlaps,
    _check_incomplete,
    _check_current_unique,
)

# Checks a single field edit can change the outcome of.
_FIELD_CHECKS: dict[str, tuple[Callable[[_Timeline], list[TimelineIssue]], ...]] = {
    "from_date": (_check_dates, _check_doa_anchor, _check_predecessors, _check_overlaps),
    "status_date": (_check_dates, _check_doa_anchor, _check_predecessors, _check_overlaps),
    "to_date": (_check_dates, _check_predecessors, _check_overlaps, _check_incomplete),
    "is_currently_working": (_check_predecessors, _check_overlaps, _check_incomplete, _check_current_unique),
    "order_date": (_check_dates,),
}


def _describe(block: EmploymentBlock) -> str:
    interval = effective_interval(block)
    if interval is None:
        return "undated"
    return f"{display(interval.start)} to {display(interval.end)}"


# ---------------------------------------------------------------------------
# Auto-fill
# ---------------------------------------------------------------------------


def propose_auto_fill(history: Sequence[EmploymentBlock]) -> HistoryPatch | None:
    """Close a still-open posting that is directly followed by an exit status.

    A retirement (or any other exit) dated after an In-Service block without a
    To Date ends that posting on the exit date.
    """
    changes: list[BlockChange] = []
    for prev, cur in pairwise(_chronological(history)):
        if not is_exit(cur.block.status) or is_exit(prev.block.status):
            continue
        if not is_blank(prev.block.to_date) or cur.start is None:
            continue
        value = cur.start.isoformat()
        changes.append(
            BlockChange(
                block_index=prev.index,
                field="to_date",
                value=value,
                reason=f"Previous service To Date auto-filled as {format_display(cur.start)}",
            )
        )
        if prev.block.is_currently_working:
            changes.append(
                BlockChange(
                    block_index=prev.index,
                    field="is_currently_working",
                    value=False,
                    reason=f"Posting closed by {cur.block.status} on {format_display(cur.start)}",
                )
            )
    if not changes:
        return None
    logger.debug("Proposing auto-fill for %d block(s)", len({c.block_index for c in changes}))
    return HistoryPatch(changes=changes)


def apply_patch(history: Sequence[EmploymentBlock], patch: HistoryPatch | None) -> list[EmploymentBlock]:
    """Return a new history with the patch applied; the input is left untouched."""
    updated = list(history)
    if patch is None:
        return updated
    for change in patch.changes:
        if change.block_index >= len(updated):
            msg = f"Patch targets block {change.block_index} but history has {len(updated)} blocks"
            raise IndexError(msg)
        if change.field not in EmploymentBlock.model_fields:
            msg = f"Unknown block field {change.field!r}"
            raise ValueError(msg)
        updated[change.block_index] = updated[change.block_index].model_copy(update={change.field: change.value})
    return updated


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _run(
    doa: DateInput,
    history: Sequence[EmploymentBlock],
    checks: Sequence[Callable[[_Timeline], list[TimelineIssue]]],
) -> ValidationResult:
    patch = propose_auto_fill(history)
    tl = _Timeline.build(doa, apply_patch(history, patch))
    issues = _check_doa_value(tl, doa) if tl.rows else []
    for check in checks:
        issues.extend(check(tl))
    return ValidationResult(issues=issues, auto_fill=patch)


def validate_history(doa: DateInput, history: Sequence[EmploymentBlock]) -> ValidationResult:
    """Validate the ordering and overlap rules of a whole employment history.

    Issues are evaluated as if the proposed auto-fill (returned alongside) had
    already been applied, so a retirement that closes the last posting does not
    block the form.
    """
    return _run(doa, history, _ALL_CHECKS)


def revalidate_field(doa: DateInput, history: Sequence[EmploymentBlock], index: int, field: str) -> ValidationResult:
    """Re-run only the checks an edit of ``history[index].field`` can affect.

    Status changes and edits to descriptive fields (which decide whether a row
    counts as empty) re-run everything.
    """
    if not 0 <= index < len(history):
        msg = f"Block index {index} out of range"
        raise IndexError(msg)
    checks = _FIELD_CHECKS.get(field, _ALL_CHECKS)
    return _run(doa, history, checks)


def validate_appointment(dob: DateInput, doa: DateInput) -> list[TimelineIssue]:
    """DOA must fall at least MIN_APPOINTMENT_AGE_YEARS after the date of birth."""
    issues: list[TimelineIssue] = []
    if is_blank(dob):
        issues.append(
            TimelineIssue(kind=IssueKind.REQUIRED, code="dob_required", message="Date of Birth is required", field="dob")
        )
        return issues
    birth = to_date(dob)
    if birth is None:
        issues.append(TimelineIssue(kind=IssueKind.FORMAT, code="invalid_date", message="Invalid Date Format", field="dob"))
        return issues
    appointed = to_date(doa)
    if appointed is not None and appointed < add_years(birth, MIN_APPOINTMENT_AGE_YEARS):
        issues.append(
            TimelineIssue(
                kind=IssueKind.SEQUENCING,
                code="appointment_below_minimum_age",
                message=f"DOA must be at least {MIN_APPOINTMENT_AGE_YEARS} years after DOB",
                field="date_of_appointment",
            )
        )
    return issues


def validate_nested(history: Sequence[EmploymentBlock]) -> list[TimelineIssue]:
    """Leave and disciplinary action issues of every non-empty block."""
    issues: list[TimelineIssue] = []
    for index, block in enumerate(history):
        if is_empty_block(block):
            continue
        issues.extend(validate_leaves(block, index))
        issues.extend(validate_disciplinary_actions(block, index))
    return issues


def finalize_history(history: Sequence[EmploymentBlock], patch: HistoryPatch | None) -> list[EmploymentBlock]:
    """Apply an accepted auto-fill and re-derive leave day counts for storage."""
    return [recount_leave_days(block) for block in apply_patch(history, patch)]


def validate_employee(employee: Employee) -> ValidationResult:
    """Full pre-submit pass: timeline, appointment age, leaves and disciplinary actions."""
    result = validate_history(employee.date_of_appointment, employee.employment_history)
    issues = list(result.issues)
    if not is_blank(employee.dob) or employee.employment_history:
        issues.extend(validate_appointment(employee.dob, employee.date_of_appointment))
    issues.extend(validate_nested(apply_patch(employee.employment_history, result.auto_fill)))
    return ValidationResult(issues=issues, auto_fill=result.auto_fill)


def prepare_loaded_history(history: Sequence[EmploymentBlock]) -> list[EmploymentBlock]:
    """Shape a freshly loaded history for editing.

    Dates are normalised to ISO, blocks sorted oldest first by effective start
    and stored leaves clamped into their block.
    """
    normalised: list[EmploymentBlock] = []
    for block in history:
        updates: dict[str, Any] = {}
        for field in _BLOCK_DATE_FIELDS:
            raw = getattr(block, field)
            if raw is not None:
                updates[field] = normalize_date(raw) or None
        normalised.append(clamp_leaves(block.model_copy(update=updates)))
    return sorted(normalised, key=sort_key)


# ---------------------------------------------------------------------------
# Adding and removing form rows
# ---------------------------------------------------------------------------


def new_service_block(history: Sequence[EmploymentBlock]) -> HistoryEdit:
    """Append an empty In-Service row, defaulting its From Date to the last block's To Date."""
    if any(block.is_currently_working for block in history):
        return HistoryEdit(
            issues=[
                TimelineIssue(
                    kind=IssueKind.ELIGIBILITY,
                    code="current_posting_exists",
                    message="Cannot add another service while an active/current posting exists",
                    field="employment_history",
                )
            ]
        )
    if history:
        last_index = len(history) - 1
        last = history[last_index]
        if last.status == EmploymentStatus.IN_SERVICE and is_blank(last.to_date):
            return HistoryEdit(
                issues=[
                    TimelineIssue(
                        kind=IssueKind.INCOMPLETENESS,
                        code="missing_to_date",
                        message=(
                            "To Date is required or mark as Current Posting before adding another service block"
                        ),
                        block_index=last_index,
                        field="to_date",
                    )
                ]
            )
        default_from = normalize_date(last.to_date) or None
    else:
        default_from = None
    return HistoryEdit(history=[*history, EmploymentBlock(from_date=default_from)])


def remove_block(history: Sequence[EmploymentBlock], index: int) -> HistoryEdit:
    """Drop an unsaved row. Persisted blocks are never deleted from the form."""
    if not 0 <= index < len(history):
        msg = f"Block index {index} out of range"
        raise IndexError(msg)
    if history[index].id:
        return HistoryEdit(
            issues=[
                TimelineIssue(
                    kind=IssueKind.ELIGIBILITY,
                    code="block_persisted",
                    message="Saved service records cannot be removed",
                    block_index=index,
                    field="id",
                )
            ]
        )
    if len(history) <= 1:
        return HistoryEdit(
            issues=[
                TimelineIssue(
                    kind=IssueKind.ELIGIBILITY,
                    code="last_block",
                    message="At least one service record is required",
                    block_index=index,
                    field="id",
                )
            ]
        )
    return HistoryEdit(history=[block for i, block in enumerate(history) if i != index])
