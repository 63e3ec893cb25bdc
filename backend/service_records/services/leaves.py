"""Rules for the leave periods and disciplinary actions nested inside a block.

Leaves are stricter than blocks: two leaves that share a single day already
overlap, since a leave day cannot be booked twice.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from service_records.models.enums import BoundaryMode, EmploymentStatus, InquiryStatus, IssueKind
from service_records.schemas.timeline import TimelineIssue
from service_records.services.calendar import days_between_inclusive, display, is_blank, is_malformed, to_date
from service_records.services.intervals import Interval, find_all_overlapping_pairs
from service_records.services.status_policy import effective_interval

if TYPE_CHECKING:
    from service_records.schemas.employment import EmploymentBlock, Leave


def can_attach_children(block: EmploymentBlock) -> bool:
    """Only In-Service blocks may carry leaves and disciplinary actions."""
    return block.status == EmploymentStatus.IN_SERVICE


def leave_days(leave: Leave) -> int:
    """Inclusive day count of a leave, 0 while either date is missing or invalid."""
    start = to_date(leave.start_date)
    end = to_date(leave.end_date)
    if start is None or end is None:
        return 0
    return days_between_inclusive(start, end)


def recount_leave_days(block: EmploymentBlock) -> EmploymentBlock:
    """Copy of the block with every leave's ``days`` re-derived from its dates."""
    if not block.leaves:
        return block
    leaves = [leave.model_copy(update={"days": leave_days(leave)}) for leave in block.leaves]
    return block.model_copy(update={"leaves": leaves})


def validate_leaves(block: EmploymentBlock, block_index: int) -> list[TimelineIssue]:
    """Check every leave of one block.

    Leave issues use ``related_index`` for the other leave of an overlapping pair.
    """
    issues: list[TimelineIssue] = []
    if block.leaves and not can_attach_children(block):
        issues.append(
            TimelineIssue(
                kind=IssueKind.ELIGIBILITY,
                code="leaves_on_exit_block",
                message="Leaves can only be added for services with status In-Service",
                block_index=block_index,
                field="leaves",
            )
        )

    bounds = effective_interval(block)
    intervals: list[Interval | None] = []
    for li, leave in enumerate(block.leaves):
        prefix = f"leaves[{li}]"
        intervals.append(None)

        if is_blank(leave.start_date) or is_blank(leave.end_date):
            issues.append(
                TimelineIssue(
                    kind=IssueKind.REQUIRED,
                    code="leave_dates_required",
                    message="Leave start and end dates are required",
                    block_index=block_index,
                    field=f"{prefix}.dates",
                )
            )
            continue

        start = to_date(leave.start_date)
        end = to_date(leave.end_date)
        for field, parsed in (("start_date", start), ("end_date", end)):
            if parsed is None:
                issues.append(
                    TimelineIssue(
                        kind=IssueKind.FORMAT,
                        code="invalid_date",
                        message="Invalid date format",
                        block_index=block_index,
                        field=f"{prefix}.{field}",
                    )
                )
        if start is None or end is None:
            continue

        if start > end:
            issues.append(
                TimelineIssue(
                    kind=IssueKind.SEQUENCING,
                    code="leave_end_before_start",
                    message="Leave start must be before or equal to end",
                    block_index=block_index,
                    field=f"{prefix}.end_date",
                )
            )
            continue

        if bounds is not None:
            if start < bounds.lower():
                issues.append(
                    TimelineIssue(
                        kind=IssueKind.BOUNDS,
                        code="leave_starts_before_block",
                        message=f"Leave start is before service start ({display(bounds.start)})",
                        block_index=block_index,
                        field=f"{prefix}.start_date",
                    )
                )
            if bounds.end is not None and end > bounds.end:
                issues.append(
                    TimelineIssue(
                        kind=IssueKind.BOUNDS,
                        code="leave_ends_after_block",
                        message=f"Leave end is after service end ({display(bounds.end)})",
                        block_index=block_index,
                        field=f"{prefix}.end_date",
                    )
                )

        intervals[li] = Interval(start, end)

    for i, j in find_all_overlapping_pairs(intervals, BoundaryMode.TOUCHING_OVERLAPS):
        current = block.leaves[j]
        other = block.leaves[i]
        issues.append(
            TimelineIssue(
                kind=IssueKind.OVERLAP,
                code="leave_overlap",
                message=(
                    f"This leave ({display(current.start_date)} to {display(current.end_date)}) overlaps with "
                    f"Leave {i + 1} ({display(other.start_date)} to {display(other.end_date)}). "
                    "Leaves cannot overlap."
                ),
                block_index=block_index,
                field=f"leaves[{j}].overlap",
                related_index=i,
            )
        )
    return issues


def validate_disciplinary_actions(block: EmploymentBlock, block_index: int) -> list[TimelineIssue]:
    issues: list[TimelineIssue] = []
    if block.disciplinary_actions and not can_attach_children(block):
        issues.append(
            TimelineIssue(
                kind=IssueKind.ELIGIBILITY,
                code="disciplinary_on_exit_block",
                message="Disciplinary actions can only be added for services with status In-Service",
                block_index=block_index,
                field="disciplinary_actions",
            )
        )

    for ai, action in enumerate(block.disciplinary_actions):
        prefix = f"disciplinary_actions[{ai}]"
        for field in ("hearing_date", "decision_date", "action_date"):
            if is_malformed(getattr(action, field)):
                issues.append(
                    TimelineIssue(
                        kind=IssueKind.FORMAT,
                        code="invalid_date",
                        message="Invalid date format",
                        block_index=block_index,
                        field=f"{prefix}.{field}",
                    )
                )
        if is_blank(action.action_date):
            issues.append(
                TimelineIssue(
                    kind=IssueKind.REQUIRED,
                    code="action_date_required",
                    message="Action Date is required",
                    block_index=block_index,
                    field=f"{prefix}.action_date",
                )
            )
        if action.inquiry_status == InquiryStatus.DECIDED:
            if is_blank(action.decision_date):
                issues.append(
                    TimelineIssue(
                        kind=IssueKind.REQUIRED,
                        code="decision_date_required",
                        message="Decision Date is required when the inquiry is decided",
                        block_index=block_index,
                        field=f"{prefix}.decision_date",
                    )
                )
            if not action.decision.strip():
                issues.append(
                    TimelineIssue(
                        kind=IssueKind.REQUIRED,
                        code="decision_required",
                        message="Decision is required when the inquiry is decided",
                        block_index=block_index,
                        field=f"{prefix}.decision",
                    )
                )
    return issues


def clamp_leaves(block: EmploymentBlock) -> EmploymentBlock:
    """Snap stored leave dates into the block's bounds and re-derive their day counts.

    Applied to persisted data on load so legacy records open cleanly. Edits made
    afterwards go through validate_leaves, which rejects instead of clamping.
    """
    bounds = effective_interval(block)
    clamped: list[Leave] = []
    for leave in block.leaves:
        start = to_date(leave.start_date)
        end = to_date(leave.end_date)
        if start is None or end is None:
            clamped.append(leave.model_copy(update={"days": 0}))
            continue

        if bounds is not None:
            low, high = bounds.lower(), bounds.upper()
            start = min(max(start, low), high)
            end = min(max(end, low), high)
        end = max(end, start)

        clamped.append(
            leave.model_copy(
                update={
                    "start_date": start.isoformat(),
                    "end_date": end.isoformat(),
                    "days": days_between_inclusive(start, end),
                }
            )
        )
    return block.model_copy(update={"leaves": clamped})
