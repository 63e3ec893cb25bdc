"""Transfer, rejoin and succession.

Each operation is a pure transformation of an employee's history. The input
is never touched: a successful outcome carries a complete new history that
has already passed the full timeline validation, a failed one carries only
the issues.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from service_records.models.enums import EmploymentStatus, IssueKind, LifecycleOperation
from service_records.schemas.employment import EmploymentBlock
from service_records.schemas.timeline import LifecycleOutcome, RejoinPreview, TimelineIssue
from service_records.services.calendar import (
    DateInput,
    day_before,
    days_between_inclusive,
    format_display,
    is_blank,
    normalize_date,
    to_date,
)
from service_records.services.intervals import falls_strictly_inside
from service_records.services.status_policy import (
    REJOINABLE_STATUSES,
    effective_interval,
    effective_start,
    is_empty_block,
    is_exit,
)
from service_records.services.timeline import finalize_history, validate_history, validate_nested

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from service_records.schemas.employment import Employee
    from service_records.schemas.lifecycle import RejoinPayload, SuccessionPayload, TransferPayload

logger = logging.getLogger(__name__)

_TRANSFER_REQUIRED: dict[str, str] = {
    "hq_id": "HQ",
    "tehsil_id": "Tehsil",
    "posting_category_id": "Category",
    "unit_id": "Unit",
    "posting_place_title": "Posting Place Title",
    "designation_id": "Designation",
    "bps": "BPS",
    "order_number": "Order Number",
    "order_date": "Order Date",
}

_DESCRIPTOR_FIELDS = (
    "posting_place_title",
    "hq_id",
    "tehsil_id",
    "posting_category_id",
    "unit_id",
    "designation_id",
    "bps",
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _issue(kind: IssueKind, code: str, message: str, field: str, block_index: int | None = None) -> TimelineIssue:
    return TimelineIssue(kind=kind, code=code, message=message, block_index=block_index, field=field)


def _rejected(operation: LifecycleOperation, issues: list[TimelineIssue]) -> LifecycleOutcome:
    logger.debug("%s rejected with %d issue(s)", operation, len(issues))
    return LifecycleOutcome(operation=operation, issues=issues)


def _current_in_service(history: Sequence[EmploymentBlock]) -> int | None:
    """Index of the single current In-Service block, or None when there is not exactly one."""
    matches = [
        i
        for i, block in enumerate(history)
        if block.status == EmploymentStatus.IN_SERVICE and block.is_currently_working
    ]
    return matches[0] if len(matches) == 1 else None


def _required_date(value: DateInput, field: str, label: str, issues: list[TimelineIssue]) -> date | None:
    """Parse a mandatory payload date, recording REQUIRED or FORMAT issues."""
    if is_blank(value):
        issues.append(_issue(IssueKind.REQUIRED, f"{field}_required", f"{label} is required", field))
        return None
    parsed = to_date(value)
    if parsed is None:
        issues.append(_issue(IssueKind.FORMAT, "invalid_date", f"{label} is not a valid date", field))
    return parsed


def _strictly_inside_other(history: Sequence[EmploymentBlock], point: date, skip: int) -> int | None:
    for i, block in enumerate(history):
        if i == skip or is_empty_block(block):
            continue
        interval = effective_interval(block)
        if interval is not None and falls_strictly_inside(point, interval):
            return i
    return None


def _finish(
    operation: LifecycleOperation,
    employee: Employee,
    candidate: list[EmploymentBlock],
) -> LifecycleOutcome:
    """Validate a proposed history and accept it only when it is fully consistent.

    Closing a posting can strand its leaves past the new end, so the nested
    leave and disciplinary action rules are re-checked on the patched history.
    """
    result = validate_history(employee.date_of_appointment, candidate)
    if not result.ok:
        return _rejected(operation, result.issues)
    history = finalize_history(candidate, result.auto_fill)
    nested = validate_nested(history)
    if nested:
        return _rejected(operation, nested)
    logger.debug("%s accepted for employee %s (%d blocks)", operation, employee.id, len(history))
    return LifecycleOutcome(operation=operation, history=history, applied_patch=result.auto_fill)


# ---------------------------------------------------------------------------
# Transfer
# ---------------------------------------------------------------------------


def transfer(employee: Employee, payload: TransferPayload) -> LifecycleOutcome:
    """Close the current posting on the relieving date and open the new one first in the list."""
    op = LifecycleOperation.TRANSFER
    history = list(employee.employment_history)

    current_index = _current_in_service(history)
    if current_index is None:
        return _rejected(
            op,
            [
                _issue(
                    IssueKind.ELIGIBILITY,
                    "no_current_posting",
                    "Transfer requires exactly one current In-Service posting",
                    "employment_history",
                )
            ],
        )
    current = history[current_index]

    issues: list[TimelineIssue] = []
    relieving = _required_date(payload.relieving_date, "relieving_date", "Relieving Date", issues)
    joining = _required_date(payload.joining_date, "joining_date", "Joining Date", issues)

    for field, label in _TRANSFER_REQUIRED.items():
        value = getattr(payload, field)
        if value is None or not str(value).strip():
            issues.append(_issue(IssueKind.REQUIRED, f"{field}_required", f"{label} is required", field))
    if payload.order_date and to_date(payload.order_date) is None:
        issues.append(_issue(IssueKind.FORMAT, "invalid_date", "Order Date is not a valid date", "order_date"))

    new_to: date | None = None
    if not payload.mark_as_current:
        new_to = to_date(payload.to_date)
        if new_to is None:
            issues.append(
                _issue(
                    IssueKind.INCOMPLETENESS,
                    "missing_to_date",
                    "To Date is required or mark as Current Posting",
                    "to_date",
                )
            )

    if relieving is not None:
        current_start = effective_start(current)
        if current_start is not None and relieving < current_start:
            issues.append(
                _issue(
                    IssueKind.SEQUENCING,
                    "relieving_before_posting_start",
                    f"Relieving Date must be on/after current posting From Date ({format_display(current_start)})",
                    "relieving_date",
                    current_index,
                )
            )
        clash = _strictly_inside_other(history, relieving, current_index)
        if clash is not None:
            issues.append(
                _issue(
                    IssueKind.OVERLAP,
                    "relieving_inside_block",
                    f"Relieving Date falls inside service block {clash + 1}",
                    "relieving_date",
                    clash,
                )
            )

    if joining is not None:
        if relieving is not None and joining < relieving:
            issues.append(
                _issue(
                    IssueKind.SEQUENCING,
                    "joining_before_relieving",
                    f"Joining Date must be on/after Relieving Date ({format_display(relieving)})",
                    "joining_date",
                )
            )
        clash = _strictly_inside_other(history, joining, current_index)
        if clash is not None:
            issues.append(
                _issue(
                    IssueKind.OVERLAP,
                    "joining_inside_block",
                    f"Joining Date falls inside service block {clash + 1}",
                    "joining_date",
                    clash,
                )
            )
        if new_to is not None and new_to < joining:
            issues.append(
                _issue(
                    IssueKind.SEQUENCING,
                    "ends_before_start",
                    f"To Date must be on/after Joining Date ({format_display(joining)})",
                    "to_date",
                )
            )

    if issues or relieving is None or joining is None:
        return _rejected(op, issues)

    closed = current.model_copy(update={"to_date": relieving.isoformat(), "is_currently_working": False})
    new_block = EmploymentBlock(
        employee_id=current.employee_id,
        status=EmploymentStatus.IN_SERVICE,
        from_date=joining.isoformat(),
        status_date=joining.isoformat(),
        to_date=new_to.isoformat() if new_to is not None else None,
        is_currently_working=payload.mark_as_current,
        posting_place_title=payload.posting_place_title.strip(),
        hq_id=payload.hq_id,
        tehsil_id=payload.tehsil_id,
        posting_category_id=payload.posting_category_id,
        unit_id=payload.unit_id,
        designation_id=payload.designation_id,
        bps=payload.bps,
        order_number=payload.order_number.strip(),
        order_date=normalize_date(payload.order_date),
        status_remarks=payload.status_remarks,
    )
    history[current_index] = closed
    return _finish(op, employee, [new_block, *history])


# ---------------------------------------------------------------------------
# Rejoin
# ---------------------------------------------------------------------------


def _latest_marker(block: EmploymentBlock) -> date:
    dates = [d for d in (to_date(block.status_date), to_date(block.to_date), to_date(block.from_date)) if d]
    return max(dates) if dates else date.min


def _latest_block(history: Sequence[EmploymentBlock]) -> int | None:
    # An exit dated on the day a posting ends comes after that posting.
    rows = [i for i, block in enumerate(history) if not is_empty_block(block)]
    if not rows:
        return None
    return max(rows, key=lambda i: (_latest_marker(history[i]), is_exit(history[i].status), i))


def find_rejoin_candidate(history: Sequence[EmploymentBlock]) -> int | None:
    """Index of the exit block an employee can rejoin from.

    That is the most recent block (by the latest of its status, to and from
    dates) provided it carries a rejoinable exit status.
    """
    index = _latest_block(history)
    if index is not None and history[index].status in REJOINABLE_STATUSES:
        return index
    return None


def _rejoin_ineligible(history: Sequence[EmploymentBlock]) -> TimelineIssue:
    index = _latest_block(history)
    if index is not None and is_exit(history[index].status):
        message = f"Cannot rejoin after status {history[index].status}"
    else:
        message = "Rejoin requires the latest service record to be a rejoinable exit status"
    return _issue(IssueKind.ELIGIBILITY, "not_rejoinable", message, "employment_history")


def _absent_days(exit_date: date | None, rejoin_date: date) -> int:
    if exit_date is None or rejoin_date <= exit_date:
        return 0
    return days_between_inclusive(exit_date, day_before(rejoin_date))


def _prefill_source(history: Sequence[EmploymentBlock], exit_index: int) -> EmploymentBlock:
    """Block whose descriptors pre-fill the rejoin form.

    The exit block itself when it names a posting, otherwise the latest
    In-Service block before it.
    """
    exit_block = history[exit_index]
    if exit_block.posting_place_title.strip():
        return exit_block
    exit_start = effective_start(exit_block) or date.max
    earlier = [
        block
        for block in history
        if block.status == EmploymentStatus.IN_SERVICE
        and (effective_start(block) or date.max) <= exit_start
    ]
    if not earlier:
        return exit_block
    return max(earlier, key=lambda block: effective_start(block) or date.min)


def preview_rejoin(employee: Employee, today: date, rejoin_date: DateInput = None) -> RejoinPreview | None:
    """Default rejoin form for an exited employee, or None when there is nothing to rejoin from.

    ``today`` is the default rejoin date when none is given.
    """
    history = employee.employment_history
    index = find_rejoin_candidate(history)
    if index is None:
        return None
    prev = history[index]
    rejoin = to_date(rejoin_date) or today
    source = _prefill_source(history, index)
    return RejoinPreview(
        prev_index=index,
        prev_block_id=prev.id,
        prev_status=prev.status,
        prev_status_date=prev.status_date,
        rejoin_date=rejoin.isoformat(),
        absent_days=_absent_days(effective_start(prev), rejoin),
        **{field: getattr(source, field) for field in _DESCRIPTOR_FIELDS},
    )


def rejoin(employee: Employee, payload: RejoinPayload) -> LifecycleOutcome:
    """End the absence the day before rejoining and append a new In-Service block."""
    op = LifecycleOperation.REJOIN
    history = list(employee.employment_history)

    index = find_rejoin_candidate(history)
    if index is None:
        return _rejected(op, [_rejoin_ineligible(history)])
    prev = history[index]

    issues: list[TimelineIssue] = []
    rejoin_on = _required_date(payload.rejoin_date, "rejoin_date", "Rejoin Date", issues)
    if not payload.posting_place_title.strip():
        issues.append(
            _issue(IssueKind.REQUIRED, "posting_place_title_required", "Posting Place Title is required", "posting_place_title")
        )
    if payload.order_date and to_date(payload.order_date) is None:
        issues.append(_issue(IssueKind.FORMAT, "invalid_date", "Order Date is not a valid date", "order_date"))

    exit_date = effective_start(prev)
    if rejoin_on is not None and exit_date is not None and rejoin_on <= exit_date:
        issues.append(
            _issue(
                IssueKind.SEQUENCING,
                "rejoin_not_after_exit",
                f"Rejoin Date must be after {prev.status} date ({format_display(exit_date)})",
                "rejoin_date",
                index,
            )
        )
    if issues or rejoin_on is None:
        return _rejected(op, issues)

    history[index] = prev.model_copy(update={"to_date": day_before(rejoin_on).isoformat()})
    order_date = to_date(payload.order_date)
    new_block = EmploymentBlock(
        employee_id=prev.employee_id,
        status=EmploymentStatus.IN_SERVICE,
        from_date=rejoin_on.isoformat(),
        is_currently_working=payload.mark_as_current,
        posting_place_title=payload.posting_place_title.strip(),
        hq_id=payload.hq_id,
        tehsil_id=payload.tehsil_id,
        posting_category_id=payload.posting_category_id,
        unit_id=payload.unit_id,
        designation_id=payload.designation_id,
        bps=payload.bps,
        order_number=payload.order_number.strip(),
        order_date=order_date.isoformat() if order_date else None,
        status_remarks=payload.status_remarks,
    )
    logger.debug(
        "Rejoin after %s: %d absent day(s)",
        prev.status,
        _absent_days(exit_date, rejoin_on),
    )
    return _finish(op, employee, [*history, new_block])


# ---------------------------------------------------------------------------
# Succession
# ---------------------------------------------------------------------------


def succession(
    employee: Employee,
    payload: SuccessionPayload,
    *,
    is_judicial_officer: Callable[[str], bool],
    is_office_category: Callable[[str], bool],
) -> LifecycleOutcome:
    """Replace the posting title of the current posting from the joining date onwards.

    The classifiers receive the current block's designation id and posting
    category id respectively.
    """
    op = LifecycleOperation.SUCCESSION
    history = list(employee.employment_history)

    current_index = _current_in_service(history)
    if current_index is None:
        return _rejected(
            op,
            [
                _issue(
                    IssueKind.ELIGIBILITY,
                    "no_current_posting",
                    "Succession requires exactly one current In-Service posting",
                    "employment_history",
                )
            ],
        )
    current = history[current_index]
    if is_judicial_officer(current.designation_id):
        return _rejected(
            op,
            [
                _issue(
                    IssueKind.ELIGIBILITY,
                    "judicial_officer",
                    "Succession is not available for judicial officers",
                    "designation_id",
                    current_index,
                )
            ],
        )
    if is_office_category(current.posting_category_id):
        return _rejected(
            op,
            [
                _issue(
                    IssueKind.ELIGIBILITY,
                    "office_category",
                    "Succession is not available for office postings",
                    "posting_category_id",
                    current_index,
                )
            ],
        )

    issues: list[TimelineIssue] = []
    relieving = _required_date(payload.relieving_date, "relieving_date", "Relieving Date", issues)
    joining = _required_date(payload.joining_date, "joining_date", "Joining Date", issues)
    title = payload.new_posting_place_title.strip()
    if not title:
        issues.append(
            _issue(
                IssueKind.REQUIRED,
                "new_posting_place_title_required",
                "New Posting Place Title is required",
                "new_posting_place_title",
            )
        )
    if payload.order_date and to_date(payload.order_date) is None:
        issues.append(_issue(IssueKind.FORMAT, "invalid_date", "Order Date is not a valid date", "order_date"))

    current_start = effective_start(current)
    if relieving is not None and current_start is not None and relieving < current_start:
        issues.append(
            _issue(
                IssueKind.SEQUENCING,
                "relieving_before_posting_start",
                f"Relieving Date must be on/after current posting From Date ({format_display(current_start)})",
                "relieving_date",
                current_index,
            )
        )
    if relieving is not None and joining is not None and joining < relieving:
        issues.append(
            _issue(
                IssueKind.SEQUENCING,
                "joining_before_relieving",
                f"Joining Date must be on/after Relieving Date ({format_display(relieving)})",
                "joining_date",
            )
        )
    if issues or relieving is None or joining is None:
        return _rejected(op, issues)

    history[current_index] = current.model_copy(
        update={"to_date": relieving.isoformat(), "is_currently_working": False}
    )
    updates: dict[str, object] = {
        "id": "",
        "from_date": joining.isoformat(),
        "to_date": None,
        "status_date": None,
        "is_currently_working": True,
        "posting_place_title": title,
        "leaves": [],
        "disciplinary_actions": [],
    }
    if payload.order_number:
        updates["order_number"] = payload.order_number.strip()
    order_date = to_date(payload.order_date)
    if order_date is not None:
        updates["order_date"] = order_date.isoformat()
    new_block = current.model_copy(update=updates, deep=True)
    return _finish(op, employee, [*history, new_block])
