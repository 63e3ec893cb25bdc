from __future__ import annotations

from typing import TYPE_CHECKING, Any

from service_records.models.enums import EmploymentStatus, StatusKind
from service_records.services.calendar import is_blank, to_date
from service_records.services.intervals import Interval

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from service_records.schemas.employment import EmploymentBlock

EXIT_STATUSES: frozenset[EmploymentStatus] = frozenset(
    {
        EmploymentStatus.RETIRED,
        EmploymentStatus.DECEASED,
        EmploymentStatus.RESIGNED,
        EmploymentStatus.TERMINATED,
        EmploymentStatus.SUSPENDED,
        EmploymentStatus.OSD,
        EmploymentStatus.DEPUTATION,
        EmploymentStatus.ABSENT,
        EmploymentStatus.REMOVE,
    }
)

# Exit statuses an employee can come back from. Retirement and death are final.
REJOINABLE_STATUSES: frozenset[EmploymentStatus] = frozenset(
    {
        EmploymentStatus.RESIGNED,
        EmploymentStatus.TERMINATED,
        EmploymentStatus.OSD,
        EmploymentStatus.SUSPENDED,
        EmploymentStatus.DEPUTATION,
        EmploymentStatus.ABSENT,
        EmploymentStatus.REMOVE,
    }
)

_DATE_LABELS: dict[EmploymentStatus, str] = {
    EmploymentStatus.RETIRED: "Retirement Date",
    EmploymentStatus.DECEASED: "Date of Death",
    EmploymentStatus.RESIGNED: "Resignation Date",
    EmploymentStatus.TERMINATED: "Termination Date",
    EmploymentStatus.SUSPENDED: "Suspension Date",
    EmploymentStatus.OSD: "OSD Start Date",
    EmploymentStatus.DEPUTATION: "Deputation Start Date",
    EmploymentStatus.ABSENT: "Absence Start Date",
    EmploymentStatus.REMOVE: "Removal Date",
}


def classify(status: EmploymentStatus) -> StatusKind:
    return StatusKind.EXIT if status in EXIT_STATUSES else StatusKind.RANGED


def is_exit(status: EmploymentStatus) -> bool:
    return classify(status) == StatusKind.EXIT


def required_date_label(status: EmploymentStatus) -> str:
    """Label of the single date field shown for an exit status."""
    return _DATE_LABELS.get(status, "Status Date")


def start_field(block: EmploymentBlock) -> str:
    """Name of the field holding the block's effective start."""
    return "status_date" if is_exit(block.status) else "from_date"


def start_label(block: EmploymentBlock) -> str:
    return required_date_label(block.status) if is_exit(block.status) else "From Date"


def on_status_change(block: EmploymentBlock, new_status: EmploymentStatus) -> dict[str, Any]:
    """Field updates to apply when a block's status changes.

    Moving to an exit status drops the date range and the current-posting flag;
    moving to a ranged status drops the status date.
    """
    updates: dict[str, Any] = {"status": new_status}
    if is_exit(new_status):
        updates.update(from_date=None, to_date=None, is_currently_working=False)
    else:
        updates["status_date"] = None
    return updates


def apply_status_change(block: EmploymentBlock, new_status: EmploymentStatus) -> EmploymentBlock:
    return block.model_copy(update=on_status_change(block, new_status))


def effective_start(block: EmploymentBlock) -> date | None:
    if is_exit(block.status):
        return to_date(block.status_date) or to_date(block.from_date)
    return to_date(block.from_date) or to_date(block.status_date)


def effective_interval(block: EmploymentBlock) -> Interval | None:
    """The (start, end) pair used by every overlap and sequencing rule.

    Exit blocks start on their status date and stay open until a To Date closes
    them. In-Service blocks run From Date to To Date, or stay open while marked
    as the current posting. Returns None when the block has no usable start.
    """
    start = effective_start(block)
    if start is None:
        return None
    if is_exit(block.status):
        return Interval(start, to_date(block.to_date))
    if block.is_currently_working:
        return Interval(start, None)
    return Interval(start, to_date(block.to_date))


def sequencing_end(block: EmploymentBlock) -> date | None:
    """Date a successor may start from; None while the block is still open.

    An exit block without a To Date is a point marker on its status date.
    """
    if is_exit(block.status):
        return to_date(block.to_date) or effective_start(block)
    if block.is_currently_working:
        return None
    return to_date(block.to_date)


def is_empty_block(block: EmploymentBlock) -> bool:
    """True for a freshly added form row that the user has not filled in yet."""
    return (
        not block.posting_place_title.strip()
        and not block.designation_id
        and not block.hq_id
        and is_blank(block.from_date)
        and is_blank(block.to_date)
        and is_blank(block.status_date)
    )


def set_currently_working(history: Sequence[EmploymentBlock], index: int, value: bool = True) -> list[EmploymentBlock]:
    """Mark one block as the current posting, clearing the flag everywhere else.

    The marked block loses its To Date since a current posting is open-ended.
    """
    if not 0 <= index < len(history):
        msg = f"Block index {index} out of range"
        raise IndexError(msg)
    updated: list[EmploymentBlock] = []
    for i, block in enumerate(history):
        if i == index:
            changes: dict[str, Any] = {"is_currently_working": value}
            if value:
                changes["to_date"] = None
            updated.append(block.model_copy(update=changes))
        elif value and block.is_currently_working:
            updated.append(block.model_copy(update={"is_currently_working": False}))
        else:
            updated.append(block)
    return updated
