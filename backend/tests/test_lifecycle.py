"""Tests for transfer, rejoin and succession."""

from __future__ import annotations

from datetime import date

from service_records.models.enums import EmploymentStatus, IssueKind, LifecycleOperation
from service_records.schemas.employment import Employee, EmploymentBlock, Leave
from service_records.schemas.lifecycle import RejoinPayload, SuccessionPayload, TransferPayload
from service_records.services.lifecycle import find_rejoin_candidate, preview_rejoin, rejoin, succession, transfer
from service_records.services.timeline import validate_history

DOA = "2010-01-01"


def _employee(*blocks: EmploymentBlock) -> Employee:
    return Employee(id="emp-1", full_name="Ayesha Khan", dob="1985-04-12", date_of_appointment=DOA, employment_history=list(blocks))


def _posting(from_date: str, to_date: str | None = None, *, current: bool = False, **kwargs: object) -> EmploymentBlock:
    defaults: dict[str, object] = {
        "posting_place_title": "Sessions Court Lahore",
        "hq_id": "hq-1",
        "tehsil_id": "t-1",
        "posting_category_id": "cat-court",
        "unit_id": "u-1",
        "designation_id": "des-clerk",
        "bps": "11",
    }
    defaults.update(kwargs)
    return EmploymentBlock(from_date=from_date, to_date=to_date, is_currently_working=current, **defaults)


def _exit(status: EmploymentStatus, status_date: str, **kwargs: object) -> EmploymentBlock:
    return EmploymentBlock(status=status, status_date=status_date, posting_place_title="Sessions Court Lahore", **kwargs)


def _transfer_payload(**overrides: object) -> TransferPayload:
    data: dict[str, object] = {
        "relieving_date": "2018-03-31",
        "joining_date": "2018-04-02",
        "hq_id": "hq-2",
        "tehsil_id": "t-9",
        "posting_category_id": "cat-court",
        "unit_id": "u-4",
        "posting_place_title": "Civil Court Multan",
        "designation_id": "des-clerk",
        "bps": "14",
        "order_number": "ORD-118",
        "order_date": "20/03/2018",
    }
    data.update(overrides)
    return TransferPayload(**data)


def _never(_: str) -> bool:
    return False


# ---------------------------------------------------------------------------
# Transfer
# ---------------------------------------------------------------------------


def test_transfer_closes_current_and_prepends_new_posting() -> None:
    employee = _employee(_posting("2010-01-01", "2015-01-01"), _posting("2015-01-01", current=True))
    outcome = transfer(employee, _transfer_payload())

    assert outcome.ok, outcome.issues
    assert outcome.operation == LifecycleOperation.TRANSFER
    history = outcome.history
    assert history is not None
    assert len(history) == 3
    new, first, closed = history
    assert new.from_date == "2018-04-02"
    assert new.status_date == "2018-04-02"
    assert new.is_currently_working is True
    assert new.to_date is None
    assert new.order_date == "2018-03-20"
    assert new.posting_place_title == "Civil Court Multan"
    assert first.to_date == "2015-01-01"
    assert closed.to_date == "2018-03-31"
    assert closed.is_currently_working is False
    assert validate_history(DOA, history).ok

    # input untouched
    assert employee.employment_history[1].is_currently_working is True
    assert employee.employment_history[1].to_date is None


def test_transfer_same_day_joining() -> None:
    employee = _employee(_posting("2010-01-01", current=True))
    outcome = transfer(employee, _transfer_payload(relieving_date="2018-03-31", joining_date="2018-03-31"))
    assert outcome.ok, outcome.issues


def test_transfer_on_retired_only_history_is_ineligible() -> None:
    employee = _employee(_exit(EmploymentStatus.RETIRED, "2010-01-01"))
    before = employee.model_dump()
    outcome = transfer(employee, _transfer_payload())
    assert not outcome.ok
    assert outcome.history is None
    assert [i.kind for i in outcome.issues] == [IssueKind.ELIGIBILITY]
    assert employee.model_dump() == before


def test_transfer_requires_new_posting_fields() -> None:
    employee = _employee(_posting("2010-01-01", current=True))
    outcome = transfer(employee, _transfer_payload(hq_id="", order_number="  ", order_date=None))
    fields = {i.field for i in outcome.issues if i.kind == IssueKind.REQUIRED}
    assert fields == {"hq_id", "order_number", "order_date"}


def test_transfer_date_ordering() -> None:
    employee = _employee(_posting("2010-01-01", "2015-01-01"), _posting("2015-01-01", current=True))

    early = transfer(employee, _transfer_payload(relieving_date="2014-12-31", joining_date="2015-01-02"))
    assert "relieving_before_posting_start" in [i.code for i in early.issues]
    assert "relieving_inside_block" in [i.code for i in early.issues]

    backwards = transfer(employee, _transfer_payload(relieving_date="2018-03-31", joining_date="2018-03-30"))
    assert [i.code for i in backwards.issues] == ["joining_before_relieving"]


def test_transfer_non_current_requires_to_date() -> None:
    employee = _employee(_posting("2010-01-01", current=True))
    outcome = transfer(employee, _transfer_payload(mark_as_current=False))
    assert [i.kind for i in outcome.issues] == [IssueKind.INCOMPLETENESS]

    closed = transfer(employee, _transfer_payload(mark_as_current=False, to_date="2019-01-01"))
    assert closed.ok, closed.issues
    assert closed.history is not None
    assert closed.history[0].to_date == "2019-01-01"
    assert closed.history[0].is_currently_working is False


def test_transfer_with_two_current_postings_is_ineligible() -> None:
    employee = _employee(_posting("2010-01-01", current=True), _posting("2012-01-01", current=True))
    outcome = transfer(employee, _transfer_payload())
    assert outcome.issues[0].code == "no_current_posting"


# ---------------------------------------------------------------------------
# Rejoin
# ---------------------------------------------------------------------------


def _suspended_employee() -> Employee:
    return _employee(
        _posting("2010-01-01", "2020-06-01"),
        _exit(EmploymentStatus.SUSPENDED, "2020-06-01", id="blk-2"),
    )


def test_find_rejoin_candidate() -> None:
    assert find_rejoin_candidate(_suspended_employee().employment_history) == 1
    retired = _employee(_posting("2010-01-01", "2020-06-01"), _exit(EmploymentStatus.RETIRED, "2020-06-01"))
    assert find_rejoin_candidate(retired.employment_history) is None
    assert find_rejoin_candidate(_employee(_posting("2010-01-01", current=True)).employment_history) is None


def test_preview_rejoin_absent_days() -> None:
    preview = preview_rejoin(_suspended_employee(), date(2020, 7, 1))
    assert preview is not None
    assert preview.prev_index == 1
    assert preview.prev_block_id == "blk-2"
    assert preview.prev_status == EmploymentStatus.SUSPENDED
    assert preview.rejoin_date == "2020-07-01"
    assert preview.absent_days == 30
    assert preview.posting_place_title == "Sessions Court Lahore"


def test_preview_rejoin_explicit_date_and_prefill_fallback() -> None:
    employee = _employee(
        _posting("2010-01-01", "2020-06-01"),
        EmploymentBlock(status=EmploymentStatus.ABSENT, status_date="2020-06-01", hq_id="x"),
    )
    preview = preview_rejoin(employee, date(2025, 1, 1), "2020-06-11")
    assert preview is not None
    assert preview.absent_days == 10
    assert preview.hq_id == "hq-1"
    assert preview_rejoin(employee, date(2020, 6, 1)).absent_days == 0  # type: ignore[union-attr]


def test_rejoin_appends_in_service_block() -> None:
    employee = _suspended_employee()
    outcome = rejoin(
        employee,
        RejoinPayload(rejoin_date="01/07/2020", posting_place_title="Sessions Court Lahore", order_number="R-7"),
    )
    assert outcome.ok, outcome.issues
    history = outcome.history
    assert history is not None
    assert history[1].to_date == "2020-06-30"
    assert history[-1].status == EmploymentStatus.IN_SERVICE
    assert history[-1].from_date == "2020-07-01"
    assert history[-1].is_currently_working is True
    assert employee.employment_history[1].to_date is None


def test_rejoin_must_follow_exit() -> None:
    outcome = rejoin(_suspended_employee(), RejoinPayload(rejoin_date="2020-06-01", posting_place_title="X"))
    assert [i.code for i in outcome.issues] == ["rejoin_not_after_exit"]


def test_rejoin_after_retirement_is_ineligible() -> None:
    employee = _employee(_posting("2010-01-01", "2020-06-01"), _exit(EmploymentStatus.RETIRED, "2020-06-01"))
    outcome = rejoin(employee, RejoinPayload(rejoin_date="2021-01-01", posting_place_title="X"))
    assert outcome.issues[0].kind == IssueKind.ELIGIBILITY
    assert "Retired" in outcome.issues[0].message


def test_rejoin_collision_is_rejected_whole() -> None:
    employee = _employee(
        _posting("2010-01-01", "2020-06-01"),
        _exit(EmploymentStatus.DEPUTATION, "2020-06-01"),
        _posting("2020-08-01", "2020-09-01", posting_place_title="Stray"),
        _exit(EmploymentStatus.ABSENT, "2021-01-01"),
    )
    outcome = rejoin(employee, RejoinPayload(rejoin_date="2021-02-01", posting_place_title="X"))
    assert not outcome.ok
    assert outcome.history is None


# ---------------------------------------------------------------------------
# Succession
# ---------------------------------------------------------------------------


def test_succession_replaces_title_only() -> None:
    employee = _employee(_posting("2010-01-01", current=True, bps="16"))
    outcome = succession(
        employee,
        SuccessionPayload(relieving_date="2019-01-01", joining_date="2019-01-01", new_posting_place_title="Senior Clerk Seat"),
        is_judicial_officer=_never,
        is_office_category=_never,
    )
    assert outcome.ok, outcome.issues
    history = outcome.history
    assert history is not None
    closed, new = history
    assert closed.to_date == "2019-01-01"
    assert closed.is_currently_working is False
    assert new.posting_place_title == "Senior Clerk Seat"
    assert new.bps == "16"
    assert new.hq_id == "hq-1"
    assert new.from_date == "2019-01-01"
    assert new.is_currently_working is True
    assert new.id == ""


def test_succession_eligibility_filters() -> None:
    employee = _employee(_posting("2010-01-01", current=True))
    payload = SuccessionPayload(relieving_date="2019-01-01", joining_date="2019-01-01", new_posting_place_title="Seat")

    judicial = succession(employee, payload, is_judicial_officer=lambda _: True, is_office_category=_never)
    assert judicial.issues[0].code == "judicial_officer"

    office = succession(employee, payload, is_judicial_officer=_never, is_office_category=lambda _: True)
    assert office.issues[0].code == "office_category"


def test_succession_requires_dates_and_title() -> None:
    employee = _employee(_posting("2010-01-01", current=True))
    outcome = succession(employee, SuccessionPayload(), is_judicial_officer=_never, is_office_category=_never)
    assert {i.field for i in outcome.issues} == {"relieving_date", "joining_date", "new_posting_place_title"}
    assert all(i.kind == IssueKind.REQUIRED for i in outcome.issues)


# ---------------------------------------------------------------------------
# Nested records
# ---------------------------------------------------------------------------


def _on_leave_in_march_2020() -> Employee:
    leave = Leave(start_date="2020-03-01", end_date="2020-03-10", days=999)
    return _employee(_posting("2010-01-01", current=True, leaves=[leave]))


def test_transfer_rejected_when_leave_outlives_relieving_date() -> None:
    employee = _on_leave_in_march_2020()
    outcome = transfer(employee, _transfer_payload(relieving_date="2020-02-01", joining_date="2020-02-01"))

    assert not outcome.ok
    assert outcome.history is None
    assert [(i.code, i.block_index) for i in outcome.issues] == [("leave_ends_after_block", 1)]
    assert employee.employment_history[0].to_date is None


def test_succession_rejected_when_leave_outlives_relieving_date() -> None:
    outcome = succession(
        _on_leave_in_march_2020(),
        SuccessionPayload(relieving_date="2020-02-01", joining_date="2020-02-01", new_posting_place_title="Seat"),
        is_judicial_officer=_never,
        is_office_category=_never,
    )

    assert not outcome.ok
    assert [(i.code, i.block_index) for i in outcome.issues] == [("leave_ends_after_block", 0)]


def test_transfer_keeps_contained_leaves_with_derived_days() -> None:
    outcome = transfer(_on_leave_in_march_2020(), _transfer_payload(relieving_date="2020-06-30", joining_date="2020-07-01"))

    assert outcome.ok, outcome.issues
    assert outcome.history is not None
    closed = outcome.history[1]
    assert closed.to_date == "2020-06-30"
    assert [leave.days for leave in closed.leaves] == [10]
