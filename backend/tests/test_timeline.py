"""Tests for whole-history validation, auto-fill and form row editing."""

from __future__ import annotations

import pytest

from service_records.models.enums import EmploymentStatus, IssueKind
from service_records.schemas.employment import DisciplinaryAction, Employee, EmploymentBlock, Leave
from service_records.schemas.timeline import BlockChange, HistoryPatch
from service_records.services.timeline import (
    apply_patch,
    finalize_history,
    new_service_block,
    prepare_loaded_history,
    propose_auto_fill,
    remove_block,
    revalidate_field,
    validate_appointment,
    validate_employee,
    validate_history,
    validate_nested,
)

DOA = "2010-01-01"


def _posting(from_date: str | None, to_date: str | None = None, *, current: bool = False, **kwargs: object) -> EmploymentBlock:
    return EmploymentBlock(
        from_date=from_date,
        to_date=to_date,
        is_currently_working=current,
        posting_place_title=kwargs.pop("title", "Civil Secretariat"),
        **kwargs,
    )


def _exit(status: EmploymentStatus, status_date: str | None, **kwargs: object) -> EmploymentBlock:
    return EmploymentBlock(status=status, status_date=status_date, posting_place_title="Civil Secretariat", **kwargs)


def _codes(issues: list) -> list[str]:
    return [issue.code for issue in issues]


# ---------------------------------------------------------------------------
# Basic properties
# ---------------------------------------------------------------------------


def test_empty_history_is_valid() -> None:
    assert validate_history(DOA, []).ok


def test_all_empty_rows_are_valid() -> None:
    result = validate_history(DOA, [EmploymentBlock(), EmploymentBlock(to_date="0000-00-00")])
    assert result.ok
    assert result.auto_fill is None


def test_touching_blocks_are_valid() -> None:
    history = [
        _posting("2010-01-01", "2015-01-01"),
        _posting("2015-01-01", current=True),
    ]
    result = validate_history(DOA, history)
    assert result.ok, result.issues


def test_overlapping_blocks_reference_both_indices() -> None:
    history = [
        _posting("2010-01-01", "2016-01-01"),
        _posting("2015-01-01", "2018-01-01"),
    ]
    result = validate_history(DOA, history)
    overlaps = result.of_kind(IssueKind.OVERLAP)
    assert len(overlaps) == 1
    assert overlaps[0].block_index == 1
    assert overlaps[0].related_index == 0
    assert overlaps[0].field == "service_overlap"
    assert "01/01/2010" in overlaps[0].message


def test_history_order_does_not_matter() -> None:
    history = [
        _posting("2015-01-01", current=True),
        _posting("2010-01-01", "2015-01-01"),
    ]
    assert validate_history(DOA, history).ok


def test_display_dates_are_accepted() -> None:
    history = [_posting("01/01/2010", "01/01/2015"), _posting("01/01/2015", current=True)]
    assert validate_history("01/01/2010", history).ok


# ---------------------------------------------------------------------------
# Anchoring to the date of appointment
# ---------------------------------------------------------------------------


def test_first_block_must_start_on_doa() -> None:
    result = validate_history(DOA, [_posting("2011-01-01", current=True)])
    assert _codes(result.issues) == ["first_block_not_at_doa"]
    assert result.issues[0].kind == IssueKind.SEQUENCING


def test_block_before_doa() -> None:
    result = validate_history(DOA, [_posting("2009-06-01", "2010-01-01"), _posting("2010-01-01", current=True)])
    codes = _codes(result.issues)
    assert "starts_before_doa" in codes
    assert "doa_start_not_first" in codes


def test_duplicate_doa_start() -> None:
    history = [
        _posting("2010-01-01", "2010-01-01"),
        _posting("2010-01-01", current=True),
    ]
    result = validate_history(DOA, history)
    duplicates = [i for i in result.issues if i.code == "duplicate_doa_start"]
    assert len(duplicates) == 1
    assert duplicates[0].block_index == 1


def test_missing_doa() -> None:
    result = validate_history(None, [_posting("2010-01-01", current=True)])
    assert "doa_required" in _codes(result.issues)


# ---------------------------------------------------------------------------
# Dates and predecessors
# ---------------------------------------------------------------------------


def test_missing_and_malformed_start() -> None:
    history = [
        _posting("2010-01-01", "2011-01-01"),
        _posting(None, "2012-01-01"),
        _posting("31/02/2012", current=True),
    ]
    result = validate_history(DOA, history)
    errors = result.field_errors()
    assert errors[(1, "from_date")] == "From Date is required"
    assert result.issues[[i.key for i in result.issues].index((2, "from_date"))].kind == IssueKind.FORMAT


def test_exit_status_uses_its_own_label() -> None:
    history = [_posting("2010-01-01", "2020-01-01"), _exit(EmploymentStatus.RETIRED, None)]
    errors = validate_history(DOA, history).field_errors()
    assert errors[(1, "status_date")] == "Retirement Date is required"


def test_end_before_start() -> None:
    result = validate_history(DOA, [_posting("2010-01-01", "2009-12-31")])
    assert "ends_before_start" in _codes(result.issues)


def test_gap_between_blocks_is_allowed() -> None:
    history = [_posting("2010-01-01", "2011-01-01"), _posting("2012-01-01", current=True)]
    assert validate_history(DOA, history).ok


def test_in_service_without_end_must_be_current() -> None:
    history = [_posting("2010-01-01"), _posting("2012-01-01", current=True)]
    result = validate_history(DOA, history)
    incomplete = result.of_kind(IssueKind.INCOMPLETENESS)
    assert [(i.block_index, i.field) for i in incomplete] == [(0, "to_date")]
    assert incomplete[0].message == "To Date is required or mark as Current Posting"
    assert "predecessor_missing_end" in _codes(result.issues)


def test_only_one_current_posting() -> None:
    history = [_posting("2010-01-01", current=True), _posting("2015-01-01", current=True)]
    codes = _codes(validate_history(DOA, history).issues)
    assert "multiple_current_postings" in codes
    assert "block_overlap" in codes


def test_exit_after_closed_posting() -> None:
    history = [
        _posting("2010-01-01", "2021-01-10"),
        _exit(EmploymentStatus.RETIRED, "2021-01-10"),
    ]
    result = validate_history(DOA, history)
    assert result.ok
    assert result.auto_fill is None


def test_exit_before_predecessor_ends() -> None:
    history = [
        _posting("2010-01-01", "2021-01-10"),
        _exit(EmploymentStatus.RESIGNED, "2020-01-10"),
    ]
    codes = _codes(validate_history(DOA, history).issues)
    assert "starts_before_predecessor_ends" in codes


# ---------------------------------------------------------------------------
# Auto-fill
# ---------------------------------------------------------------------------


def test_retirement_auto_fills_previous_to_date() -> None:
    history = [
        _posting("2010-01-01"),
        _exit(EmploymentStatus.RETIRED, "2021-01-10"),
    ]
    patch = propose_auto_fill(history)
    assert patch is not None
    assert patch.changes[0].block_index == 0
    assert patch.changes[0].field == "to_date"
    assert patch.changes[0].value == "2021-01-10"

    result = validate_history(DOA, history)
    assert result.ok, result.issues
    assert result.auto_fill == patch
    assert history[0].to_date is None

    applied = apply_patch(history, result.auto_fill)
    assert applied[0].to_date == "2021-01-10"
    assert validate_history(DOA, applied).auto_fill is None


def test_auto_fill_closes_current_posting() -> None:
    history = [
        _posting("2010-01-01", current=True),
        _exit(EmploymentStatus.DECEASED, "2019-05-05"),
    ]
    patch = propose_auto_fill(history)
    assert patch is not None
    assert {(c.field, c.value) for c in patch.changes} == {("to_date", "2019-05-05"), ("is_currently_working", False)}
    assert validate_history(DOA, history).ok


def test_no_auto_fill_without_following_exit() -> None:
    assert propose_auto_fill([_posting("2010-01-01"), _posting("2012-01-01", current=True)]) is None


def test_apply_patch_rejects_unknown_targets() -> None:
    with pytest.raises(IndexError):
        apply_patch([], HistoryPatch(changes=[BlockChange(block_index=0, field="to_date", value="2020-01-01")]))
    with pytest.raises(ValueError):
        apply_patch([_posting("2010-01-01")], HistoryPatch(changes=[BlockChange(block_index=0, field="nope", value=None)]))


# ---------------------------------------------------------------------------
# Incremental re-validation
# ---------------------------------------------------------------------------


def test_revalidate_field_limits_checks() -> None:
    history = [_posting("2010-01-01"), _posting("2012-01-01", "2011-01-01")]
    result = revalidate_field(DOA, history, 1, "order_date")
    assert "missing_to_date" not in _codes(result.issues)
    assert "ends_before_start" in _codes(result.issues)

    full = revalidate_field(DOA, history, 1, "posting_place_title")
    assert "missing_to_date" in _codes(full.issues)


def test_revalidate_field_bad_index() -> None:
    with pytest.raises(IndexError):
        revalidate_field(DOA, [], 0, "from_date")


# ---------------------------------------------------------------------------
# Appointment, full employee pass and loading
# ---------------------------------------------------------------------------


def test_validate_appointment_minimum_age() -> None:
    assert validate_appointment("1992-01-01", DOA) == []
    issues = validate_appointment("1995-01-02", DOA)
    assert _codes(issues) == ["appointment_below_minimum_age"]
    assert _codes(validate_appointment(None, DOA)) == ["dob_required"]
    assert _codes(validate_appointment("32/01/1990", DOA)) == ["invalid_date"]


def test_validate_employee_includes_children() -> None:
    employee = Employee(
        id="e-1",
        dob="1985-04-12",
        date_of_appointment=DOA,
        employment_history=[
            _posting(
                "2010-01-01",
                current=True,
                leaves=[Leave(start_date="2009-12-01", end_date="2010-01-05")],
                disciplinary_actions=[DisciplinaryAction(inquiry_status="Decided", action_date="2011-01-01")],
            )
        ],
    )
    codes = _codes(validate_employee(employee).issues)
    assert "leave_starts_before_block" in codes
    assert "decision_date_required" in codes
    assert "decision_required" in codes


def test_validate_nested_skips_empty_rows() -> None:
    stray = Leave(start_date="2009-12-01", end_date="2010-01-05")
    history = [EmploymentBlock(leaves=[stray]), _posting("2010-01-01", current=True, leaves=[stray])]
    assert [(i.code, i.block_index) for i in validate_nested(history)] == [("leave_starts_before_block", 1)]


def test_finalize_history_applies_patch_and_recounts_leaves() -> None:
    history = [
        _posting("2010-01-01", leaves=[Leave(start_date="2020-03-01", end_date="2020-03-10", days=999)]),
        _exit(EmploymentStatus.RETIRED, "2021-01-10"),
    ]
    patch = validate_history(DOA, history).auto_fill
    final = finalize_history(history, patch)
    assert final[0].to_date == "2021-01-10"
    assert final[0].leaves[0].days == 10
    assert history[0].leaves[0].days == 999


def test_prepare_loaded_history_sorts_and_clamps() -> None:
    history = [
        _posting("01/01/2015", "0000-00-00", current=True),
        _posting(
            "2010-01-01",
            "31/12/2014",
            leaves=[Leave(start_date="2014-12-20", end_date="2015-01-10", days=3)],
        ),
    ]
    prepared = prepare_loaded_history(history)
    assert [b.from_date for b in prepared] == ["2010-01-01", "2015-01-01"]
    assert prepared[0].to_date == "2014-12-31"
    assert prepared[1].to_date is None
    assert prepared[0].leaves[0].end_date == "2014-12-31"
    assert prepared[0].leaves[0].days == 12


# ---------------------------------------------------------------------------
# Adding and removing rows
# ---------------------------------------------------------------------------


def test_new_block_defaults_from_previous_end() -> None:
    edit = new_service_block([_posting("2010-01-01", "2015-01-01")])
    assert edit.ok
    assert edit.history is not None
    assert edit.history[-1].from_date == "2015-01-01"
    assert edit.history[-1].status == EmploymentStatus.IN_SERVICE


def test_new_block_refused_while_current_posting_exists() -> None:
    edit = new_service_block([_posting("2010-01-01", current=True)])
    assert not edit.ok
    assert edit.issues[0].code == "current_posting_exists"


def test_new_block_refused_when_latest_incomplete() -> None:
    edit = new_service_block([_posting("2010-01-01")])
    assert edit.issues[0].kind == IssueKind.INCOMPLETENESS


def test_new_block_on_empty_history() -> None:
    edit = new_service_block([])
    assert edit.history == [EmploymentBlock()]


def test_remove_block_rules() -> None:
    saved = _posting("2010-01-01", "2015-01-01", id="b-1")
    draft = EmploymentBlock()
    assert remove_block([saved, draft], 1).history == [saved]
    assert remove_block([saved, draft], 0).issues[0].code == "block_persisted"
    assert remove_block([draft], 0).issues[0].code == "last_block"
    with pytest.raises(IndexError):
        remove_block([draft], 1)
