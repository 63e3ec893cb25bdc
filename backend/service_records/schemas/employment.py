from __future__ import annotations

from pydantic import BaseModel, Field

from service_records.models.enums import EmploymentStatus, InquiryStatus, LeaveType

# Date fields hold raw form values (ISO "YYYY-MM-DD" or display "DD/MM/YYYY").
# They are parsed by the calendar utilities so an unparseable value surfaces
# as a FORMAT issue next to its field instead of rejecting the whole record.


class Leave(BaseModel):
    """A leave period nested inside an employment block."""

    id: str = ""
    employment_history_id: str = ""
    type: LeaveType = LeaveType.CASUAL
    start_date: str | None = None
    end_date: str | None = None
    days: int = Field(default=0, ge=0)
    remarks: str = ""


class DisciplinaryAction(BaseModel):
    """A complaint or inquiry recorded against an In-Service block."""

    id: str = ""
    employment_history_id: str = ""
    complaint_inquiry: str = ""
    allegation: str = ""
    inquiry_status: InquiryStatus = InquiryStatus.PENDING
    court_name: str | None = None
    hearing_date: str | None = None
    decision_date: str | None = None
    decision: str = ""
    action_date: str | None = None
    remarks: str = ""


class EmploymentBlock(BaseModel):
    """One posting or status period in an employee's career."""

    id: str = ""
    employee_id: str = ""
    status: EmploymentStatus = EmploymentStatus.IN_SERVICE

    from_date: str | None = None
    to_date: str | None = None
    status_date: str | None = None
    is_currently_working: bool = False

    posting_place_title: str = ""
    hq_id: str = ""
    tehsil_id: str = ""
    posting_category_id: str = ""
    unit_id: str = ""
    designation_id: str = ""
    bps: str = ""
    order_number: str = ""
    order_date: str | None = None
    status_remarks: str = ""

    leaves: list[Leave] = []
    disciplinary_actions: list[DisciplinaryAction] = []


class Employee(BaseModel):
    """The slice of an employee record the timeline engine works on."""

    id: str
    full_name: str = ""
    dob: str | None = None
    date_of_appointment: str | None = None
    employment_history: list[EmploymentBlock] = []
