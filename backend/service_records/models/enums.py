from __future__ import annotations

import enum


class EmploymentStatus(enum.StrEnum):
    """Status of a single employment block."""

    IN_SERVICE = "In-Service"
    RETIRED = "Retired"
    RESIGNED = "Resigned"
    TERMINATED = "Terminated"
    SUSPENDED = "Suspended"
    OSD = "OSD"
    DEPUTATION = "Deputation"
    ABSENT = "Absent"
    REMOVE = "Remove"
    DECEASED = "Deceased"


class StatusKind(enum.StrEnum):
    """Whether a status is stored as a date range or as a single status date."""

    RANGED = "RANGED"
    EXIT = "EXIT"


class BoundaryMode(enum.StrEnum):
    """How intervals that share an endpoint are treated by the overlap detector."""

    TOUCHING_ALLOWED = "touchingAllowed"
    TOUCHING_OVERLAPS = "touchingOverlaps"


class LeaveType(enum.StrEnum):
    """Kinds of leave recorded against an employment block."""

    CASUAL = "Casual Leave"
    EARNED = "Earned Leave"
    MEDICAL = "Medical Leave"
    MATERNITY = "Maternity Leave"
    PATERNITY = "Paternity Leave"
    EX_PAKISTAN = "Ex-Pakistan Leave"
    STUDY = "Study Leave"
    HAJJ = "Hajj Leave"
    ITAQAF = "Itaqaf Leave"
    SPECIAL_CASUAL = "Special Casual Leave"


class InquiryStatus(enum.StrEnum):
    """State of a disciplinary inquiry."""

    PENDING = "Pending"
    DECIDED = "Decided"


class IssueKind(enum.StrEnum):
    """Category of a timeline rule violation."""

    FORMAT = "FORMAT"
    REQUIRED = "REQUIRED"
    OVERLAP = "OVERLAP"
    SEQUENCING = "SEQUENCING"
    INCOMPLETENESS = "INCOMPLETENESS"
    ELIGIBILITY = "ELIGIBILITY"
    BOUNDS = "BOUNDS"


class LifecycleOperation(enum.StrEnum):
    """Operations that splice new blocks into an employment history."""

    TRANSFER = "TRANSFER"
    REJOIN = "REJOIN"
    SUCCESSION = "SUCCESSION"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    EMPLOYEE = "EMPLOYEE"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    TRANSFER = "TRANSFER"
    REJOIN = "REJOIN"
    SUCCESSION = "SUCCESSION"
