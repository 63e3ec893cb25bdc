from sqlmodel import SQLModel

from service_records.models.audit import AuditLog
from service_records.models.base import UUIDBase
from service_records.models.enums import (
    AuditAction,
    AuditEntityType,
    BoundaryMode,
    EmploymentStatus,
    InquiryStatus,
    IssueKind,
    LeaveType,
    LifecycleOperation,
    StatusKind,
)

__all__ = [
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "BoundaryMode",
    "EmploymentStatus",
    "InquiryStatus",
    "IssueKind",
    "LeaveType",
    "LifecycleOperation",
    "SQLModel",
    "StatusKind",
    "UUIDBase",
]
