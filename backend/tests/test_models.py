from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import select

from service_records.models import AuditLog, SQLModel
from service_records.models.enums import AuditAction, AuditEntityType
from service_records.schemas.employment import Employee, EmploymentBlock
from service_records.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def test_audit_table_registered() -> None:
    assert "audit_log" in SQLModel.metadata.tables
    indexes = {index.name for index in SQLModel.metadata.tables["audit_log"].indexes}
    assert "ix_audit_entity" in indexes


def test_audit_log_instantiation() -> None:
    entry = AuditLog(actor_id=uuid.uuid4(), entity_type="EMPLOYEE", entity_id="emp-1", action="UPDATE")
    assert isinstance(entry.id, uuid.UUID)
    assert entry.before_json is None
    assert entry.created_at.tzinfo is not None


def test_model_to_audit_dict_is_json_safe() -> None:
    employee = Employee(id="emp-1", employment_history=[EmploymentBlock(from_date="2010-01-01")])
    data = model_to_audit_dict(employee)
    assert data["employment_history"][0]["status"] == "In-Service"
    assert data["employment_history"][0]["from_date"] == "2010-01-01"


async def test_write_audit_log_persists(db_session: AsyncSession) -> None:
    actor = uuid.uuid4()
    await write_audit_log(
        db_session,
        actor_id=actor,
        entity_type=AuditEntityType.EMPLOYEE,
        entity_id="emp-9",
        action=AuditAction.REJOIN,
        after_json={"id": "emp-9"},
    )
    await db_session.commit()

    result = await db_session.execute(select(AuditLog))
    entry = result.scalar_one()
    assert entry.actor_id == actor
    assert entry.action == "REJOIN"
    assert entry.after_json == {"id": "emp-9"}
