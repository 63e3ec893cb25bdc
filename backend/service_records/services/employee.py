from __future__ import annotations

from typing import Protocol, runtime_checkable

from service_records.schemas.employment import Employee


@runtime_checkable
class EmployeeRecordService(Protocol):
    """Interface for the personnel-records store that owns employee histories."""

    async def get_employee(self, employee_id: str) -> Employee | None:
        """Fetch an employee with their full employment history. Returns None if not found."""
        ...

    async def list_employees(self) -> list[Employee]:
        """List all employees."""
        ...

    async def save_employee(self, employee: Employee) -> Employee:
        """Persist an employee record, replacing any stored version (last write wins)."""
        ...


class InMemoryEmployeeRecordService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[str, Employee] = {}

    def seed(self, employee: Employee) -> None:
        """Seed an employee for testing."""
        self._employees[employee.id] = employee.model_copy(deep=True)

    async def get_employee(self, employee_id: str) -> Employee | None:
        employee = self._employees.get(employee_id)
        return employee.model_copy(deep=True) if employee is not None else None

    async def list_employees(self) -> list[Employee]:
        return [e.model_copy(deep=True) for e in sorted(self._employees.values(), key=lambda e: e.id)]

    async def save_employee(self, employee: Employee) -> Employee:
        self._employees[employee.id] = employee.model_copy(deep=True)
        return employee


_employee_record_service: EmployeeRecordService = InMemoryEmployeeRecordService()


def get_employee_record_service() -> EmployeeRecordService:
    """FastAPI dependency for the employee record store."""
    return _employee_record_service


def set_employee_record_service(service: EmployeeRecordService) -> None:
    """Override the service (for testing or production wiring)."""
    global _employee_record_service
    _employee_record_service = service
