"""Organization Graph: read-only view of employees and reporting lines."""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Employee
from .exceptions import EmployeeNotFoundError


@dataclass(frozen=True)
class EmployeeNode:
    """The slice of an employee the assignment engine needs."""
    id: int
    manager_id: int | None
    is_manager: bool


class OrganizationGraph:
    """Queries over the employee forest. Manager cycles are assumed absent."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_employees(self) -> list[EmployeeNode]:
        result = await self._session.execute(
            select(Employee.id, Employee.manager_id, Employee.is_manager).order_by(
                Employee.id
            )
        )
        return [
            EmployeeNode(id=row.id, manager_id=row.manager_id, is_manager=bool(row.is_manager))
            for row in result.all()
        ]

    async def list_directory(self) -> list[Employee]:
        """Full employee rows ordered by name."""
        result = await self._session.execute(
            select(Employee).order_by(Employee.name.asc(), Employee.id.asc())
        )
        return list(result.scalars().all())

    async def get_employee(self, employee_id: int) -> Employee:
        employee = await self._session.get(Employee, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(f"Employee {employee_id} not found")
        return employee

    async def direct_reports(self, manager_id: int) -> list[Employee]:
        result = await self._session.execute(
            select(Employee)
            .where(Employee.manager_id == manager_id)
            .order_by(Employee.id)
        )
        return list(result.scalars().all())
