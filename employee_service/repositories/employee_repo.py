"""Employee repository: AsyncSession 위의 얇은 영속성 어댑터."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from employee_service.core.clock import next_version, utc_now
from employee_service.core.errors import DuplicateEmail
from employee_service.models.employee import Employee


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortKey:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class EmployeeFilters:
    """name / email 부분 일치 필터. None이나 빈 문자열이면 조건 없음."""
    name: str | None = None
    email: str | None = None


def _apply_filters(stmt, filters: EmployeeFilters):
    # autoescape: 필터 값의 % / _ 는 와일드카드가 아니라 글자 그대로 매칭
    if filters.name:
        stmt = stmt.where(Employee.employee_name.contains(filters.name, autoescape=True))
    if filters.email:
        stmt = stmt.where(Employee.employee_email.contains(filters.email, autoescape=True))
    return stmt


class EmployeeRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, employee_id: str) -> Employee | None:
        result = await self.db.execute(
            select(Employee)
            .where(Employee.employee_id == employee_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Employee | None:
        result = await self.db.execute(
            select(Employee).where(Employee.employee_email == email)
        )
        return result.scalar_one_or_none()

    async def find_many(
        self,
        filters: EmployeeFilters,
        sort_keys: Sequence[SortKey],
        skip: int,
        take: int,
    ) -> list[Employee]:
        stmt = _apply_filters(select(Employee), filters)
        for key in sort_keys:
            column = getattr(Employee, key.field)
            stmt = stmt.order_by(column.desc() if key.direction is SortDirection.DESC else column.asc())
        stmt = stmt.offset(skip).limit(take)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, filters: EmployeeFilters) -> int:
        stmt = _apply_filters(select(func.count()).select_from(Employee), filters)
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def create(self, name: str, email: str, age: int) -> Employee:
        now = utc_now()
        employee = Employee(
            employee_name=name,
            employee_email=email,
            employee_age=age,
            created_at=now,
            updated_at=now,
        )
        self.db.add(employee)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            # 사전 조회와 INSERT 사이에 같은 email이 먼저 들어온 경우
            await self.db.rollback()
            raise DuplicateEmail() from exc
        await self.db.refresh(employee)
        return employee

    async def update(
        self,
        employee_id: str,
        expected_updated_at: datetime,
        name: str,
        email: str,
        age: int,
    ) -> Employee | None:
        """
        UPDATE ... WHERE employee_id = ? AND updated_at = ?
        조건에 맞는 행이 없으면(다른 요청이 먼저 갱신/삭제) None.
        """
        stmt = (
            update(Employee)
            .where(
                Employee.employee_id == employee_id,
                Employee.updated_at == expected_updated_at,
            )
            .values(
                employee_name=name,
                employee_email=email,
                employee_age=age,
                updated_at=next_version(expected_updated_at),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                await self.db.rollback()
                return None
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateEmail() from exc

        return await self.get_by_id(employee_id)

    async def delete(self, employee_id: str, expected_updated_at: datetime) -> bool:
        """DELETE ... WHERE employee_id = ? AND updated_at = ? → 삭제 여부."""
        stmt = (
            delete(Employee)
            .where(
                Employee.employee_id == employee_id,
                Employee.updated_at == expected_updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            await self.db.rollback()
            return False
        await self.db.commit()
        return True
