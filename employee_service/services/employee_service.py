"""
Employee Resource Manager.

식별자 검증, 필터/정렬/페이지네이션 변환, 낙관적 락 검사를 담당하고
영속성 오류를 도메인 예외(core/errors.py)로 바꿔 올려보낸다.
HTTP 관련 지식은 없다.
"""
import functools
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from employee_service.core.clock import parse_timestamp, same_instant
from employee_service.core.errors import (
    DuplicateEmail,
    EmployeeServiceError,
    InvalidArgument,
    InvalidIdentifier,
    NotFound,
    PersistenceFailure,
    StaleVersion,
)
from employee_service.models.employee import Employee
from employee_service.repositories.employee_repo import (
    EmployeeFilters,
    EmployeeRepository,
    SortDirection,
    SortKey,
)

logger = logging.getLogger(__name__)

# 정렬 허용 필드 (wire 계약: 이름을 바꾸면 클라이언트 호환성 검토 필요)
SORTABLE_FIELDS = ("employee_name", "employee_email", "employee_age", "created_at")
DEFAULT_SORT_KEYS = (SortKey("employee_id", SortDirection.ASC),)


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int
    total: int
    total_pages: int


@dataclass(frozen=True)
class EmployeePage:
    items: list[Employee]
    pagination: Pagination


def parse_employee_id(value: str) -> str:
    """UUID 형식이면 입력을 그대로 반환, 아니면 InvalidIdentifier."""
    if not isinstance(value, str):
        raise InvalidIdentifier()
    try:
        parsed = UUID(value)
    except ValueError as exc:
        raise InvalidIdentifier() from exc
    # UUID()는 중괄호/하이픈 없는 형태도 받아주므로 표준 8-4-4-4-12 표기만 통과
    if str(parsed) != value.lower():
        raise InvalidIdentifier()
    return value


def parse_age(value) -> int:
    """int 또는 10진수 정수 문자열만 허용. 범위 검사는 하지 않는다."""
    if isinstance(value, bool):
        raise InvalidArgument("Invalid employee age")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            pass
    raise InvalidArgument("Invalid employee age")


def _require_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{field} must be a non-empty string")
    return value


def build_sort_keys(
    sort_by: Sequence[str] | None,
    order: Sequence[str] | None,
) -> list[SortKey]:
    """
    sort_by / order 를 위치 기준으로 짝지어 (field, direction) 목록을 만든다.

    - sort_by가 없으면 employee_id asc
    - order가 모자라거나 "desc"가 아니면 asc
    - 허용 목록에 없는 필드는 에러 없이 버린다
    """
    if not sort_by:
        return list(DEFAULT_SORT_KEYS)

    order = list(order or [])
    keys = []
    for index, field in enumerate(sort_by):
        if field not in SORTABLE_FIELDS:
            continue
        raw = order[index] if index < len(order) else None
        direction = SortDirection.DESC if raw == SortDirection.DESC.value else SortDirection.ASC
        keys.append(SortKey(field, direction))
    return keys


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size)


def _translate_persistence_errors(func):
    """분류되지 않은 SQLAlchemy 오류 → PersistenceFailure (서버 로그에 traceback)."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except EmployeeServiceError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Database error in %s", func.__name__)
            raise PersistenceFailure() from exc

    return wrapper


class EmployeeService:
    def __init__(self, repository: EmployeeRepository) -> None:
        self.repository = repository

    @_translate_persistence_errors
    async def create_employee(self, name: str, email: str, age) -> Employee:
        name = _require_text(name, "employee_name")
        email = _require_text(email, "employee_email")
        age = parse_age(age)

        # 사전 중복 검사 (best-effort). 최종 보장은 employees.employee_email unique 제약.
        if await self.repository.get_by_email(email) is not None:
            logger.warning("Duplicate email on create")
            raise DuplicateEmail()

        try:
            employee = await self.repository.create(name, email, age)
        except DuplicateEmail:
            logger.warning("Duplicate email on create (constraint)")
            raise

        logger.info("Created employee %s", employee.employee_id)
        return employee

    @_translate_persistence_errors
    async def list_employees(
        self,
        filters: EmployeeFilters,
        sort_by: Sequence[str] | None,
        order: Sequence[str] | None,
        page: int,
        page_size: int,
    ) -> EmployeePage:
        """page / page_size 는 호출 측(api 계층)에서 이미 양수로 정규화되어 들어온다."""
        sort_keys = build_sort_keys(sort_by, order)
        items = await self.repository.find_many(
            filters,
            sort_keys,
            skip=(page - 1) * page_size,
            take=page_size,
        )
        total = await self.repository.count(filters)

        return EmployeePage(
            items=items,
            pagination=Pagination(
                page=page,
                page_size=page_size,
                total=total,
                total_pages=total_pages(total, page_size),
            ),
        )

    @_translate_persistence_errors
    async def get_employee(self, employee_id: str) -> Employee:
        employee_id = parse_employee_id(employee_id)
        employee = await self.repository.get_by_id(employee_id)
        if employee is None:
            raise NotFound()
        return employee

    async def _get_current_version(self, employee_id: str, expected_updated_at) -> datetime:
        employee = await self.repository.get_by_id(employee_id)
        if employee is None:
            raise NotFound()
        if not same_instant(expected_updated_at, employee.updated_at):
            logger.warning("Stale version for employee %s", employee_id)
            raise StaleVersion()
        return employee.updated_at

    @_translate_persistence_errors
    async def update_employee(
        self,
        employee_id: str,
        name: str,
        email: str,
        age,
        expected_updated_at: datetime | str,
    ) -> Employee:
        employee_id = parse_employee_id(employee_id)
        name = _require_text(name, "employee_name")
        email = _require_text(email, "employee_email")
        age = parse_age(age)
        expected_updated_at = parse_timestamp(expected_updated_at)

        current_version = await self._get_current_version(employee_id, expected_updated_at)

        try:
            employee = await self.repository.update(
                employee_id,
                current_version,
                name=name,
                email=email,
                age=age,
            )
        except DuplicateEmail:
            logger.warning("Duplicate email on update of %s", employee_id)
            raise

        if employee is None:
            # 버전 확인 후 조건부 UPDATE 전에 다른 요청이 먼저 갱신/삭제함
            logger.warning("Concurrent modification of employee %s", employee_id)
            raise StaleVersion()

        logger.info("Updated employee %s", employee_id)
        return employee

    @_translate_persistence_errors
    async def delete_employee(self, employee_id: str, expected_updated_at: datetime | str) -> None:
        employee_id = parse_employee_id(employee_id)
        expected_updated_at = parse_timestamp(expected_updated_at)

        current_version = await self._get_current_version(employee_id, expected_updated_at)

        if not await self.repository.delete(employee_id, current_version):
            logger.warning("Concurrent modification of employee %s", employee_id)
            raise StaleVersion()

        logger.info("Deleted employee %s", employee_id)
