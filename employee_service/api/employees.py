from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from employee_service.core.config import Settings
from employee_service.core.db import get_db
from employee_service.core.errors import (
    DuplicateEmail,
    EmployeeServiceError,
    InvalidArgument,
    NotFound,
    PersistenceFailure,
    StaleVersion,
)
from employee_service.repositories.employee_repo import EmployeeFilters, EmployeeRepository
from employee_service.schemas.employee import (
    BaseResponse,
    EmployeeCreate,
    EmployeeData,
    EmployeeDelete,
    EmployeeListResponse,
    EmployeeResponse,
    EmployeeUpdate,
    PaginationData,
)
from employee_service.services.employee_service import EmployeeService

router = APIRouter(
    prefix="/employees",
    tags=["employees"],
)

# 도메인 예외 kind → HTTP 상태 코드 (서비스 계층은 상태 코드를 모름)
ERROR_STATUS = {
    InvalidArgument: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    DuplicateEmail: status.HTTP_409_CONFLICT,
    StaleVersion: status.HTTP_409_CONFLICT,
    PersistenceFailure: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


MAX_OFFSET = 2**63 - 1


def get_employee_service(db: AsyncSession = Depends(get_db)) -> EmployeeService:
    return EmployeeService(EmployeeRepository(db))


def _status_for(exc: EmployeeServiceError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_response(status_code: int, message: str) -> JSONResponse:
    body = BaseResponse[None](success=False, error=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def employee_error_handler(request: Request, exc: EmployeeServiceError) -> JSONResponse:
    return _error_response(_status_for(exc), exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """요청 바디 검증 실패도 같은 envelope / 400으로 응답"""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


def _parse_positive_int(value: Optional[str], default: int) -> int:
    """숫자가 아니거나 1 미만이면 조용히 기본값"""
    try:
        parsed = int(value) if value is not None else default
    except ValueError:
        return default
    return parsed if parsed >= 1 else default


def _split_multi(values: Optional[List[str]]) -> Optional[List[str]]:
    """
    ?sort_by=a&sort_by=b 와 ?sort_by=a,b 둘 다 지원.
    sort_by / order 는 위치로 짝지어지므로 빈 칸도 자리를 유지한다 (order=,desc → ["", "desc"]).
    """
    if not values:
        return None
    parts = [part.strip() for value in values for part in value.split(",")]
    if not any(parts):
        return None
    return parts


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=EmployeeResponse,
    response_model_exclude_none=True,
)
async def create_employee(
    payload: EmployeeCreate,
    service: EmployeeService = Depends(get_employee_service),
):
    employee = await service.create_employee(
        payload.employee_name,
        payload.employee_email,
        payload.employee_age,
    )
    return EmployeeResponse(
        success=True,
        message="Employee created successfully",
        data=EmployeeData.model_validate(employee),
    )


@router.get(
    "",
    response_model=EmployeeListResponse,
    response_model_exclude_none=True,
)
async def list_employees(
    request: Request,
    name: Optional[str] = None,
    email: Optional[str] = None,
    sort_by: Optional[List[str]] = Query(None),
    order: Optional[List[str]] = Query(None),
    page: Optional[str] = None,
    page_size: Optional[str] = None,
    service: EmployeeService = Depends(get_employee_service),
):
    """
    직원 목록 조회 (부분 일치 필터 + 다중 정렬 + 페이지네이션)

    예:
    GET /employees?name=An&sort_by=employee_age&order=desc&page=1&page_size=10
    GET /employees?sort_by=employee_name,created_at&order=asc,desc
    """
    settings: Settings = request.app.state.settings

    size = min(
        _parse_positive_int(page_size, settings.DEFAULT_PAGE_SIZE),
        settings.MAX_PAGE_SIZE,
    )
    # OFFSET이 DB 정수(signed 64-bit) 범위를 넘지 않도록 page 상한
    page_number = min(_parse_positive_int(page, 1), MAX_OFFSET // size + 1)

    result = await service.list_employees(
        EmployeeFilters(name=name, email=email),
        sort_by=_split_multi(sort_by),
        order=_split_multi(order),
        page=page_number,
        page_size=size,
    )
    return EmployeeListResponse(
        success=True,
        message="Successfully retrieved employee list",
        data=[EmployeeData.model_validate(e) for e in result.items],
        pagination=PaginationData(
            page=result.pagination.page,
            page_size=result.pagination.page_size,
            total=result.pagination.total,
            total_pages=result.pagination.total_pages,
        ),
    )


@router.get(
    "/{employee_id}",
    response_model=EmployeeResponse,
    response_model_exclude_none=True,
)
async def get_employee(
    employee_id: str,
    service: EmployeeService = Depends(get_employee_service),
):
    employee = await service.get_employee(employee_id)
    return EmployeeResponse(
        success=True,
        message="Successfully retrieved employee information",
        data=EmployeeData.model_validate(employee),
    )


@router.put(
    "/{employee_id}",
    response_model=EmployeeResponse,
    response_model_exclude_none=True,
)
async def update_employee(
    employee_id: str,
    payload: EmployeeUpdate,
    service: EmployeeService = Depends(get_employee_service),
):
    """
    낙관적 락: 바디의 updated_at이 현재 값과 다르면 409.
    """
    employee = await service.update_employee(
        employee_id,
        payload.employee_name,
        payload.employee_email,
        payload.employee_age,
        payload.updated_at,
    )
    return EmployeeResponse(
        success=True,
        message="Employee updated successfully",
        data=EmployeeData.model_validate(employee),
    )


@router.delete(
    "/{employee_id}",
    response_model=BaseResponse[None],
    response_model_exclude_none=True,
)
async def delete_employee(
    employee_id: str,
    payload: EmployeeDelete,
    service: EmployeeService = Depends(get_employee_service),
):
    await service.delete_employee(employee_id, payload.updated_at)
    return BaseResponse[None](success=True, message="Employee deleted successfully")
