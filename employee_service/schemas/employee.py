from datetime import datetime
from typing import Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_serializer

from employee_service.core.clock import to_utc

T = TypeVar("T")


class EmployeeCreate(BaseModel):
    """POST /employees 요청 바디

    employee_age는 숫자 문자열도 받는다. 정수 변환 실패는 서비스에서 400으로 처리.
    """
    employee_name: str
    employee_email: str
    # Strict: lax 모드면 JSON true → 1, 30.0 → 30 으로 바뀌어 버림
    employee_age: Union[StrictInt, StrictStr]


class EmployeeUpdate(EmployeeCreate):
    """PUT /employees/{id} 요청 바디 (updated_at: 마지막으로 조회한 버전)"""
    updated_at: datetime


class EmployeeDelete(BaseModel):
    """DELETE /employees/{id} 요청 바디"""
    updated_at: datetime


class EmployeeData(BaseModel):
    """응답용 스키마"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str = Field(validation_alias="employee_id")
    name: str = Field(validation_alias="employee_name")
    email: str = Field(validation_alias="employee_email")
    age: int = Field(validation_alias="employee_age")
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, value: datetime) -> str:
        # DB에는 UTC naive로 저장되어 있으므로 오프셋을 붙여서 내보냄
        return to_utc(value).isoformat(timespec="milliseconds")


class PaginationData(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class BaseResponse(BaseModel, Generic[T]):
    """모든 응답 공통 envelope"""
    success: bool
    message: Optional[str] = None
    data: Optional[T] = None
    error: Optional[str] = None
    pagination: Optional[PaginationData] = None


EmployeeResponse = BaseResponse[EmployeeData]
EmployeeListResponse = BaseResponse[List[EmployeeData]]
