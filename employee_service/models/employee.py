from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.dialects import mysql

from employee_service.core.clock import utc_now
from employee_service.core.db import Base

# MySQL DATETIME 기본 정밀도는 초 단위라 updated_at 버전 비교가 깨짐 → fsp=3
Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=3), "mysql")


def gen_uuid() -> str:
    return str(uuid4())


class Employee(Base):
    __tablename__ = "employees"

    employee_id = Column(String(36), primary_key=True, default=gen_uuid)
    employee_name = Column(String(255), nullable=False)
    employee_email = Column(String(255), nullable=False, unique=True, index=True)
    employee_age = Column(Integer, nullable=False)
    created_at = Column(Timestamp, default=utc_now, nullable=False)
    # 낙관적 락 버전 토큰. 값은 repository에서 직접 넣는다.
    updated_at = Column(Timestamp, default=utc_now, nullable=False)
