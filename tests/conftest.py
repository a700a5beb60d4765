from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from employee_service.core.config import Settings
from employee_service.core.db import build_engine, build_sessionmaker, init_db
from employee_service.main import create_app
from employee_service.repositories.employee_repo import EmployeeRepository
from employee_service.services.employee_service import EmployeeService


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    db_path = tmp_path / "employees.sqlite3"
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{db_path}",
        DEFAULT_PAGE_SIZE=10,
        MAX_PAGE_SIZE=50,
        _env_file=None,
    )


@pytest.fixture()
async def session(settings: Settings, anyio_backend):
    engine = build_engine(settings)
    await init_db(engine)
    factory = build_sessionmaker(engine)
    async with factory() as db:
        yield db
    await engine.dispose()


@pytest.fixture()
def service(session) -> EmployeeService:
    return EmployeeService(EmployeeRepository(session))


@pytest.fixture()
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client
