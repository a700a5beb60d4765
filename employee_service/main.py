import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from employee_service.api.employees import (
    employee_error_handler,
    router as employees_router,
    validation_error_handler,
)
from employee_service.core.config import Settings, get_settings
from employee_service.core.db import build_engine, build_sessionmaker, init_db
from employee_service.core.errors import EmployeeServiceError

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())

    app = FastAPI(
        title="Employee Service",
        version="0.1.0",
        description="Employee CRUD service (REST + MySQL + SQLAlchemy, optimistic locking)",
    )

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_sessionmaker(engine)

    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Starting Employee Service")
        # employees 테이블 생성
        await init_db(engine)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Shutting down Employee Service")
        await engine.dispose()

    @app.get("/health")
    async def health_check():
        return {
            "status": "ok",
            "service": "employee-service",
        }

    @app.get("/")
    async def root():
        return {
            "message": "Employee Service is running",
            "docs": "/docs",
        }

    app.add_exception_handler(EmployeeServiceError, employee_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(employees_router)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT)
