from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from employee_service.core.config import Settings

# Base 클래스 (모든 모델의 부모)
Base = declarative_base()


def build_engine(settings: Settings) -> AsyncEngine:
    # SQLAlchemy Async Engine
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DB_ECHO,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # 세션 팩토리
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    애플리케이션 시작 시 한 번 호출해서
    employees 테이블을 SQLAlchemy 모델 기반으로 생성.
    이미 있으면 아무 일도 안 함 (CREATE TABLE IF NOT EXISTS 느낌).
    """
    # 모델이 Base.metadata에 등록되도록 임포트
    from employee_service.models import employee  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# FastAPI 의존성 주입용 세션
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    요청마다 세션을 하나 만들어 yield 하고, 사용 후 닫아줍니다.
    세션 팩토리는 create_app()에서 app.state에 올려둔 것을 사용합니다.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
