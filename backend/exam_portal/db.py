from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from fastapi import Depends
# must load before fastapi_users_db_sqlalchemy so fastapi_users.db re-exports the adapter
from fastapi_users.db import SQLAlchemyUserDatabase

from .config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # busy timeout is in seconds for sqlite3
        return {
            "connect_args": {"timeout": settings.DB_STATEMENT_TIMEOUT_MS / 1000},
            "poolclass": NullPool,
        }
    server_settings = {"statement_timeout": str(settings.DB_STATEMENT_TIMEOUT_MS)}
    if settings.SCHEMA_SEARCH_PATH:
        server_settings["search_path"] = settings.SCHEMA_SEARCH_PATH
    return {"connect_args": {"server_settings": server_settings}}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    **_engine_options(settings.DATABASE_URL),
)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():

    from exam_portal.models import user_model, grade_model, exam_model, question_model, submission_model  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db_and_tables():

    from exam_portal.models import user_model, grade_model, exam_model, question_model, submission_model  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    from exam_portal.models.user_model import User
    yield SQLAlchemyUserDatabase(session, User)


@asynccontextmanager
async def atomic(session: AsyncSession):
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
