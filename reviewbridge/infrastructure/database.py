# reviewbridge/infrastructure/database.py
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from reviewbridge.config import get_settings

logger = structlog.get_logger(__name__)

engine: AsyncEngine = create_async_engine(get_settings().DATABASE_URL, echo=False)


async def init_db():
    # table modules must be imported so their metadata is registered
    from reviewbridge.UAA import models as _user_models  # noqa: F401
    from reviewbridge.models import linked_account, testimonial  # noqa: F401

    try:
        async with engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)
    except SQLAlchemyError as e:
        logger.exception("db_init_failed", error=str(e))
        raise


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session
