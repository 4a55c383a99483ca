"""Database connection and session management."""

from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from .config import settings


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """
    Включить проверку внешних ключей для SQLite.

    SQLite по умолчанию игнорирует FOREIGN KEY (и ON DELETE CASCADE / SET NULL),
    поэтому на каждое новое соединение выполняем PRAGMA foreign_keys=ON.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Создать async engine под конкретную БД.

    SQLite: StaticPool (одно соединение, иначе in-memory БД теряется) + foreign keys.
    PostgreSQL: обычный пул соединений, каждый запрос берёт своё соединение.
    """
    if "sqlite" in database_url:
        sqlite_engine = create_async_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        enable_sqlite_foreign_keys(sqlite_engine)
        return sqlite_engine

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,  # отбрасываем "мёртвые" соединения из пула
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency для получения сессии БД (одна сессия = одна транзакция на запрос).

    Автоматически:
    1. Создаёт сессию
    2. Передаёт в endpoint
    3. Делает commit() при успехе
    4. Делает rollback() при ошибке
    5. Закрывает сессию
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Initialize database (create all tables)."""
    from ..models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db():
    """Drop all tables (use with caution!)."""
    from ..models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
