"""
Pytest fixtures для тестов.

Предоставляет:
- test_db: изолированная SQLite in-memory БД для каждого теста
- user / other_user: два пользователя (проверка изоляции данных)
- test_client: HTTP клиент для тестирования API endpoints
"""

import os

# До импорта приложения: engine модуля database создаётся при импорте
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "simple")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from todo_tracker.core.config import settings  # noqa: E402
from todo_tracker.core.database import build_engine, get_db  # noqa: E402
from todo_tracker.main import app  # noqa: E402
from todo_tracker.models import Base, User  # noqa: E402

# Test database URL (SQLite in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """
    Async engine для тестовой БД (SQLite in-memory).

    build_engine даёт StaticPool (одно соединение, иначе in-memory БД теряется)
    и включает внешние ключи.

    Таблицы пересоздаются для каждого теста, обеспечивая полную изоляцию.
    """
    engine = build_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(test_session_factory):
    """
    Async session для работы с тестовой БД.

    Каждый тест получает чистую БД. Транзакция откатывается после теста.
    """
    async with test_session_factory() as session:
        yield session
        await session.rollback()


async def create_user(db: AsyncSession, username: str, is_active: bool = True) -> User:
    user = User(username=username, email=f"{username}@example.com", is_active=is_active)
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


@pytest.fixture
def make_user(test_db):
    """Фабрика пользователей: await make_user("carol", is_active=False)."""

    async def _make(username: str, is_active: bool = True) -> User:
        return await create_user(test_db, username, is_active=is_active)

    return _make


@pytest_asyncio.fixture
async def user(test_db) -> User:
    """Основной пользователь теста."""
    user = await create_user(test_db, "alice")
    await test_db.commit()
    return user


@pytest_asyncio.fixture
async def other_user(test_db) -> User:
    """Второй пользователь: его данные не должны быть видны первому."""
    user = await create_user(test_db, "bob")
    await test_db.commit()
    return user


@pytest_asyncio.fixture
async def test_client(test_session_factory):
    """
    HTTP клиент для тестирования API endpoints.

    Использует тестовую БД вместо production БД (override get_db)
    и по умолчанию отправляет правильный X-API-Key.
    """

    async def override_get_db():
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-API-Key": settings.API_KEY},
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api_user(test_client: AsyncClient) -> dict:
    """Пользователь, созданный через API. Возвращает JSON ответа + заголовки."""
    response = await test_client.post(
        "/api/v1/users", json={"username": "api-alice", "email": "api-alice@example.com"}
    )
    assert response.status_code == 201
    data = response.json()
    data["headers"] = {"X-User-ID": data["id"]}
    return data


@pytest_asyncio.fixture
async def api_other_user(test_client: AsyncClient) -> dict:
    response = await test_client.post(
        "/api/v1/users", json={"username": "api-bob", "email": "api-bob@example.com"}
    )
    assert response.status_code == 201
    data = response.json()
    data["headers"] = {"X-User-ID": data["id"]}
    return data


@pytest.fixture(scope="session")
def anyio_backend():
    """Используем asyncio для всех async тестов."""
    return "asyncio"
