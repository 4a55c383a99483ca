"""Todo statistics for a single user."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import InternalError
from ..core.logging import get_logger
from ..models import MAX_PRIORITY, MIN_PRIORITY, utc_now
from ..repositories import TodoRepository
from .filters import overdue_condition

logger = get_logger(__name__)


@dataclass
class PriorityCount:
    priority: int
    count: int


@dataclass
class CategoryCount:
    """Корзина категории. category_id/name = None - задачи без категории."""

    category_id: uuid.UUID | None
    category_name: str | None
    count: int


@dataclass
class StatsView:
    total_todos: int = 0
    completed_todos: int = 0
    pending_todos: int = 0
    overdue_todos: int = 0
    todos_by_priority: list[PriorityCount] = field(default_factory=list)
    todos_by_category: list[CategoryCount] = field(default_factory=list)


class StatsService:
    """
    Сервис статистики по задачам.

    Все числа считаются одним сгруппированным SELECT, а затем складываются
    в памяти. Поэтому итоги согласованы между собой:
        completed + pending == total
        sum(todos_by_priority) == total
        overdue <= pending
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.todo_repo = TodoRepository(db)

    async def get_stats(self, user_id: uuid.UUID, now: datetime | None = None) -> StatsView:
        """
        Получить статистику пользователя.

        Args:
            user_id: Владелец
            now: Момент для подсчёта просроченных (по умолчанию utc_now())

        Raises:
            InternalError: Сбой БД
        """
        try:
            rows = await self.todo_repo.aggregate_by_priority_and_category(
                user_id, overdue_condition(now or utc_now())
            )
        except SQLAlchemyError as e:
            logger.error("Stats query failed", exc_info=True)
            raise InternalError() from e

        stats = StatsView()
        by_priority = {priority: 0 for priority in range(MIN_PRIORITY, MAX_PRIORITY + 1)}
        by_category: dict[uuid.UUID | None, CategoryCount] = {}

        for priority, category_id, category_name, total, completed, overdue in rows:
            total = int(total or 0)
            stats.total_todos += total
            stats.completed_todos += int(completed or 0)
            stats.overdue_todos += int(overdue or 0)
            by_priority[priority] = by_priority.get(priority, 0) + total

            # Категория без строки в JOIN (чужая/удалённая) считается "без категории"
            key = category_id if category_name is not None else None
            bucket = by_category.get(key)
            if bucket is None:
                bucket = by_category[key] = CategoryCount(
                    category_id=key, category_name=category_name if key else None, count=0
                )
            bucket.count += total

        stats.pending_todos = stats.total_todos - stats.completed_todos
        stats.todos_by_priority = [
            PriorityCount(priority=priority, count=count)
            for priority, count in sorted(by_priority.items())
        ]
        stats.todos_by_category = sorted(
            by_category.values(),
            key=lambda b: (-b.count, b.category_id is None, b.category_name or ""),
        )
        return stats
