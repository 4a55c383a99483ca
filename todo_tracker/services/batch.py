"""
Batch операции над задачами: одно изменение / удаление для набора id.

Правила:
- весь payload проверяется ДО обращения к хранилищу;
- чужие и несуществующие id молча исключаются (без ошибки);
- изменение выполняется одним UPDATE / DELETE в транзакции запроса;
- affected_ids - только строки, которые этот UPDATE / DELETE реально затронул (RETURNING);
- любой сбой БД -> rollback -> InternalError, частичных изменений не остаётся.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import InternalError, NotFoundError, ValidationError_
from ..core.logging import get_logger
from ..repositories import CategoryRepository, TodoRepository
from .filters import validate_priority

logger = get_logger(__name__)

BATCH_UPDATABLE_FIELDS = frozenset({"completed", "priority", "category_id"})


@dataclass
class BatchResult:
    """Итог batch операции: какие задачи реально затронуты."""

    affected_ids: list[uuid.UUID] = field(default_factory=list)

    @property
    def affected_count(self) -> int:
        return len(self.affected_ids)


class BatchService:
    """Сервис массовых операций над задачами одного пользователя."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.todo_repo = TodoRepository(db)
        self.category_repo = CategoryRepository(db)

    async def batch_update(
        self, user_id: uuid.UUID, todo_ids: Sequence[uuid.UUID], changes: dict[str, Any]
    ) -> BatchResult:
        """
        Применить одинаковые изменения к набору задач.

        Args:
            user_id: Владелец
            todo_ids: Id задач (1..BATCH_MAX_SIZE)
            changes: Подмножество {completed, priority, category_id}, не пустое.
                category_id=None отвязывает задачи от категории.

        Returns:
            BatchResult с id задач, которые реально обновлены

        Raises:
            ValidationError_: Некорректный payload
            NotFoundError: category_id не принадлежит пользователю
            InternalError: Сбой БД (транзакция откачена)
        """
        # 1. ВАЛИДАЦИЯ: id и payload
        ids = self._validate_ids(todo_ids)
        values = await self._validate_changes(user_id, changes)

        # 2. ИЗМЕНЕНИЕ: один UPDATE, владелец проверяется в том же запросе.
        # affected - то, что вернул RETURNING, в порядке запроса клиента
        try:
            changed = await self.todo_repo.bulk_update(user_id, ids, values)
            await self.db.flush()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Batch update failed",
                extra={"operation": "batch_update", "requested": len(ids)},
                exc_info=True,
            )
            raise InternalError() from e

        affected = [todo_id for todo_id in ids if todo_id in changed]
        logger.info(
            "Batch update applied",
            extra={
                "operation": "batch_update",
                "requested": len(ids),
                "affected": len(affected),
                "fields": sorted(values),
            },
        )
        return BatchResult(affected_ids=affected)

    async def batch_delete(self, user_id: uuid.UUID, todo_ids: Sequence[uuid.UUID]) -> BatchResult:
        """
        Удалить набор задач (вместе со связями с тегами).

        Raises:
            ValidationError_: Пустой или слишком большой список id
            InternalError: Сбой БД (транзакция откачена)
        """
        ids = self._validate_ids(todo_ids)

        try:
            deleted = await self.todo_repo.bulk_delete(user_id, ids)
            await self.db.flush()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Batch delete failed",
                extra={"operation": "batch_delete", "requested": len(ids)},
                exc_info=True,
            )
            raise InternalError() from e

        affected = [todo_id for todo_id in ids if todo_id in deleted]
        logger.info(
            "Batch delete applied",
            extra={"operation": "batch_delete", "requested": len(ids), "affected": len(affected)},
        )
        return BatchResult(affected_ids=affected)

    # Вспомогательные методы (private)

    @staticmethod
    def _validate_ids(todo_ids: Sequence[uuid.UUID]) -> list[uuid.UUID]:
        """Непустой список без дубликатов (порядок сохраняется), не больше лимита."""
        if not todo_ids:
            raise ValidationError_("todo_ids must not be empty", field="todo_ids")

        ids = list(dict.fromkeys(todo_ids))
        if len(ids) > settings.BATCH_MAX_SIZE:
            raise ValidationError_(
                f"At most {settings.BATCH_MAX_SIZE} todo_ids per batch", field="todo_ids"
            )
        return ids

    async def _validate_changes(self, user_id: uuid.UUID, changes: dict[str, Any]) -> dict[str, Any]:
        if not changes:
            raise ValidationError_("Batch update payload must not be empty", field="updates")

        unknown = set(changes) - BATCH_UPDATABLE_FIELDS
        if unknown:
            raise ValidationError_(
                f"Fields not allowed in batch update: {', '.join(sorted(unknown))}",
                field="updates",
            )

        values: dict[str, Any] = {}
        if "completed" in changes:
            if changes["completed"] is None:
                raise ValidationError_("completed cannot be null", field="completed")
            values["completed"] = bool(changes["completed"])

        if "priority" in changes:
            if changes["priority"] is None:
                raise ValidationError_("priority cannot be null", field="priority")
            values["priority"] = int(validate_priority(changes["priority"]))

        if "category_id" in changes:
            category_id = changes["category_id"]
            if category_id is not None:
                category = await self.category_repo.get_owned(user_id, category_id)
                if not category:
                    raise NotFoundError("Category", category_id)
            values["category_id"] = category_id

        return values
