"""
Тесты для Service Layer (Бизнес-логика).

Проверяем:
- Валидацию бизнес-правил и таксономию ошибок
- Изоляцию данных пользователей
- Сборку задачи с категорией и тегами (ровно два запроса)
- Batch операции: идемпотентность, исключение чужих id, атомарность
- Статистику: инварианты и сценарии
"""

import logging
import uuid
from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy import delete, event, func, select
from sqlalchemy.exc import OperationalError

from todo_tracker.core.config import settings
from todo_tracker.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError_,
)
from todo_tracker.models import Todo, todo_tags
from todo_tracker.repositories import TodoRepository
from todo_tracker.services import (
    BatchService,
    CategoryService,
    RelationAssembler,
    StatsService,
    TagService,
    TodoFilter,
    TodoService,
    UserService,
)


NOW = datetime(2026, 10, 19, 12, 0, 0)


class QueryCounter:
    """Считает SQL запросы, выполненные через engine."""

    def __init__(self, engine):
        self.engine = engine.sync_engine
        self.count = 0

    def _on_execute(self, *args, **kwargs):
        self.count += 1

    def __enter__(self):
        event.listen(self.engine, "before_cursor_execute", self._on_execute)
        return self

    def __exit__(self, *exc):
        event.remove(self.engine, "before_cursor_execute", self._on_execute)


# ============================================================================
# TODO SERVICE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_create_todo_validation_empty_title(test_db, user):
    """Test: валидация - пустое название задачи."""
    service = TodoService(test_db)

    with pytest.raises(ValidationError_, match="title cannot be empty"):
        await service.create_todo(user.id, "   ")


@pytest.mark.asyncio
async def test_create_todo_validation_priority(test_db, user):
    service = TodoService(test_db)

    with pytest.raises(ValidationError_, match="Priority"):
        await service.create_todo(user.id, "Task", priority=9)


@pytest.mark.asyncio
async def test_create_and_update_todo_reject_long_tag_name(test_db, user):
    """Test: имя тега длиннее 50 символов - ValidationError_, а не ошибка БД."""
    service = TodoService(test_db)
    long_name = "x" * 51

    with pytest.raises(ValidationError_, match="at most 50"):
        await service.create_todo(user.id, "Task", tags=["ok", long_name])

    todo = await service.create_todo(user.id, "Task", tags=["x" * 50])
    with pytest.raises(ValidationError_, match="at most 50"):
        await service.update_todo(user.id, todo.id, {"tags": [long_name]})


@pytest.mark.asyncio
async def test_create_todo_foreign_category(test_db, user, other_user):
    """Test: категория другого пользователя - NotFound."""
    category = await CategoryService(test_db).create_category(other_user.id, "Theirs")

    with pytest.raises(NotFoundError, match="Category"):
        await TodoService(test_db).create_todo(user.id, "Task", category_id=category.id)


@pytest.mark.asyncio
async def test_create_todo_with_category_and_tags(test_db, user):
    """Test: теги создаются по имени, существующие переиспользуются."""
    category = await CategoryService(test_db).create_category(user.id, "Work", color="#FF0000")
    existing = await TagService(test_db).create_tag(user.id, "urgent")

    todo = await TodoService(test_db).create_todo(
        user.id,
        "  Write report  ",
        description="Q3",
        priority=3,
        due_date=NOW,
        category_id=category.id,
        tags=["urgent", "work", "urgent", " "],
    )
    await test_db.commit()

    assert todo.title == "Write report"
    assert todo.priority == 3
    assert todo.completed is False
    assert todo.category.id == category.id
    assert todo.category.name == "Work"
    assert [t.name for t in todo.tags] == ["urgent", "work"]
    assert todo.tags[0].id == existing.id
    assert todo.created_at == todo.updated_at


@pytest.mark.asyncio
async def test_create_todo_normalizes_aware_due_date(test_db, user):
    due = datetime(2026, 10, 19, 15, 0, tzinfo=timezone(timedelta(hours=3)))
    todo = await TodoService(test_db).create_todo(user.id, "Task", due_date=due)

    assert todo.due_date == due.astimezone(UTC).replace(tzinfo=None)


@pytest.mark.asyncio
async def test_get_todo_isolation(test_db, user, other_user):
    """Test: чужая задача не найдена, своя - найдена."""
    service = TodoService(test_db)
    todo = await service.create_todo(user.id, "Mine")
    await test_db.commit()

    assert (await service.get_todo(user.id, todo.id)).id == todo.id
    with pytest.raises(NotFoundError, match="Todo"):
        await service.get_todo(other_user.id, todo.id)


@pytest.mark.asyncio
async def test_update_todo_sparse_patch(test_db, user):
    """Test: меняются только присланные поля, None очищает nullable поля."""
    service = TodoService(test_db)
    category = await CategoryService(test_db).create_category(user.id, "Work")
    todo = await service.create_todo(
        user.id, "Task", description="desc", priority=2, due_date=NOW, category_id=category.id
    )
    await test_db.commit()

    updated = await service.update_todo(
        user.id, todo.id, {"description": None, "due_date": None, "completed": True}
    )

    assert updated.title == "Task"
    assert updated.priority == 2
    assert updated.category.id == category.id
    assert updated.description is None
    assert updated.due_date is None
    assert updated.completed is True
    assert updated.updated_at >= todo.updated_at

    cleared = await service.update_todo(user.id, todo.id, {"category_id": None})
    assert cleared.category is None


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["title", "completed", "priority", "tags"])
async def test_update_todo_rejects_null_for_required(test_db, user, field):
    service = TodoService(test_db)
    todo = await service.create_todo(user.id, "Task")

    with pytest.raises(ValidationError_, match="cannot be null"):
        await service.update_todo(user.id, todo.id, {field: None})


@pytest.mark.asyncio
async def test_update_todo_rejects_unknown_field(test_db, user):
    service = TodoService(test_db)
    todo = await service.create_todo(user.id, "Task")

    with pytest.raises(ValidationError_, match="Unknown fields: user_id"):
        await service.update_todo(user.id, todo.id, {"user_id": user.id})


@pytest.mark.asyncio
async def test_update_todo_replaces_tags(test_db, user):
    service = TodoService(test_db)
    todo = await service.create_todo(user.id, "Task", tags=["a", "b"])
    await test_db.commit()

    updated = await service.update_todo(user.id, todo.id, {"tags": ["c", "a"]})
    assert [t.name for t in updated.tags] == ["a", "c"]

    emptied = await service.update_todo(user.id, todo.id, {"tags": []})
    assert emptied.tags == []


@pytest.mark.asyncio
async def test_update_todo_foreign(test_db, user, other_user):
    service = TodoService(test_db)
    todo = await service.create_todo(user.id, "Task")

    with pytest.raises(NotFoundError):
        await service.update_todo(other_user.id, todo.id, {"completed": True})


@pytest.mark.asyncio
async def test_delete_todo(test_db, user, other_user):
    """Test: удаление задачи вместе со связями, чужую удалить нельзя."""
    service = TodoService(test_db)
    todo = await service.create_todo(user.id, "Task", tags=["x"])
    await test_db.commit()

    with pytest.raises(NotFoundError):
        await service.delete_todo(other_user.id, todo.id)

    await service.delete_todo(user.id, todo.id)

    with pytest.raises(NotFoundError):
        await service.get_todo(user.id, todo.id)
    links = await test_db.execute(select(func.count()).select_from(todo_tags))
    assert links.scalar_one() == 0


@pytest.mark.asyncio
async def test_list_todos_scenario_tag_urgent(test_db, user):
    """Сценарий: по тегу "urgent" находится ровно задача A."""
    service = TodoService(test_db)
    a = await service.create_todo(user.id, "A", tags=["urgent"])
    await service.create_todo(user.id, "B", tags=["later"])
    await service.create_todo(user.id, "C")
    await test_db.commit()

    todos, total = await service.list_todos(user.id, TodoFilter(tag="urgent"))

    assert [t.id for t in todos] == [a.id]
    assert total == 1


# ============================================================================
# RELATION ASSEMBLER TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_assembler_two_queries_for_any_page(test_db, test_engine, user):
    """Test: для N задач - ровно два дополнительных запроса."""
    service = TodoService(test_db)
    category = await CategoryService(test_db).create_category(user.id, "Work")
    for i in range(6):
        await service.create_todo(
            user.id, f"Todo {i}", category_id=category.id if i % 2 else None, tags=[f"t{i}", "all"]
        )
    await test_db.commit()
    todos = await TodoRepository(test_db).find_page(
        [Todo.user_id == user.id], [Todo.created_at.desc(), Todo.id.desc()], 0, 100
    )

    with QueryCounter(test_engine) as counter:
        views = await RelationAssembler(test_db).assemble(user.id, todos)

    assert counter.count == 2
    assert [v.id for v in views] == [t.id for t in todos]
    for view in views:
        assert [t.name for t in view.tags] == sorted(t.name for t in view.tags)
        assert "all" in {t.name for t in view.tags}


@pytest.mark.asyncio
async def test_assembler_skips_queries(test_db, test_engine, user):
    """Test: пустой вход - без запросов, задачи без категорий - только запрос тегов."""
    todo = await TodoRepository(test_db).create(Todo(title="Plain", user_id=user.id))
    await test_db.commit()
    assembler = RelationAssembler(test_db)

    with QueryCounter(test_engine) as counter:
        assert await assembler.assemble(user.id, []) == []
    assert counter.count == 0

    with QueryCounter(test_engine) as counter:
        view = await assembler.assemble_one(user.id, todo)
    assert counter.count == 1
    assert view.category is None
    assert view.tags == []


@pytest.mark.asyncio
async def test_assembler_reflects_current_category_fields(test_db, user):
    """Test: категория в задаче - с актуальными полями, теги - независимо от порядка вставки."""
    category_service = CategoryService(test_db)
    category = await category_service.create_category(user.id, "Old name")
    todo = await TodoService(test_db).create_todo(
        user.id, "Task", category_id=category.id, tags=["t2", "t1"]
    )
    await category_service.update_category(user.id, category.id, {"name": "New name"})
    await test_db.commit()

    view = await TodoService(test_db).get_todo(user.id, todo.id)

    assert view.category.name == "New name"
    assert {t.name for t in view.tags} == {"t1", "t2"}


# ============================================================================
# BATCH SERVICE TESTS
# ============================================================================


async def _todos(test_db, user, count, **kwargs):
    service = TodoService(test_db)
    views = [await service.create_todo(user.id, f"Todo {i}", **kwargs) for i in range(count)]
    await test_db.commit()
    return views


async def _column(test_db, column, ids):
    result = await test_db.execute(select(Todo.id, column).where(Todo.id.in_(ids)))
    return dict(result.all())


@pytest.mark.asyncio
async def test_batch_update_idempotent_and_owner_scoped(test_db, user, other_user):
    mine = await _todos(test_db, user, 2)
    theirs = await _todos(test_db, other_user, 1)
    ids = [mine[0].id, theirs[0].id, mine[1].id]
    service = BatchService(test_db)

    first = await service.batch_update(user.id, ids, {"completed": True})
    await test_db.commit()
    second = await service.batch_update(user.id, ids, {"completed": True})
    await test_db.commit()

    assert first.affected_ids == [mine[0].id, mine[1].id]
    assert second.affected_ids == first.affected_ids
    assert first.affected_count == 2
    completed = await _column(test_db, Todo.completed, ids)
    assert completed == {mine[0].id: True, mine[1].id: True, theirs[0].id: False}


@pytest.mark.asyncio
async def test_batch_update_priority_and_category(test_db, user):
    todos = await _todos(test_db, user, 3)
    category = await CategoryService(test_db).create_category(user.id, "Work")
    ids = [t.id for t in todos]
    service = BatchService(test_db)

    await service.batch_update(user.id, ids, {"priority": 4, "category_id": category.id})
    assert set((await _column(test_db, Todo.priority, ids)).values()) == {4}
    assert set((await _column(test_db, Todo.category_id, ids)).values()) == {category.id}

    await service.batch_update(user.id, ids, {"category_id": None})
    assert set((await _column(test_db, Todo.category_id, ids)).values()) == {None}


@pytest.mark.asyncio
async def test_batch_update_refreshes_updated_at(test_db, user):
    todos = await _todos(test_db, user, 1)
    before = todos[0].updated_at

    await BatchService(test_db).batch_update(user.id, [todos[0].id], {"priority": 1})

    after = (await _column(test_db, Todo.updated_at, [todos[0].id]))[todos[0].id]
    assert after >= before


@pytest.mark.asyncio
async def test_batch_update_no_owned_ids(test_db, user, other_user):
    """Test: ни одного своего id - не ошибка, пустой результат."""
    theirs = await _todos(test_db, other_user, 1)

    result = await BatchService(test_db).batch_update(user.id, [theirs[0].id], {"completed": True})

    assert result.affected_ids == []
    assert result.affected_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "changes, message",
    [
        ({}, "must not be empty"),
        ({"title": "x"}, "not allowed"),
        ({"completed": None}, "completed cannot be null"),
        ({"priority": None}, "priority cannot be null"),
        ({"priority": 5}, "Priority must be between"),
    ],
)
async def test_batch_update_payload_validation(test_db, user, changes, message):
    todos = await _todos(test_db, user, 1)

    with pytest.raises(ValidationError_, match=message):
        await BatchService(test_db).batch_update(user.id, [todos[0].id], changes)


@pytest.mark.asyncio
async def test_batch_ids_validation(test_db, user):
    service = BatchService(test_db)
    too_many = [uuid.uuid4() for _ in range(settings.BATCH_MAX_SIZE + 1)]

    with pytest.raises(ValidationError_, match="must not be empty"):
        await service.batch_update(user.id, [], {"completed": True})
    with pytest.raises(ValidationError_, match="must not be empty"):
        await service.batch_delete(user.id, [])
    with pytest.raises(ValidationError_, match="At most"):
        await service.batch_delete(user.id, too_many)


@pytest.mark.asyncio
async def test_batch_update_foreign_category(test_db, user, other_user):
    todos = await _todos(test_db, user, 1)
    category = await CategoryService(test_db).create_category(other_user.id, "Theirs")

    with pytest.raises(NotFoundError, match="Category"):
        await BatchService(test_db).batch_update(
            user.id, [todos[0].id], {"category_id": category.id}
        )


@pytest.mark.asyncio
async def test_batch_update_atomic_on_storage_failure(test_db, user, monkeypatch):
    """Test: сбой БД посреди batch - ни одна задача не изменена."""
    todos = await _todos(test_db, user, 3)
    ids = [t.id for t in todos]
    original_bulk_update = TodoRepository.bulk_update

    async def failing_bulk_update(self, user_id, todo_ids, values):
        todo_ids = list(todo_ids)
        # Первая задача успевает обновиться, затем "падает" БД
        await original_bulk_update(self, user_id, todo_ids[:1], values)
        raise OperationalError("UPDATE todos", {}, Exception("disk I/O error"))

    monkeypatch.setattr(TodoRepository, "bulk_update", failing_bulk_update)

    with pytest.raises(InternalError):
        await BatchService(test_db).batch_update(user.id, ids, {"completed": True})

    completed = await _column(test_db, Todo.completed, ids)
    assert completed == {todo_id: False for todo_id in ids}


@pytest.mark.asyncio
async def test_batch_delete_atomic_on_storage_failure(test_db, user, monkeypatch):
    todos = await _todos(test_db, user, 2, tags=["x"])
    ids = [t.id for t in todos]

    async def failing_bulk_delete(self, user_id, todo_ids):
        raise OperationalError("DELETE FROM todos", {}, Exception("database is locked"))

    monkeypatch.setattr(TodoRepository, "bulk_delete", failing_bulk_delete)

    with pytest.raises(InternalError):
        await BatchService(test_db).batch_delete(user.id, ids)

    assert set(await _column(test_db, Todo.title, ids)) == set(ids)


@pytest.mark.asyncio
async def test_batch_update_reports_only_rows_actually_updated(test_db, user, monkeypatch):
    """Test: задача, удалённая параллельно прямо перед UPDATE, не попадает в affected_ids."""
    a, b = await _todos(test_db, user, 2)
    original_bulk_update = TodoRepository.bulk_update

    async def bulk_update_after_concurrent_delete(self, user_id, todo_ids, values):
        await self.db.execute(delete(Todo).where(Todo.id == b.id))
        return await original_bulk_update(self, user_id, todo_ids, values)

    monkeypatch.setattr(TodoRepository, "bulk_update", bulk_update_after_concurrent_delete)

    result = await BatchService(test_db).batch_update(user.id, [a.id, b.id], {"completed": True})

    assert result.affected_ids == [a.id]
    assert result.affected_count == 1
    assert await _column(test_db, Todo.completed, [a.id, b.id]) == {a.id: True}


@pytest.mark.asyncio
async def test_batch_delete_reports_only_rows_actually_deleted(test_db, user, monkeypatch):
    a, b = await _todos(test_db, user, 2)
    original_bulk_delete = TodoRepository.bulk_delete

    async def bulk_delete_after_concurrent_delete(self, user_id, todo_ids):
        await self.db.execute(delete(Todo).where(Todo.id == a.id))
        return await original_bulk_delete(self, user_id, todo_ids)

    monkeypatch.setattr(TodoRepository, "bulk_delete", bulk_delete_after_concurrent_delete)

    result = await BatchService(test_db).batch_delete(user.id, [a.id, b.id])

    assert result.affected_ids == [b.id]


@pytest.mark.asyncio
async def test_batch_delete_scenario(test_db, user):
    """Сценарий: batch_delete([A, несуществующий]) -> [A], потом get_todo(A) -> NotFound."""
    (a,) = await _todos(test_db, user, 1, tags=["x"])

    result = await BatchService(test_db).batch_delete(user.id, [a.id, uuid.uuid4()])
    await test_db.commit()

    assert result.affected_ids == [a.id]
    with pytest.raises(NotFoundError):
        await TodoService(test_db).get_todo(user.id, a.id)


@pytest.mark.asyncio
async def test_batch_delete_excludes_foreign(test_db, user, other_user):
    theirs = await _todos(test_db, other_user, 1)

    result = await BatchService(test_db).batch_delete(user.id, [theirs[0].id])

    assert result.affected_ids == []
    assert await TodoService(test_db).get_todo(other_user.id, theirs[0].id)


@pytest.mark.asyncio
async def test_batch_logs_one_record_per_call(test_db, user, caplog):
    todos = await _todos(test_db, user, 2)
    caplog.set_level(logging.INFO, logger="todo_tracker.services.batch")

    await BatchService(test_db).batch_update(user.id, [t.id for t in todos], {"completed": True})

    records = [r for r in caplog.records if r.name == "todo_tracker.services.batch"]
    assert len(records) == 1
    assert records[0].operation == "batch_update"
    assert records[0].requested == 2
    assert records[0].affected == 2


# ============================================================================
# STATS SERVICE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_stats_scenario(test_db, user):
    """Сценарий: A(priority=4, просрочена), B(priority=1, выполнена)."""
    service = TodoService(test_db)
    await service.create_todo(user.id, "A", priority=4, due_date=NOW - timedelta(days=1))
    b = await service.create_todo(user.id, "B", priority=1)
    await service.update_todo(user.id, b.id, {"completed": True})
    await test_db.commit()

    stats = await StatsService(test_db).get_stats(user.id, now=NOW)

    assert stats.total_todos == 2
    assert stats.completed_todos == 1
    assert stats.pending_todos == 1
    assert stats.overdue_todos == 1
    assert {p.priority: p.count for p in stats.todos_by_priority} == {0: 0, 1: 1, 2: 0, 3: 0, 4: 1}


@pytest.mark.asyncio
async def test_stats_empty_user(test_db, user):
    stats = await StatsService(test_db).get_stats(user.id)

    assert stats.total_todos == 0
    assert [p.priority for p in stats.todos_by_priority] == [0, 1, 2, 3, 4]
    assert all(p.count == 0 for p in stats.todos_by_priority)
    assert stats.todos_by_category == []


@pytest.mark.asyncio
async def test_stats_invariants_and_category_buckets(test_db, user, other_user):
    categories = CategoryService(test_db)
    work = await categories.create_category(user.id, "Work")
    home = await categories.create_category(user.id, "Home")
    await categories.create_category(user.id, "Empty")
    service = TodoService(test_db)
    for i in range(3):
        await service.create_todo(user.id, f"W{i}", priority=i, category_id=work.id)
    for i in range(2):
        await service.create_todo(
            user.id, f"H{i}", category_id=home.id, due_date=NOW - timedelta(hours=i + 1)
        )
    for i in range(2):
        await service.create_todo(user.id, f"N{i}", priority=4)
    await service.create_todo(other_user.id, "Foreign")
    await test_db.commit()

    stats = await StatsService(test_db).get_stats(user.id, now=NOW)

    assert stats.total_todos == 7
    assert stats.completed_todos + stats.pending_todos == stats.total_todos
    assert sum(p.count for p in stats.todos_by_priority) == stats.total_todos
    assert stats.overdue_todos == 2
    assert stats.overdue_todos <= stats.pending_todos
    # count desc, затем имя, "без категории" последней при равенстве
    assert [(c.category_name, c.count) for c in stats.todos_by_category] == [
        ("Work", 3),
        ("Home", 2),
        (None, 2),
    ]
    assert stats.todos_by_category[0].category_id == work.id


@pytest.mark.asyncio
async def test_stats_storage_failure(test_db, user, monkeypatch):
    async def failing_aggregate(self, user_id, overdue):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(TodoRepository, "aggregate_by_priority_and_category", failing_aggregate)

    with pytest.raises(InternalError):
        await StatsService(test_db).get_stats(user.id)


# ============================================================================
# CATEGORY / TAG SERVICE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_create_category_validation(test_db, user):
    service = CategoryService(test_db)

    with pytest.raises(ValidationError_, match="name cannot be empty"):
        await service.create_category(user.id, " ")
    for color in ("red", "#FF", "FF0000"):
        with pytest.raises(ValidationError_, match="#RRGGBB"):
            await service.create_category(user.id, "Test", color=color)


@pytest.mark.asyncio
async def test_create_category_duplicate_is_per_user(test_db, user, other_user):
    service = CategoryService(test_db)
    await service.create_category(user.id, "Work")

    with pytest.raises(ConflictError, match="already exists"):
        await service.create_category(user.id, "Work")
    assert (await service.create_category(other_user.id, "Work")).user_id == other_user.id


@pytest.mark.asyncio
async def test_update_category_rename_conflict(test_db, user):
    service = CategoryService(test_db)
    work = await service.create_category(user.id, "Work")
    await service.create_category(user.id, "Home")

    with pytest.raises(ConflictError):
        await service.update_category(user.id, work.id, {"name": "Home"})

    renamed = await service.update_category(user.id, work.id, {"name": "Work", "color": "#00FF00"})
    assert renamed.color == "#00FF00"


@pytest.mark.asyncio
async def test_list_categories_ordered_and_owned(test_db, user, other_user):
    service = CategoryService(test_db)
    for name in ("b", "c", "a"):
        await service.create_category(user.id, name)
    await service.create_category(other_user.id, "zzz")

    assert [c.name for c in await service.list_categories(user.id)] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_delete_category_detaches_todos(test_db, user):
    categories = CategoryService(test_db)
    category = await categories.create_category(user.id, "Work")
    todo = await TodoService(test_db).create_todo(user.id, "Task", category_id=category.id)
    await test_db.commit()

    await categories.delete_category(user.id, category.id)

    view = await TodoService(test_db).get_todo(user.id, todo.id)
    assert view.category is None
    with pytest.raises(NotFoundError):
        await categories.get_category(user.id, category.id)


@pytest.mark.asyncio
async def test_create_tag_duplicate(test_db, user):
    service = TagService(test_db)
    await service.create_tag(user.id, "python")

    with pytest.raises(ConflictError):
        await service.create_tag(user.id, " python ")
    with pytest.raises(ValidationError_):
        await service.create_tag(user.id, "")


@pytest.mark.asyncio
async def test_assign_and_remove_tag(test_db, user, other_user):
    tags = TagService(test_db)
    todos = TodoService(test_db)
    tag = await tags.create_tag(user.id, "python")
    todo = await todos.create_todo(user.id, "Task")
    foreign_tag = await tags.create_tag(other_user.id, "python")
    await test_db.commit()

    await tags.assign_tag(user.id, todo.id, tag.id)
    await tags.assign_tag(user.id, todo.id, tag.id)  # идемпотентно
    assert [t.name for t in (await todos.get_todo(user.id, todo.id)).tags] == ["python"]

    with pytest.raises(NotFoundError, match="Tag"):
        await tags.assign_tag(user.id, todo.id, foreign_tag.id)
    with pytest.raises(NotFoundError, match="Todo"):
        await tags.assign_tag(other_user.id, todo.id, foreign_tag.id)

    await tags.remove_tag(user.id, todo.id, tag.id)
    assert (await todos.get_todo(user.id, todo.id)).tags == []
    with pytest.raises(NotFoundError):
        await tags.remove_tag(user.id, todo.id, tag.id)


@pytest.mark.asyncio
async def test_assign_tag_touches_todo(test_db, user):
    tags = TagService(test_db)
    tag = await tags.create_tag(user.id, "python")
    todo = await TodoRepository(test_db).create(
        Todo(title="Task", user_id=user.id, updated_at=datetime(2020, 1, 1))
    )
    await test_db.commit()

    await tags.assign_tag(user.id, todo.id, tag.id)

    updated_at = (await _column(test_db, Todo.updated_at, [todo.id]))[todo.id]
    assert updated_at > datetime(2020, 1, 1)


@pytest.mark.asyncio
async def test_delete_tag_keeps_todos(test_db, user):
    tags = TagService(test_db)
    todo = await TodoService(test_db).create_todo(user.id, "Task", tags=["x", "y"])
    x = next(t for t in todo.tags if t.name == "x")
    await test_db.commit()

    await tags.delete_tag(user.id, x.id)

    view = await TodoService(test_db).get_todo(user.id, todo.id)
    assert [t.name for t in view.tags] == ["y"]
    assert [t.name for t in await tags.list_tags(user.id)] == ["y"]


# ============================================================================
# USER SERVICE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_create_user_conflicts(test_db, user):
    service = UserService(test_db)

    with pytest.raises(ConflictError, match="username"):
        await service.create_user("alice", "other@example.com")
    with pytest.raises(ConflictError, match="email"):
        await service.create_user("other", "ALICE@example.com")


@pytest.mark.asyncio
async def test_get_active_user(test_db, user, make_user):
    service = UserService(test_db)
    inactive = await make_user("sleepy", is_active=False)

    assert (await service.get_active_user(user.id)).id == user.id
    with pytest.raises(ForbiddenError):
        await service.get_active_user(inactive.id)

    await service.deactivate_user(user.id)
    with pytest.raises(ForbiddenError):
        await service.get_active_user(user.id)


@pytest.mark.asyncio
async def test_delete_user_removes_owned_data(test_db, user):
    await TodoService(test_db).create_todo(user.id, "Task", tags=["x"])
    await CategoryService(test_db).create_category(user.id, "Work")
    await test_db.commit()

    await UserService(test_db).delete_user(user.id)

    with pytest.raises(NotFoundError):
        await UserService(test_db).get_user(user.id)
    count = await test_db.execute(select(func.count()).select_from(Todo))
    assert count.scalar_one() == 0

