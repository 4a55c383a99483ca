"""
Компилятор фильтров для списка задач.

Превращает объект критериев (все поля опциональны) в план запроса:
список условий (AND) + сортировка + пагинация.

Правила:
- условие "владелец = текущий пользователь" есть всегда;
- каждое остальное условие добавляется, только если критерий передан;
- пользовательский текст попадает в запрос только как bound-параметр,
  а символы LIKE (%, _, \\) в нём экранируются.

Пример:
    plan = compile_filter(user_id, TodoFilter(tag="urgent", overdue=True, per_page=20))
    # plan.conditions ->
    #   todos.user_id = :user_id
    #   AND EXISTS (SELECT 1 FROM todo_tags JOIN tags ... WHERE lower(tags.name) LIKE lower(:tag))
    #   AND todos.due_date IS NOT NULL AND todos.due_date < :now AND todos.completed = false
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import ColumnElement, and_, false, or_, select

from ..core.config import settings
from ..core.exceptions import ValidationError_
from ..models import MAX_PRIORITY, MIN_PRIORITY, Tag, Todo, to_naive_utc, todo_tags, utc_now

LIKE_ESCAPE = "\\"


@dataclass
class TodoFilter:
    """Критерии списка задач. None = критерий не задан."""

    completed: bool | None = None
    category_id: uuid.UUID | None = None
    priority: int | None = None
    tag: str | None = None
    search: str | None = None
    overdue: bool = False
    page: int | None = None
    per_page: int | None = None


@dataclass
class TodoQueryPlan:
    """Скомпилированный план: WHERE (через AND) + ORDER BY + LIMIT/OFFSET."""

    conditions: list[ColumnElement[bool]]
    page: int
    per_page: int
    order_by: list = field(default_factory=lambda: [Todo.created_at.desc(), Todo.id.desc()])

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page


def escape_like(value: str) -> str:
    """Экранировать спецсимволы LIKE, чтобы они искались буквально."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(value: str) -> str:
    """Шаблон подстроки для ILIKE: '%<value>%'."""
    return f"%{escape_like(value)}%"


def validate_priority(priority: int, field_name: str = "priority") -> int:
    """Приоритет - целое 0..4, иначе ошибка валидации."""
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ValidationError_("Priority must be an integer", field=field_name)
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise ValidationError_(
            f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}", field=field_name
        )
    return priority


def resolve_pagination(page: int | None, per_page: int | None) -> tuple[int, int]:
    """
    Нормализовать пагинацию.

    - page по умолчанию 1, per_page по умолчанию DEFAULT_PER_PAGE
    - page < 1 или per_page < 1 -> ValidationError_
    - per_page > MAX_PER_PAGE -> обрезается до MAX_PER_PAGE
    """
    page = 1 if page is None else page
    per_page = settings.DEFAULT_PER_PAGE if per_page is None else per_page

    if page < 1:
        raise ValidationError_("page must be a positive integer", field="page")
    if per_page < 1:
        raise ValidationError_("per_page must be a positive integer", field="per_page")

    return page, min(per_page, settings.MAX_PER_PAGE)


def overdue_condition(now: datetime) -> ColumnElement[bool]:
    """
    Просроченная задача: есть дедлайн, он строго раньше now, задача не выполнена.

    Используется и в фильтре списка, и в статистике.
    """
    now = to_naive_utc(now)
    return and_(
        Todo.due_date.is_not(None),
        Todo.due_date < now,
        Todo.completed == false(),
    )


def search_condition(term: str) -> ColumnElement[bool]:
    """Подстрока без учёта регистра в title ИЛИ description."""
    pattern = contains_pattern(term)
    return or_(
        Todo.title.ilike(pattern, escape=LIKE_ESCAPE),
        Todo.description.ilike(pattern, escape=LIKE_ESCAPE),
    )


def tag_condition(user_id: uuid.UUID, tag: str) -> ColumnElement[bool]:
    """
    У задачи есть тег пользователя, имя которого содержит tag (без учёта регистра).

    SQL эквивалент:
        EXISTS (
            SELECT 1 FROM todo_tags JOIN tags ON tags.id = todo_tags.tag_id
            WHERE todo_tags.todo_id = todos.id
              AND tags.user_id = {user_id}
              AND lower(tags.name) LIKE lower('%{tag}%')
        )
    """
    return (
        select(todo_tags.c.todo_id)
        .join(Tag, Tag.id == todo_tags.c.tag_id)
        .where(
            todo_tags.c.todo_id == Todo.id,
            Tag.user_id == user_id,
            Tag.name.ilike(contains_pattern(tag), escape=LIKE_ESCAPE),
        )
        .exists()
    )


def compile_filter(
    user_id: uuid.UUID, criteria: TodoFilter, now: datetime | None = None
) -> TodoQueryPlan:
    """
    Собрать план запроса из критериев.

    Args:
        user_id: Владелец (условие добавляется всегда)
        criteria: Опциональные критерии + пагинация
        now: Момент времени для "просроченных" (по умолчанию utc_now())

    Raises:
        ValidationError_: Некорректные page/per_page/priority
    """
    page, per_page = resolve_pagination(criteria.page, criteria.per_page)

    conditions: list[ColumnElement[bool]] = [Todo.user_id == user_id]

    if criteria.completed is not None:
        conditions.append(Todo.completed == criteria.completed)

    if criteria.category_id is not None:
        conditions.append(Todo.category_id == criteria.category_id)

    if criteria.priority is not None:
        conditions.append(Todo.priority == validate_priority(criteria.priority))

    if criteria.search is not None and criteria.search.strip():
        conditions.append(search_condition(criteria.search.strip()))

    if criteria.tag is not None and criteria.tag.strip():
        conditions.append(tag_condition(user_id, criteria.tag.strip()))

    if criteria.overdue:
        conditions.append(overdue_condition(now or utc_now()))

    return TodoQueryPlan(conditions=conditions, page=page, per_page=per_page)
