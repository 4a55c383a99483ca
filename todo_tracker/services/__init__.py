"""Service layer with business logic."""

from .assembler import RelationAssembler, TodoView
from .batch import BatchResult, BatchService
from .category import CategoryService
from .filters import TodoFilter, TodoQueryPlan, compile_filter, overdue_condition
from .stats import CategoryCount, PriorityCount, StatsService, StatsView
from .tag import TagService
from .todo import TodoService
from .user import UserService

__all__ = [
    "TodoFilter",
    "TodoQueryPlan",
    "compile_filter",
    "overdue_condition",
    "RelationAssembler",
    "TodoView",
    "TodoService",
    "BatchService",
    "BatchResult",
    "StatsService",
    "StatsView",
    "PriorityCount",
    "CategoryCount",
    "CategoryService",
    "TagService",
    "UserService",
]
