"""Todo-Tag junction table."""

from sqlalchemy import Column, ForeignKey, Table, Uuid

from .base import Base

# Many-to-many: наличие строки = тег привязан к задаче, своих полей нет
todo_tags = Table(
    "todo_tags",
    Base.metadata,
    Column("todo_id", Uuid, ForeignKey("todos.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("tag_id", Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True),
)
