"""User repository with specific queries."""

import uuid

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Category, Tag, Todo, User, todo_tags
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Репозиторий пользователей."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_by_username_or_email(self, username: str, email: str) -> User | None:
        """
        Найти пользователя с таким username ИЛИ email (для проверки уникальности).

        SQL эквивалент:
            SELECT * FROM users WHERE username = {username} OR email = {email} LIMIT 1;
        """
        result = await self.db.execute(
            select(User).where(or_(User.username == username, User.email == email)).limit(1)
        )
        return result.scalar_one_or_none()

    async def delete_with_owned_data(self, user_id: uuid.UUID) -> bool:
        """
        Удалить пользователя вместе со всеми его данными.

        Порядок важен (сначала зависимые таблицы):
            todo_tags -> todos -> tags -> categories -> users

        Всё выполняется в текущей транзакции сессии, поэтому
        при ошибке откатывается целиком.
        """
        owned_todo_ids = select(Todo.id).where(Todo.user_id == user_id)
        await self.db.execute(delete(todo_tags).where(todo_tags.c.todo_id.in_(owned_todo_ids)))
        await self.db.execute(delete(Todo).where(Todo.user_id == user_id))
        await self.db.execute(delete(Tag).where(Tag.user_id == user_id))
        await self.db.execute(delete(Category).where(Category.user_id == user_id))
        return await self.delete(user_id)
