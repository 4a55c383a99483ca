"""User service: identity scope for all owned data."""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError_
from ..core.logging import get_logger
from ..models import User, utc_now
from ..repositories import UserRepository

logger = get_logger(__name__)


class UserService:
    """Сервис пользователей. Пароли и токены живут вне этого сервиса."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)

    async def create_user(self, username: str, email: str, full_name: str | None = None) -> User:
        """
        Создать пользователя.

        Raises:
            ValidationError_: Пустой username или email
            ConflictError: username или email уже заняты
        """
        if not username or not username.strip():
            raise ValidationError_("Username cannot be empty", field="username")
        if not email or not email.strip():
            raise ValidationError_("Email cannot be empty", field="email")
        username = username.strip()
        email = email.strip().lower()

        existing = await self.user_repo.get_by_username_or_email(username, email)
        if existing:
            if existing.username == username:
                raise ConflictError("User", "username", username)
            raise ConflictError("User", "email", email)

        user = await self.user_repo.create(
            User(username=username, email=email, full_name=full_name, is_active=True)
        )
        await self.db.flush()
        return user

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    async def get_active_user(self, user_id: uuid.UUID) -> User:
        """
        Пользователь, от имени которого выполняется запрос.

        Raises:
            NotFoundError: Пользователя нет
            ForbiddenError: Пользователь деактивирован
        """
        user = await self.get_user(user_id)
        if not user.is_active:
            raise ForbiddenError("User account is deactivated")
        return user

    async def deactivate_user(self, user_id: uuid.UUID) -> User:
        user = await self.get_user(user_id)
        return await self.user_repo.update(user, is_active=False, updated_at=utc_now())

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """Удалить пользователя и все его задачи, категории и теги (одна транзакция)."""
        await self.get_user(user_id)
        await self.user_repo.delete_with_owned_data(user_id)
        await self.db.flush()

        logger.info("User deleted", extra={"deleted_user_id": str(user_id)})
