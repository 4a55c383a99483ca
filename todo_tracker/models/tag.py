"""Tag model."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDPrimaryKeyMixin, utc_now


class Tag(Base, UUIDPrimaryKeyMixin):
    """Tag model (many-to-many with todos, name unique per user)."""

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("name", "user_id", name="uq_tags_name_user"),)

    name: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}')>"
