"""
Topic model for forum threads and private messages.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.base import TimestampMixin, utcnow


class TopicArchetype(str, Enum):
    REGULAR = "regular"
    PRIVATE_MESSAGE = "private_message"


class Topic(Base, TimestampMixin):
    """Topic model. Posts live inside a topic."""

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    archetype: Mapped[TopicArchetype] = mapped_column(String(20), default=TopicArchetype.REGULAR, nullable=False)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    category = relationship("Category", back_populates="topics", lazy="selectin")
    allowed_users = relationship("TopicAllowedUser", back_populates="topic", lazy="selectin")
    posts = relationship("Post", back_populates="topic", lazy="noload", order_by="Post.post_number")

    @property
    def is_private_message(self) -> bool:
        return self.archetype == TopicArchetype.PRIVATE_MESSAGE

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def reactions_channel(self) -> str:
        """Bus topic identifier reaction changes are published on."""
        return f"/topic/{self.id}/reactions"

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()

    def __repr__(self) -> str:
        return f"<Topic {self.id} {self.title!r}>"
