"""
Post model for topic replies.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.base import TimestampMixin, utcnow


class Post(Base, TimestampMixin):
    """Post model. Reactions and legacy likes attach here."""

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(primary_key=True)
    topic_id: Mapped[int] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    post_number: Mapped[int] = mapped_column(default=1, nullable=False)

    raw: Mapped[str] = mapped_column(Text, nullable=False, default="")

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    topic = relationship("Topic", back_populates="posts", lazy="selectin")
    user = relationship("User", back_populates="posts", lazy="selectin")
    reactions = relationship("Reaction", back_populates="post", lazy="noload")
    post_actions = relationship("PostAction", back_populates="post", lazy="noload")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()

    def __repr__(self) -> str:
        return f"<Post {self.id} #{self.post_number} in topic {self.topic_id}>"
