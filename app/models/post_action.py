"""
Legacy post actions (likes, flags) recorded before reactions existed.
"""

from datetime import datetime
from enum import IntEnum

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.base import TimestampMixin


class PostActionType(IntEnum):
    BOOKMARK = 1
    LIKE = 2
    OFF_TOPIC = 3
    INAPPROPRIATE = 4
    SPAM = 8


class PostAction(Base, TimestampMixin):
    """A user's action on a post. Likes are merged into the main reaction on read."""

    __tablename__ = "post_actions"

    id: Mapped[int] = mapped_column(primary_key=True)
    post_id: Mapped[int] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_action_type_id: Mapped[int] = mapped_column(default=PostActionType.LIKE, nullable=False)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    post = relationship("Post", back_populates="post_actions", lazy="selectin")
    user = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return f"<PostAction {self.post_action_type_id} by user {self.user_id} on post {self.post_id}>"
