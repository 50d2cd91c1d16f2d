"""
Membership models for category access and private message participation.
"""

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.base import TimestampMixin


class CategoryMembership(Base, TimestampMixin):
    """Grants a user read access to a read-restricted category."""

    __tablename__ = "category_memberships"
    __table_args__ = (
        UniqueConstraint("category_id", "user_id", name="uq_category_membership_category_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    category = relationship("Category", back_populates="memberships")
    user = relationship("User", back_populates="category_memberships")

    def __repr__(self) -> str:
        return f"<CategoryMembership user={self.user_id} category={self.category_id}>"


class TopicAllowedUser(Base, TimestampMixin):
    """Participant of a private message topic."""

    __tablename__ = "topic_allowed_users"
    __table_args__ = (
        UniqueConstraint("topic_id", "user_id", name="uq_topic_allowed_user_topic_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    topic_id: Mapped[int] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    topic = relationship("Topic", back_populates="allowed_users")
    user = relationship("User")

    def __repr__(self) -> str:
        return f"<TopicAllowedUser user={self.user_id} topic={self.topic_id}>"
