"""
Category model for grouping topics.
"""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.base import TimestampMixin


class Category(Base, TimestampMixin):
    """Forum category. Read-restricted categories are visible to members only."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(80), nullable=False)
    slug: Mapped[str] = mapped_column(String(80), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    read_restricted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    topics = relationship("Topic", back_populates="category", lazy="noload")
    memberships = relationship("CategoryMembership", back_populates="category", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Category {self.slug}>"
