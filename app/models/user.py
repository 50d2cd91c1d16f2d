"""
User model for forum identity.
"""

import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.base import TimestampMixin, as_utc

SESSION_EXPIRE_HOURS = 168


class User(Base, TimestampMixin):
    """Forum user account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(60), unique=True, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_template: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Session management
    session_token: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True, index=True)
    session_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Status
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    is_staff: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Relationships
    category_memberships = relationship("CategoryMembership", back_populates="user", lazy="noload")
    posts = relationship("Post", back_populates="user", lazy="noload")

    def generate_session_token(self, expire_hours: int = SESSION_EXPIRE_HOURS) -> str:
        """Generate a new session token and set expiry."""
        self.session_token = secrets.token_hex(32)
        self.session_expires_at = datetime.now(timezone.utc) + timedelta(hours=expire_hours)
        return self.session_token

    def is_session_valid(self) -> bool:
        """Check if current session is valid."""
        if not self.session_token or not self.session_expires_at:
            return False
        return datetime.now(timezone.utc) < as_utc(self.session_expires_at)

    def __repr__(self) -> str:
        return f"<User {self.username}>"
