"""
Reaction models for emoji reactions on posts.

A Reaction is the per-post, per-kind aggregate with a denormalized user count.
A ReactionUser is the fact that one user holds that reaction on the post.
"""

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.base import TimestampMixin

EMOJI_REACTION_TYPE = "emoji"


class Reaction(Base, TimestampMixin):
    """Aggregate of one reaction kind on one post."""

    __tablename__ = "reactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reaction_type: Mapped[str] = mapped_column(String(20), default=EMOJI_REACTION_TYPE, nullable=False)

    # Emoji shortcode, e.g. "heart"
    reaction_value: Mapped[str] = mapped_column(String(100), nullable=False)

    # Kept at zero rather than deleted when the last user un-reacts
    reaction_users_count: Mapped[int] = mapped_column(default=0, nullable=False)

    # Relationships
    post = relationship("Post", back_populates="reactions")
    reaction_users = relationship("ReactionUser", back_populates="reaction", lazy="noload")

    __table_args__ = (
        UniqueConstraint("post_id", "reaction_value", name="uq_reaction_post_value"),
    )

    def __repr__(self) -> str:
        return f"<Reaction {self.reaction_value} x{self.reaction_users_count} on post {self.post_id}>"


class ReactionUser(Base, TimestampMixin):
    """One user's reaction on a post."""

    __tablename__ = "reaction_users"

    id: Mapped[int] = mapped_column(primary_key=True)
    reaction_id: Mapped[int] = mapped_column(
        ForeignKey("reactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Denormalized from the reaction so (user, post) can be unique
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    reaction = relationship("Reaction", back_populates="reaction_users", lazy="selectin")
    user = relationship("User", lazy="selectin")
    post = relationship("Post", lazy="selectin")

    # One reaction per user per post
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_reaction_user_post"),
    )

    @property
    def reaction_value(self) -> str:
        return self.reaction.reaction_value

    def __repr__(self) -> str:
        return f"<ReactionUser user {self.user_id} on post {self.post_id}>"
