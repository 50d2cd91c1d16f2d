"""
Viewer authorization for reaction reads and writes.

A Guardian wraps the requesting user (or None for anonymous visitors) and is
passed explicitly into every query that must respect visibility rules:
deleted posts/topics, read-restricted categories and private messages.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import ColumnElement, and_, exists, false, or_

from app.models.base import as_utc
from app.models.category import Category
from app.models.membership import CategoryMembership, TopicAllowedUser
from app.models.post import Post
from app.models.topic import Topic, TopicArchetype
from app.models.user import User
from app.services.exceptions import NotFound
from app.settings import settings


class Guardian:
    """Answers "may this viewer see / undo this?" questions."""

    def __init__(self, user: User | None = None):
        self.user = user

    @property
    def is_anonymous(self) -> bool:
        return self.user is None

    @property
    def is_staff(self) -> bool:
        return self.user is not None and self.user.is_staff

    @property
    def user_id(self) -> int | None:
        return self.user.id if self.user else None

    # ------------------------------------------------------------------
    # Single object checks
    # ------------------------------------------------------------------

    def can_see_topic(self, topic: Topic | None) -> bool:
        if topic is None or topic.is_deleted:
            return False
        if self.is_staff:
            return True

        if topic.is_private_message:
            if self.is_anonymous:
                return False
            return any(allowed.user_id == self.user_id for allowed in topic.allowed_users)

        category = topic.category
        if category is None or not category.read_restricted:
            return True
        if self.is_anonymous:
            return False
        return any(membership.user_id == self.user_id for membership in category.memberships)

    def can_see_post(self, post: Post | None) -> bool:
        if post is None or post.is_deleted:
            return False
        return self.can_see_topic(post.topic)

    def ensure_can_see_post(self, post: Post | None) -> Post:
        """Return the post or raise NotFound (hidden posts look missing)."""
        if not self.can_see_post(post):
            raise NotFound("Post not found")
        return post

    def can_include_inactive(self) -> bool:
        return self.is_staff or (not self.is_anonymous and settings.show_inactive_accounts)

    def can_see_profile(self, user: User | None) -> bool:
        if user is None:
            return False
        return user.is_active or self.can_include_inactive()

    def can_undo(self, owner_id: int, created_at: datetime | None) -> bool:
        """Owner may still undo a reaction or like inside the undo window."""
        if self.is_anonymous or owner_id != self.user_id or created_at is None:
            return False
        window = timedelta(minutes=settings.post_undo_action_window_mins)
        return datetime.now(timezone.utc) - as_utc(created_at) < window

    # ------------------------------------------------------------------
    # Bulk query filters
    # ------------------------------------------------------------------

    def visible_topic_clause(self) -> ColumnElement[bool]:
        """Boolean expression over Topic restricting rows to what the viewer may see.

        Callers must have Topic in the FROM clause.
        """
        not_deleted = Topic.deleted_at.is_(None)
        if self.is_staff:
            return not_deleted

        open_category = or_(
            Topic.category_id.is_(None),
            exists().where(
                Category.id == Topic.category_id,
                Category.read_restricted.is_(false()),
            ),
        )

        if self.is_anonymous:
            category_access = open_category
            private_message_access = false()
        else:
            category_access = or_(
                open_category,
                exists().where(
                    CategoryMembership.category_id == Topic.category_id,
                    CategoryMembership.user_id == self.user_id,
                ),
            )
            private_message_access = exists().where(
                TopicAllowedUser.topic_id == Topic.id,
                TopicAllowedUser.user_id == self.user_id,
            )

        return and_(
            not_deleted,
            or_(
                and_(Topic.archetype == TopicArchetype.REGULAR.value, category_access),
                and_(Topic.archetype == TopicArchetype.PRIVATE_MESSAGE.value, private_message_access),
            ),
        )

    def visible_post_clause(self) -> ColumnElement[bool]:
        """Like visible_topic_clause, also excluding deleted posts.

        Callers must have Post and Topic in the FROM clause.
        """
        return and_(Post.deleted_at.is_(None), self.visible_topic_clause())

