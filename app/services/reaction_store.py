"""
Persistence for reactions.

Owns the Reaction aggregates and ReactionUser facts and keeps the
denormalized reaction_users_count in step with the ReactionUser rows.
Uniqueness of (user, post) is enforced by the database; a violation on add
is reported as a conflict result instead of an exception.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.models.post import Post
from app.models.post_action import PostAction, PostActionType
from app.models.reaction import EMOJI_REACTION_TYPE, Reaction, ReactionUser
from app.models.topic import Topic
from app.models.user import User
from app.services.guardian import Guardian

logger = logging.getLogger(__name__)


@dataclass
class AddResult:
    """Outcome of ReactionStore.add_reaction."""

    reaction_user: ReactionUser | None
    conflict: bool = False


@dataclass
class ReactionUserQuery:
    """Filters for paging through reaction (or legacy like) facts.

    user_id selects facts created by that user, post_user_id facts on posts
    written by that user. before_id is an exclusive id cursor.
    """

    user_id: int | None = None
    post_user_id: int | None = None
    post_ids: list[int] | None = None
    acting_username: str | None = None
    before_id: int | None = None
    limit: int = 20


class ReactionStore:
    """Reaction persistence bound to one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_user_reaction(self, user_id: int, post_id: int) -> ReactionUser | None:
        """Get the user's current reaction on the post, if any."""
        result = await self.db.execute(
            select(ReactionUser)
            .where(
                ReactionUser.user_id == user_id,
                ReactionUser.post_id == post_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_reaction(self, post_id: int, reaction_value: str) -> Reaction | None:
        result = await self.db.execute(
            select(Reaction)
            .where(
                Reaction.post_id == post_id,
                Reaction.reaction_value == reaction_value,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_or_create_reaction(self, post_id: int, reaction_value: str) -> Reaction:
        """Get the aggregate row for (post, kind), creating it on first use."""
        reaction = await self.find_reaction(post_id, reaction_value)
        if reaction:
            return reaction

        try:
            async with self.db.begin_nested():
                reaction = Reaction(
                    post_id=post_id,
                    reaction_type=EMOJI_REACTION_TYPE,
                    reaction_value=reaction_value,
                    reaction_users_count=0,
                )
                self.db.add(reaction)
        except IntegrityError:
            # Created concurrently by another request
            reaction = await self.find_reaction(post_id, reaction_value)
            if reaction is None:
                raise
        return reaction

    async def add_reaction(self, user_id: int, post_id: int, reaction_value: str) -> AddResult:
        """Record that user reacted to post with reaction_value.

        Returns a conflict result when another row for (user, post) already
        exists, which means a concurrent request won the race.
        """
        reaction = await self.get_or_create_reaction(post_id, reaction_value)

        reaction_user = ReactionUser(reaction_id=reaction.id, user_id=user_id, post_id=post_id)
        try:
            async with self.db.begin_nested():
                self.db.add(reaction_user)
        except IntegrityError:
            logger.info(f"Duplicate reaction by user {user_id} on post {post_id} ignored")
            return AddResult(reaction_user=None, conflict=True)
        set_committed_value(reaction_user, "reaction", reaction)

        await self._adjust_count(reaction, 1)
        return AddResult(reaction_user=reaction_user)

    async def remove_reaction(self, reaction_user: ReactionUser) -> bool:
        """Delete the fact and decrement its aggregate.

        Returns False when the row was already gone, which means a concurrent
        request removed it first. The count is left alone in that case.
        """
        reaction = reaction_user.reaction
        result = await self.db.execute(
            delete(ReactionUser).where(ReactionUser.id == reaction_user.id)
        )
        if result.rowcount == 0:
            logger.info(
                f"Reaction {reaction_user.id} by user {reaction_user.user_id} on post {reaction_user.post_id} already removed"
            )
            return False

        await self._adjust_count(reaction, -1)
        return True

    async def _adjust_count(self, reaction: Reaction, delta: int) -> None:
        stmt = update(Reaction).where(Reaction.id == reaction.id)
        if delta < 0:
            stmt = stmt.where(Reaction.reaction_users_count >= -delta)
        await self.db.execute(
            stmt.values(reaction_users_count=Reaction.reaction_users_count + delta)
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(reaction, attribute_names=["reaction_users_count"])

    async def reaction_counts(self, post_id: int) -> dict[str, int]:
        """Non-zero aggregate counts for a post keyed by reaction value."""
        result = await self.db.execute(
            select(Reaction.reaction_value, Reaction.reaction_users_count).where(
                Reaction.post_id == post_id,
                Reaction.reaction_users_count > 0,
            )
        )
        return {value: count for value, count in result.all()}

    async def list_reactions(self, post_id: int) -> list[Reaction]:
        """Aggregates for a post that currently have at least one user."""
        result = await self.db.execute(
            select(Reaction)
            .where(
                Reaction.post_id == post_id,
                Reaction.reaction_users_count > 0,
            )
            .order_by(Reaction.reaction_users_count.desc(), Reaction.reaction_value)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def recent_reaction_users(self, reaction: Reaction, limit: int) -> list[ReactionUser]:
        """Most recent users holding this reaction."""
        result = await self.db.execute(
            select(ReactionUser)
            .where(ReactionUser.reaction_id == reaction.id)
            .order_by(ReactionUser.created_at.desc(), ReactionUser.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def query_reaction_users(self, query: ReactionUserQuery, guardian: Guardian) -> list[ReactionUser]:
        """Page through reaction facts, newest first, limited to what guardian may see."""
        stmt = (
            select(ReactionUser)
            .join(Reaction, Reaction.id == ReactionUser.reaction_id)
            .join(Post, Post.id == ReactionUser.post_id)
            .join(Topic, Topic.id == Post.topic_id)
            .where(
                Reaction.reaction_users_count > 0,
                guardian.visible_post_clause(),
            )
        )

        if query.user_id is not None:
            stmt = stmt.where(ReactionUser.user_id == query.user_id)
        if query.post_user_id is not None:
            stmt = stmt.where(Post.user_id == query.post_user_id)
        if query.post_ids is not None:
            stmt = stmt.where(ReactionUser.post_id.in_(query.post_ids))
        if query.acting_username:
            stmt = stmt.join(User, User.id == ReactionUser.user_id).where(
                func.lower(User.username) == query.acting_username.lower()
            )
        if query.before_id is not None:
            stmt = stmt.where(ReactionUser.id < query.before_id)

        stmt = (
            stmt.order_by(ReactionUser.created_at.desc(), ReactionUser.id.desc())
            .limit(query.limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def query_likes(self, query: ReactionUserQuery, guardian: Guardian) -> list[PostAction]:
        """Page through legacy like facts with the same filters as query_reaction_users."""
        stmt = (
            select(PostAction)
            .join(Post, Post.id == PostAction.post_id)
            .join(Topic, Topic.id == Post.topic_id)
            .where(
                PostAction.post_action_type_id == PostActionType.LIKE.value,
                PostAction.deleted_at.is_(None),
                guardian.visible_post_clause(),
            )
        )

        if query.user_id is not None:
            stmt = stmt.where(PostAction.user_id == query.user_id)
        if query.post_user_id is not None:
            stmt = stmt.where(Post.user_id == query.post_user_id)
        if query.post_ids is not None:
            stmt = stmt.where(PostAction.post_id.in_(query.post_ids))
        if query.acting_username:
            stmt = stmt.join(User, User.id == PostAction.user_id).where(
                func.lower(User.username) == query.acting_username.lower()
            )
        if query.before_id is not None:
            stmt = stmt.where(PostAction.id < query.before_id)

        stmt = (
            stmt.order_by(PostAction.created_at.desc(), PostAction.id.desc())
            .limit(query.limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def post_likes(self, post_id: int, limit: int | None = None) -> list[PostAction]:
        """Live legacy likes on a post, newest first."""
        stmt = (
            select(PostAction)
            .where(
                PostAction.post_id == post_id,
                PostAction.post_action_type_id == PostActionType.LIKE.value,
                PostAction.deleted_at.is_(None),
            )
            .order_by(PostAction.created_at.desc(), PostAction.id.desc())
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_post_likes(self, post_id: int) -> int:
        result = await self.db.execute(
            select(func.count(PostAction.id)).where(
                PostAction.post_id == post_id,
                PostAction.post_action_type_id == PostActionType.LIKE.value,
                PostAction.deleted_at.is_(None),
            )
        )
        return result.scalar_one()

    async def find_user_like(self, user_id: int, post_id: int) -> PostAction | None:
        result = await self.db.execute(
            select(PostAction)
            .where(
                PostAction.user_id == user_id,
                PostAction.post_id == post_id,
                PostAction.post_action_type_id == PostActionType.LIKE.value,
                PostAction.deleted_at.is_(None),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()
