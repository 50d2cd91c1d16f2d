"""
Read path for reactions: user histories, per-post reactor lists and the
reaction summary returned after a toggle.

Reaction facts and legacy likes are different tables. Both are turned into
ReactionEvent values before they are merged, so sorting and serialization
never need to know which table a row came from.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from itertools import chain

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import as_utc
from app.models.post import Post
from app.models.post_action import PostAction
from app.models.reaction import EMOJI_REACTION_TYPE, ReactionUser
from app.models.user import User
from app.schemas.reaction import (
    BasicPost,
    BasicUser,
    CurrentUserReaction,
    PostReactionsResponse,
    ReactionCount,
    ReactionInfo,
    ReactorGroup,
    ReactorUser,
    UserReactionItem,
)
from app.services.exceptions import NotFound
from app.services.guardian import Guardian
from app.services.reaction_store import ReactionStore, ReactionUserQuery
from app.settings import settings


EXCERPT_LENGTH = 200


class ReactionSource(str, Enum):
    REACTION = "reaction"
    LIKE = "like"


@dataclass(frozen=True)
class ReactionEvent:
    """A reaction or legacy like, normalized for merging."""

    id: int
    source: ReactionSource
    reaction_value: str
    user: User
    post: Post
    created_at: datetime

    @classmethod
    def from_reaction_user(cls, reaction_user: ReactionUser) -> "ReactionEvent":
        return cls(
            id=reaction_user.id,
            source=ReactionSource.REACTION,
            reaction_value=reaction_user.reaction_value,
            user=reaction_user.user,
            post=reaction_user.post,
            created_at=as_utc(reaction_user.created_at),
        )

    @classmethod
    def from_like(cls, like: PostAction) -> "ReactionEvent":
        # Likes predate reactions and count as the main reaction
        return cls(
            id=like.id,
            source=ReactionSource.LIKE,
            reaction_value=settings.reactions_main_reaction_id,
            user=like.user,
            post=like.post,
            created_at=as_utc(like.created_at),
        )

    def to_item(self) -> UserReactionItem:
        post = self.post
        return UserReactionItem(
            id=self.id,
            source=self.source.value,
            user_id=self.user.id,
            post_id=post.id,
            created_at=self.created_at,
            user=BasicUser.model_validate(self.user),
            post=BasicPost(
                id=post.id,
                topic_id=post.topic_id,
                post_number=post.post_number,
                topic_title=post.topic.title,
                username=post.user.username if post.user else None,
                excerpt=(post.raw or "")[:EXCERPT_LENGTH],
            ),
            reaction=ReactionInfo(
                id=self.reaction_value,
                type=EMOJI_REACTION_TYPE,
                post_id=post.id,
            ),
        )


def merge_events(*sources: Iterable[ReactionEvent], limit: int) -> list[ReactionEvent]:
    """Merge independently paged sources, newest first, truncated to limit.

    Each source is paged with its own cursor, so the result is ordered
    within this page only. An item from one source can sort before the
    last item of a previous page of the other source.
    """
    merged = sorted(
        chain.from_iterable(sources),
        key=lambda event: (event.created_at, event.id),
        reverse=True,
    )
    return merged[:limit]


# ----------------------------------------------------------------------
# Lookups
# ----------------------------------------------------------------------

async def fetch_post(db: AsyncSession, post_id: int, guardian: Guardian) -> Post:
    """Load a post the viewer may see, or raise NotFound."""
    result = await db.execute(
        select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
    )
    post = result.scalar_one_or_none()
    return guardian.ensure_can_see_post(post)


async def fetch_user(db: AsyncSession, username: str, guardian: Guardian) -> User:
    """Load a user whose profile the viewer may see, or raise NotFound."""
    result = await db.execute(
        select(User).where(func.lower(User.username) == username.lower())
    )
    user = result.scalar_one_or_none()
    if not guardian.can_see_profile(user):
        raise NotFound("User not found")
    return user


# ----------------------------------------------------------------------
# Histories
# ----------------------------------------------------------------------

async def list_reactions_given(
    db: AsyncSession,
    guardian: Guardian,
    username: str,
    before_reaction_user_id: int | None = None,
) -> list[ReactionEvent]:
    """Reactions a user gave, newest first, one page."""
    user = await fetch_user(db, username, guardian)
    store = ReactionStore(db)

    reaction_users = await store.query_reaction_users(
        ReactionUserQuery(
            user_id=user.id,
            before_id=before_reaction_user_id,
            limit=settings.reactions_page_size,
        ),
        guardian,
    )
    return [ReactionEvent.from_reaction_user(ru) for ru in reaction_users]


async def list_reactions_received(
    db: AsyncSession,
    guardian: Guardian,
    username: str,
    before_reaction_user_id: int | None = None,
    before_post_id: int | None = None,
    before_like_id: int | None = None,
    acting_username: str | None = None,
    include_likes: bool = False,
) -> list[ReactionEvent]:
    """Reactions (and optionally legacy likes) on a user's posts, one page."""
    user = await fetch_user(db, username, guardian)
    store = ReactionStore(db)
    page_size = settings.reactions_page_size

    # before_post_id is the old name of the reaction cursor
    if before_reaction_user_id is None and before_post_id is not None:
        before_reaction_user_id = before_post_id

    reaction_users = await store.query_reaction_users(
        ReactionUserQuery(
            post_user_id=user.id,
            acting_username=acting_username,
            before_id=before_reaction_user_id,
            limit=page_size,
        ),
        guardian,
    )
    events = [ReactionEvent.from_reaction_user(ru) for ru in reaction_users]

    if not include_likes:
        return events

    likes = await store.query_likes(
        ReactionUserQuery(
            post_user_id=user.id,
            acting_username=acting_username,
            before_id=before_like_id,
            limit=page_size,
        ),
        guardian,
    )
    return merge_events(events, [ReactionEvent.from_like(like) for like in likes], limit=page_size)


# ----------------------------------------------------------------------
# Per-post views
# ----------------------------------------------------------------------

def _reactor_from_reaction_user(reaction_user: ReactionUser, guardian: Guardian) -> ReactorUser:
    user = reaction_user.user
    return ReactorUser(
        username=user.username,
        name=user.name,
        avatar_template=user.avatar_template,
        can_undo=guardian.can_undo(reaction_user.user_id, reaction_user.created_at),
        created_at=as_utc(reaction_user.created_at),
    )


def _reactor_from_like(like: PostAction, guardian: Guardian) -> ReactorUser:
    user = like.user
    return ReactorUser(
        username=user.username,
        name=user.name,
        avatar_template=user.avatar_template,
        can_undo=guardian.can_undo(like.user_id, like.created_at),
        created_at=as_utc(like.created_at),
    )


async def list_post_reactors(
    db: AsyncSession,
    guardian: Guardian,
    post_id: int,
    reaction_value: str | None = None,
) -> list[ReactorGroup]:
    """Who reacted to a post, grouped by reaction kind.

    The main reaction comes first and also counts legacy likes. Other kinds
    follow by count. Each group carries at most max_users_count + 1 of the
    most recent users so clients can tell there are more.
    """
    post = await fetch_post(db, post_id, guardian)
    store = ReactionStore(db)
    main_id = settings.reactions_main_reaction_id
    sample_size = settings.reactions_max_users_count + 1

    groups: list[ReactorGroup] = []
    reactions = await store.list_reactions(post.id)

    if reaction_value is None or reaction_value == main_id:
        main_reaction = next((r for r in reactions if r.reaction_value == main_id), None)
        likes_count = await store.count_post_likes(post.id)
        count = likes_count + (main_reaction.reaction_users_count if main_reaction else 0)

        if count > 0:
            users = [_reactor_from_like(like, guardian) for like in await store.post_likes(post.id, sample_size)]
            if main_reaction:
                users.extend(
                    _reactor_from_reaction_user(ru, guardian)
                    for ru in await store.recent_reaction_users(main_reaction, sample_size)
                )
            users.sort(key=lambda user: user.created_at, reverse=True)
            groups.append(ReactorGroup(id=main_id, count=count, users=users[:sample_size]))

    for reaction in reactions:
        if reaction.reaction_value == main_id:
            continue
        if reaction_value is not None and reaction.reaction_value != reaction_value:
            continue
        users = [
            _reactor_from_reaction_user(ru, guardian)
            for ru in await store.recent_reaction_users(reaction, sample_size)
        ]
        groups.append(ReactorGroup(id=reaction.reaction_value, count=reaction.reaction_users_count, users=users))

    return groups


async def serialize_post(db: AsyncSession, post: Post, guardian: Guardian) -> PostReactionsResponse:
    """Reaction counts for a post plus the viewer's own reaction."""
    store = ReactionStore(db)
    main_id = settings.reactions_main_reaction_id

    counts = await store.reaction_counts(post.id)
    likes_count = await store.count_post_likes(post.id)
    if likes_count:
        counts[main_id] = counts.get(main_id, 0) + likes_count

    reactions = [
        ReactionCount(id=value, type=EMOJI_REACTION_TYPE, count=count)
        for value, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]

    current = None
    if not guardian.is_anonymous:
        reaction_user = await store.find_user_reaction(guardian.user_id, post.id)
        if reaction_user:
            current = CurrentUserReaction(
                id=reaction_user.reaction_value,
                type=EMOJI_REACTION_TYPE,
                can_undo=guardian.can_undo(reaction_user.user_id, reaction_user.created_at),
            )
        else:
            like = await store.find_user_like(guardian.user_id, post.id)
            if like:
                current = CurrentUserReaction(
                    id=main_id,
                    type=EMOJI_REACTION_TYPE,
                    can_undo=guardian.can_undo(like.user_id, like.created_at),
                )

    return PostReactionsResponse(
        id=post.id,
        topic_id=post.topic_id,
        post_number=post.post_number,
        reactions=reactions,
        reaction_users_count=sum(counts.values()),
        likes_count=likes_count,
        current_user_reaction=current,
    )
