"""
Reactions router for post reactions.
"""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from app.deps import CurrentUser, DBSession, ViewerGuardian
from app.routers.realtime import publish_reaction_change
from app.schemas.reaction import (
    PostReactionsResponse,
    PostReactorsResponse,
    UserReactionItem,
    ValidReactionsResponse,
)
from app.services.exceptions import InvalidReaction, NotFound
from app.services.reaction_feed import (
    fetch_post,
    list_post_reactors,
    list_reactions_given,
    list_reactions_received,
    serialize_post,
)
from app.services.reaction_manager import ReactionManager
from app.settings import settings

router = APIRouter(prefix="/reactions", tags=["reactions"])


def _not_found(exc: NotFound) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.detail)


@router.get("/valid", response_model=ValidReactionsResponse)
async def valid_reactions():
    """Configured reaction kinds."""
    return ValidReactionsResponse(
        valid_reactions=settings.valid_reactions,
        main_reaction_id=settings.reactions_main_reaction_id,
    )


@router.put("/posts/{post_id}/custom-reactions/{reaction}/toggle", response_model=PostReactionsResponse)
async def toggle_reaction(
    post_id: int,
    reaction: str,
    user: CurrentUser,
    guardian: ViewerGuardian,
    db: DBSession,
):
    """Toggle a reaction on a post (add, remove or swap)."""
    try:
        post = await fetch_post(db, post_id, guardian)
    except NotFound as exc:
        raise _not_found(exc)

    manager = ReactionManager(db)
    try:
        result = await manager.toggle(user, post, reaction)
    except InvalidReaction:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid reaction: {reaction}",
        )

    await db.commit()
    await publish_reaction_change(post, result)

    return await serialize_post(db, post, guardian)


@router.get("/posts/reactions", response_model=list[UserReactionItem])
async def reactions_given(
    user: CurrentUser,
    guardian: ViewerGuardian,
    db: DBSession,
    username: Annotated[str, Query(min_length=1)],
    before_reaction_user_id: int | None = None,
):
    """Reactions given by a user, newest first."""
    try:
        events = await list_reactions_given(db, guardian, username, before_reaction_user_id)
    except NotFound as exc:
        raise _not_found(exc)
    return [event.to_item() for event in events]


@router.get("/posts/reactions-received", response_model=list[UserReactionItem])
async def reactions_received(
    user: CurrentUser,
    guardian: ViewerGuardian,
    db: DBSession,
    username: Annotated[str, Query(min_length=1)],
    before_reaction_user_id: int | None = None,
    before_post_id: int | None = None,
    before_like_id: int | None = None,
    acting_username: str | None = None,
    include_likes: bool = False,
):
    """Reactions received on a user's posts, optionally merged with legacy likes."""
    try:
        events = await list_reactions_received(
            db,
            guardian,
            username,
            before_reaction_user_id=before_reaction_user_id,
            before_post_id=before_post_id,
            before_like_id=before_like_id,
            acting_username=acting_username,
            include_likes=include_likes,
        )
    except NotFound as exc:
        raise _not_found(exc)
    return [event.to_item() for event in events]


@router.get("/posts/{post_id}/reactions-users", response_model=PostReactorsResponse)
async def post_reactions_users(
    post_id: int,
    guardian: ViewerGuardian,
    db: DBSession,
    reaction_value: str | None = None,
):
    """Users who reacted to a post, grouped by reaction."""
    try:
        groups = await list_post_reactors(db, guardian, post_id, reaction_value)
    except NotFound as exc:
        raise _not_found(exc)
    return PostReactorsResponse(reaction_users=groups)
