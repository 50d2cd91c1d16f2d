"""
Response models for the reactions API.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class BasicUser(BaseModel):
    """Public identity of a user."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    name: str | None = None
    avatar_template: str | None = None


class BasicPost(BaseModel):
    """Just enough of a post to link to it."""
    id: int
    topic_id: int
    post_number: int
    topic_title: str
    username: str | None = None
    excerpt: str = ""


class ReactionInfo(BaseModel):
    id: str
    type: str = "emoji"
    post_id: int


class UserReactionItem(BaseModel):
    """One entry of a user's given/received reaction history."""
    id: int
    source: str  # "reaction" or "like"
    user_id: int
    post_id: int
    created_at: datetime
    user: BasicUser
    post: BasicPost
    reaction: ReactionInfo


class ReactorUser(BaseModel):
    """A user in a post's per-reaction sample."""
    username: str
    name: str | None = None
    avatar_template: str | None = None
    can_undo: bool = False
    created_at: datetime


class ReactorGroup(BaseModel):
    id: str
    count: int
    users: list[ReactorUser]


class PostReactorsResponse(BaseModel):
    reaction_users: list[ReactorGroup]


class ReactionCount(BaseModel):
    id: str
    type: str = "emoji"
    count: int


class CurrentUserReaction(BaseModel):
    id: str
    type: str = "emoji"
    can_undo: bool


class PostReactionsResponse(BaseModel):
    """Reaction state of a post as seen by the viewer."""
    id: int
    topic_id: int
    post_number: int
    reactions: list[ReactionCount]
    reaction_users_count: int
    likes_count: int
    current_user_reaction: CurrentUserReaction | None = None


class ValidReactionsResponse(BaseModel):
    valid_reactions: list[str]
    main_reaction_id: str
