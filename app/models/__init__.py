# Models package
from app.db import Base
from app.models.user import User
from app.models.category import Category
from app.models.membership import CategoryMembership, TopicAllowedUser
from app.models.topic import Topic, TopicArchetype
from app.models.post import Post
from app.models.post_action import PostAction, PostActionType
from app.models.reaction import Reaction, ReactionUser

__all__ = [
    "Base",
    "User",
    "Category",
    "CategoryMembership",
    "TopicAllowedUser",
    "Topic",
    "TopicArchetype",
    "Post",
    "PostAction",
    "PostActionType",
    "Reaction",
    "ReactionUser",
]
