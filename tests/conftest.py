"""Shared fixtures: an in-memory database and a small forum to react in."""

import os

# Must be set before app.settings is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.db import Base, async_session_maker, create_tables, engine
from app.models import (
    Category,
    CategoryMembership,
    Post,
    PostAction,
    PostActionType,
    Topic,
    TopicAllowedUser,
    TopicArchetype,
    User,
)
from app.services.reaction_store import ReactionStore

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class Forum:
    """Builds users, topics and posts for tests."""

    def __init__(self, db):
        self.db = db
        self.store = ReactionStore(db)

    async def user(self, username: str, **kwargs) -> User:
        user = User(username=username, name=username.title(), **kwargs)
        self.db.add(user)
        await self.db.flush()
        return user

    async def category(self, slug: str, read_restricted: bool = False, members=()) -> Category:
        category = Category(name=slug.title(), slug=slug, read_restricted=read_restricted)
        self.db.add(category)
        await self.db.flush()
        for member in members:
            self.db.add(CategoryMembership(category_id=category.id, user_id=member.id))
        await self.db.flush()
        return category

    async def topic(self, title: str = "A topic", category: Category | None = None, private_to=()) -> Topic:
        topic = Topic(
            title=title,
            category_id=category.id if category else None,
            archetype=(TopicArchetype.PRIVATE_MESSAGE if private_to else TopicArchetype.REGULAR).value,
        )
        self.db.add(topic)
        await self.db.flush()
        for participant in private_to:
            self.db.add(TopicAllowedUser(topic_id=topic.id, user_id=participant.id))
        await self.db.flush()
        return topic

    async def post(self, topic: Topic, author: User, raw: str = "Some text", post_number: int = 1) -> Post:
        post = Post(topic_id=topic.id, user_id=author.id, raw=raw, post_number=post_number)
        self.db.add(post)
        await self.db.flush()
        return post

    async def like(self, user: User, post: Post, created_at: datetime | None = None) -> PostAction:
        like = PostAction(
            post_id=post.id,
            user_id=user.id,
            post_action_type_id=PostActionType.LIKE.value,
            created_at=created_at or BASE_TIME,
        )
        self.db.add(like)
        await self.db.flush()
        return like

    async def react(self, user: User, post: Post, value: str, created_at: datetime | None = None):
        result = await self.store.add_reaction(user.id, post.id, value)
        assert not result.conflict
        if created_at is not None:
            result.reaction_user.created_at = created_at
            await self.db.flush()
        return result.reaction_user

    async def count(self, post: Post, value: str) -> int:
        return (await self.store.reaction_counts(post.id)).get(value, 0)


def _minutes(n: float) -> datetime:
    return BASE_TIME + timedelta(minutes=n)


@pytest.fixture
def minutes():
    """Timestamp n minutes after BASE_TIME."""
    return _minutes


@pytest_asyncio.fixture
async def db():
    """Fresh schema and session per test."""
    await create_tables()
    async with async_session_maker() as session:
        yield session
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def forum(db):
    return Forum(db)


@pytest_asyncio.fixture
async def client():
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth():
    """Build request headers authenticating as a user with a live session."""

    def _auth(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {user.session_token}"}

    return _auth
