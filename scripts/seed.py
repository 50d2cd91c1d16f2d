"""Seed script to populate database with sample forum data."""

import asyncio
import sys
from datetime import timedelta

sys.path.insert(0, ".")

from sqlalchemy import select

from app.db import async_session_maker, init_db
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
from app.models.base import utcnow
from app.services.reaction_manager import ReactionManager


async def seed_database():
    """Seed the database with sample data."""
    await init_db()

    async with async_session_maker() as session:
        # Check if already seeded
        existing = await session.execute(select(User).limit(1))
        if existing.scalar_one_or_none():
            print("Database already seeded. Skipping.")
            return

        print("Seeding database...")

        alice = User(username="alice", name="Alice Johnson")
        bob = User(username="bob", name="Bob Smith")
        carol = User(username="carol", name="Carol Williams", is_staff=True)
        session.add_all([alice, bob, carol])
        await session.flush()
        for user in (alice, bob, carol):
            token = user.generate_session_token()
            print(f"Created user {user.username} (session token {token})")

        general = Category(name="General", slug="general")
        staff = Category(name="Staff", slug="staff", read_restricted=True)
        session.add_all([general, staff])
        await session.flush()
        session.add(CategoryMembership(category_id=staff.id, user_id=carol.id))
        print("Created categories: general, staff (restricted)")

        welcome = Topic(title="Welcome to the forum", category_id=general.id, user_id=alice.id)
        private = Topic(title="Lunch?", user_id=bob.id, archetype=TopicArchetype.PRIVATE_MESSAGE.value)
        session.add_all([welcome, private])
        await session.flush()
        session.add_all([
            TopicAllowedUser(topic_id=private.id, user_id=bob.id),
            TopicAllowedUser(topic_id=private.id, user_id=alice.id),
        ])

        first = Post(topic_id=welcome.id, user_id=alice.id, post_number=1, raw="Hello everyone!")
        reply = Post(topic_id=welcome.id, user_id=bob.id, post_number=2, raw="Glad to be here.")
        session.add_all([first, reply])
        await session.flush()

        # A like from before reactions existed
        session.add(PostAction(
            post_id=first.id,
            user_id=carol.id,
            post_action_type_id=PostActionType.LIKE.value,
            created_at=utcnow() - timedelta(days=30),
        ))
        await session.flush()

        manager = ReactionManager(session)
        await manager.toggle(bob, first, "heart")
        await manager.toggle(alice, reply, "laughing")
        await manager.toggle(carol, reply, "thumbsup")

        await session.commit()
        print("Seeded topics, posts, likes and reactions.")


if __name__ == "__main__":
    asyncio.run(seed_database())
