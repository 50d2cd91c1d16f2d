"""Tests for viewer authorization."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.models import Post, Topic
from app.services.exceptions import NotFound
from app.services.guardian import Guardian


async def load(db, post: Post) -> Post:
    """Reload a post with its topic, category and participants."""
    result = await db.execute(
        select(Post).where(Post.id == post.id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def visible_post_ids(db, guardian: Guardian) -> set[int]:
    result = await db.execute(
        select(Post.id)
        .join(Topic, Topic.id == Post.topic_id)
        .where(guardian.visible_post_clause())
    )
    return set(result.scalars().all())


@pytest.fixture
async def world(forum):
    """Posts in an open topic, a restricted category and a private message."""
    author = await forum.user("author")
    member = await forum.user("member")
    outsider = await forum.user("outsider")
    staff = await forum.user("moderator", is_staff=True)

    secret = await forum.category("secret", read_restricted=True, members=[member])
    public_post = await forum.post(await forum.topic("Open"), author)
    secret_post = await forum.post(await forum.topic("Hidden", category=secret), author)
    pm_post = await forum.post(await forum.topic("Private", private_to=[author, member]), author)

    return {
        "author": author,
        "member": member,
        "outsider": outsider,
        "staff": staff,
        "public": public_post,
        "secret": secret_post,
        "pm": pm_post,
    }


class TestSinglePostChecks:
    """Test can_see_post on loaded posts."""

    async def test_anonymous_sees_only_public(self, db, world):
        guardian = Guardian(None)
        assert guardian.can_see_post(await load(db, world["public"]))
        assert not guardian.can_see_post(await load(db, world["secret"]))
        assert not guardian.can_see_post(await load(db, world["pm"]))

    async def test_member_sees_restricted_and_pm(self, db, world):
        guardian = Guardian(world["member"])
        assert guardian.can_see_post(await load(db, world["secret"]))
        assert guardian.can_see_post(await load(db, world["pm"]))

    async def test_outsider_blocked(self, db, world):
        guardian = Guardian(world["outsider"])
        assert guardian.can_see_post(await load(db, world["public"]))
        assert not guardian.can_see_post(await load(db, world["secret"]))
        assert not guardian.can_see_post(await load(db, world["pm"]))

    async def test_staff_sees_everything(self, db, world):
        guardian = Guardian(world["staff"])
        for key in ("public", "secret", "pm"):
            assert guardian.can_see_post(await load(db, world[key]))

    async def test_deleted_post_hidden_from_everyone(self, db, world):
        world["public"].soft_delete()
        await db.flush()
        post = await load(db, world["public"])

        assert not Guardian(world["staff"]).can_see_post(post)
        assert not Guardian(world["author"]).can_see_post(post)

    async def test_deleted_topic_hides_its_posts(self, db, world):
        post = await load(db, world["public"])
        post.topic.soft_delete()
        await db.flush()
        post = await load(db, world["public"])

        assert not Guardian(world["author"]).can_see_post(post)
        assert world["public"].id not in await visible_post_ids(db, Guardian(world["author"]))

    async def test_ensure_raises_not_found(self, db, world):
        with pytest.raises(NotFound):
            Guardian(world["outsider"]).ensure_can_see_post(await load(db, world["pm"]))
        with pytest.raises(NotFound):
            Guardian(None).ensure_can_see_post(None)


class TestVisibleClause:
    """The SQL filter agrees with the single-object checks."""

    async def test_anonymous(self, db, world):
        assert await visible_post_ids(db, Guardian(None)) == {world["public"].id}

    async def test_outsider(self, db, world):
        assert await visible_post_ids(db, Guardian(world["outsider"])) == {world["public"].id}

    async def test_member(self, db, world):
        assert await visible_post_ids(db, Guardian(world["member"])) == {
            world["public"].id,
            world["secret"].id,
            world["pm"].id,
        }

    async def test_pm_participant_without_category_access(self, db, world):
        assert await visible_post_ids(db, Guardian(world["author"])) == {
            world["public"].id,
            world["pm"].id,
        }

    async def test_staff_excludes_deleted(self, db, world):
        world["secret"].soft_delete()
        await db.flush()

        assert await visible_post_ids(db, Guardian(world["staff"])) == {
            world["public"].id,
            world["pm"].id,
        }


class TestUndoAndProfiles:

    async def test_owner_can_undo_inside_window(self, forum):
        user = await forum.user("alice")
        guardian = Guardian(user)
        recent = datetime.now(timezone.utc) - timedelta(minutes=2)

        assert guardian.can_undo(user.id, recent)

    async def test_window_expired(self, forum):
        user = await forum.user("alice")
        old = datetime.now(timezone.utc) - timedelta(hours=1)

        assert not Guardian(user).can_undo(user.id, old)

    async def test_naive_timestamps_treated_as_utc(self, forum):
        user = await forum.user("alice")
        recent = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=1)

        assert Guardian(user).can_undo(user.id, recent)

    async def test_other_users_cannot_undo(self, forum):
        alice = await forum.user("alice")
        bob = await forum.user("bob")
        now = datetime.now(timezone.utc)

        assert not Guardian(bob).can_undo(alice.id, now)
        assert not Guardian(None).can_undo(alice.id, now)

    async def test_inactive_profile_visible_to_staff_only(self, forum):
        ghost = await forum.user("ghost", is_active=False)
        staff = await forum.user("moderator", is_staff=True)
        viewer = await forum.user("viewer")

        assert Guardian(staff).can_see_profile(ghost)
        assert not Guardian(viewer).can_see_profile(ghost)
        assert not Guardian(None).can_see_profile(None)
