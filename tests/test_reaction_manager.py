"""Tests for reaction toggling."""

import pytest
from sqlalchemy import delete, func, select, update

from app.models import Reaction, ReactionUser
from app.services.exceptions import InvalidReaction
from app.services.reaction_manager import ReactionManager, ToggleResult


@pytest.fixture
async def setup(forum):
    alice = await forum.user("alice")
    bob = await forum.user("bob")
    topic = await forum.topic()
    post = await forum.post(topic, bob)
    return forum, alice, bob, post


async def live_rows(db, post) -> dict[str, int]:
    result = await db.execute(
        select(Reaction.reaction_value, func.count(ReactionUser.id))
        .join(ReactionUser, ReactionUser.reaction_id == Reaction.id)
        .where(Reaction.post_id == post.id)
        .group_by(Reaction.reaction_value)
    )
    return dict(result.all())


async def remove_elsewhere(db, reaction_user) -> None:
    """Delete a fact and decrement its count as a concurrent request would."""
    await db.execute(
        delete(ReactionUser)
        .where(ReactionUser.id == reaction_user.id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Reaction)
        .where(Reaction.id == reaction_user.reaction_id)
        .values(reaction_users_count=Reaction.reaction_users_count - 1)
        .execution_options(synchronize_session=False)
    )


class TestToggle:
    """Add, remove and swap."""

    async def test_first_toggle_adds(self, db, setup):
        forum, alice, _, post = setup
        result = await ReactionManager(db).toggle(alice, post, "heart")

        assert result == ToggleResult(reaction="heart", previous_reaction=None)
        assert await forum.count(post, "heart") == 1

    async def test_same_kind_removes(self, db, setup):
        forum, alice, _, post = setup
        manager = ReactionManager(db)
        await manager.toggle(alice, post, "heart")
        result = await manager.toggle(alice, post, "heart")

        assert result == ToggleResult(reaction=None, previous_reaction="heart")
        assert await forum.count(post, "heart") == 0
        assert await forum.store.find_user_reaction(alice.id, post.id) is None

    async def test_zero_count_keeps_aggregate_row(self, db, setup):
        forum, alice, _, post = setup
        manager = ReactionManager(db)
        await manager.toggle(alice, post, "heart")
        await manager.toggle(alice, post, "heart")

        reaction = await forum.store.find_reaction(post.id, "heart")
        assert reaction is not None
        assert reaction.reaction_users_count == 0

    async def test_different_kind_swaps(self, db, setup):
        forum, alice, _, post = setup
        manager = ReactionManager(db)
        await manager.toggle(alice, post, "heart")
        result = await manager.toggle(alice, post, "laughing")

        assert result == ToggleResult(reaction="laughing", previous_reaction="heart")
        assert await forum.count(post, "heart") == 0
        assert await forum.count(post, "laughing") == 1

        reaction_user = await forum.store.find_user_reaction(alice.id, post.id)
        assert reaction_user.reaction_value == "laughing"

    async def test_users_are_independent(self, db, setup):
        forum, alice, bob, post = setup
        manager = ReactionManager(db)
        await manager.toggle(alice, post, "heart")
        await manager.toggle(bob, post, "heart")
        await manager.toggle(bob, post, "cry")

        assert await forum.count(post, "heart") == 1
        assert await forum.count(post, "cry") == 1

    @pytest.mark.parametrize("times", [1, 2, 3, 4, 5])
    async def test_repeated_toggles_follow_parity(self, db, setup, times):
        forum, alice, _, post = setup
        manager = ReactionManager(db)
        for _ in range(times):
            await manager.toggle(alice, post, "open_mouth")

        reaction_user = await forum.store.find_user_reaction(alice.id, post.id)
        if times % 2:
            assert reaction_user.reaction_value == "open_mouth"
        else:
            assert reaction_user is None

    async def test_final_state_is_last_kind_or_none(self, db, setup):
        forum, alice, _, post = setup
        manager = ReactionManager(db)
        for value in ["heart", "cry", "cry", "angry", "heart"]:
            await manager.toggle(alice, post, value)

        reaction_user = await forum.store.find_user_reaction(alice.id, post.id)
        assert reaction_user.reaction_value == "heart"

    async def test_counts_match_rows(self, db, setup):
        forum, alice, bob, post = setup
        carol = await forum.user("carol")
        manager = ReactionManager(db)
        sequence = [
            (alice, "heart"), (bob, "heart"), (carol, "cry"),
            (alice, "cry"), (bob, "heart"), (carol, "angry"), (alice, "angry"),
        ]
        for user, value in sequence:
            await manager.toggle(user, post, value)

        rows = await live_rows(db, post)
        counts = await forum.store.reaction_counts(post.id)
        assert counts == {value: n for value, n in rows.items() if n}
        assert counts == {"angry": 2}


class TestValidation:

    async def test_unknown_kind_rejected(self, db, setup):
        forum, alice, _, post = setup
        with pytest.raises(InvalidReaction):
            await ReactionManager(db).toggle(alice, post, "not-an-emoji")

        assert await forum.store.reaction_counts(post.id) == {}
        assert await forum.store.find_reaction(post.id, "not-an-emoji") is None

    async def test_empty_kind_rejected(self, db, setup):
        _, alice, _, post = setup
        with pytest.raises(InvalidReaction):
            await ReactionManager(db).toggle(alice, post, "")


class TestConcurrentToggle:
    """A second request for the same (user, post) must not create a second row."""

    async def test_stale_read_resolves_as_benign_race(self, db, setup, monkeypatch):
        forum, alice, _, post = setup
        manager = ReactionManager(db)
        await manager.toggle(alice, post, "heart")

        # The second tab read "no reaction" before the first tab committed
        async def stale_lookup(user_id, post_id):
            return None

        monkeypatch.setattr(manager.store, "find_user_reaction", stale_lookup)
        result = await manager.toggle(alice, post, "heart")

        assert result.conflict is True
        assert result.reaction == "heart"
        assert await forum.count(post, "heart") == 1
        assert await live_rows(db, post) == {"heart": 1}

    async def test_session_usable_after_race(self, db, setup, monkeypatch):
        forum, alice, bob, post = setup
        manager = ReactionManager(db)
        await manager.toggle(alice, post, "heart")

        async def stale_lookup(user_id, post_id):
            return None

        monkeypatch.setattr(manager.store, "find_user_reaction", stale_lookup)
        await manager.toggle(alice, post, "cry")
        monkeypatch.undo()

        await manager.toggle(bob, post, "cry")
        await db.commit()

        assert await forum.store.reaction_counts(post.id) == {"heart": 1, "cry": 1}

    async def test_stale_row_on_toggle_off_keeps_count(self, db, setup, monkeypatch):
        """Two toggle-offs for the same reaction decrement the count once."""
        forum, alice, bob, post = setup
        manager = ReactionManager(db)
        await manager.toggle(alice, post, "heart")
        await manager.toggle(bob, post, "heart")

        stale = await manager.store.find_user_reaction(alice.id, post.id)
        await remove_elsewhere(db, stale)

        async def stale_lookup(user_id, post_id):
            return stale

        monkeypatch.setattr(manager.store, "find_user_reaction", stale_lookup)
        result = await manager.toggle(alice, post, "heart")

        assert result == ToggleResult(reaction=None, previous_reaction="heart", conflict=True)
        assert await forum.count(post, "heart") == 1
        assert await live_rows(db, post) == {"heart": 1}

    async def test_stale_row_on_swap_does_not_re_add(self, db, setup, monkeypatch):
        forum, alice, bob, post = setup
        manager = ReactionManager(db)
        await manager.toggle(alice, post, "heart")
        await manager.toggle(bob, post, "heart")

        stale = await manager.store.find_user_reaction(alice.id, post.id)
        await remove_elsewhere(db, stale)

        async def stale_lookup(user_id, post_id):
            return stale

        monkeypatch.setattr(manager.store, "find_user_reaction", stale_lookup)
        result = await manager.toggle(alice, post, "cry")

        assert result.conflict is True
        assert result.reaction is None
        assert await forum.store.reaction_counts(post.id) == {"heart": 1}
        assert await live_rows(db, post) == {"heart": 1}


class TestChangedReactions:

    def test_swap_lists_both(self):
        assert ToggleResult("laughing", "heart").changed_reactions == ["laughing", "heart"]

    def test_add_lists_new_only(self):
        assert ToggleResult("heart", None).changed_reactions == ["heart"]

    def test_remove_lists_previous_only(self):
        assert ToggleResult(None, "heart").changed_reactions == ["heart"]
