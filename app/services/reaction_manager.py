"""
Reaction toggling.

A user holds at most one reaction per post. Toggling the reaction they
already hold removes it, toggling a different one swaps it.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.post import Post
from app.models.user import User
from app.services.exceptions import InvalidReaction
from app.services.reaction_store import ReactionStore
from app.settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToggleResult:
    """Transition produced by a toggle.

    reaction is the kind the user holds afterwards (None when toggled off),
    previous_reaction the kind held before. conflict is set when a
    concurrent request for the same (user, post) already wrote the row.
    """

    reaction: str | None
    previous_reaction: str | None
    conflict: bool = False

    @property
    def changed_reactions(self) -> list[str]:
        """Reaction kinds whose aggregates were touched, for notifying clients."""
        changed = []
        for value in (self.reaction, self.previous_reaction):
            if value and value not in changed:
                changed.append(value)
        return changed


class ReactionManager:
    """Applies toggles for one database session."""

    def __init__(self, db: AsyncSession, store: ReactionStore | None = None):
        self.db = db
        self.store = store or ReactionStore(db)

    def validate(self, reaction_value: str | None) -> str:
        """Return reaction_value if it is a configured kind, else raise InvalidReaction."""
        if not settings.is_valid_reaction(reaction_value):
            raise InvalidReaction(reaction_value)
        return reaction_value

    async def toggle(self, user: User, post: Post, reaction_value: str) -> ToggleResult:
        """Add, remove or swap the user's reaction on post."""
        reaction_value = self.validate(reaction_value)

        existing = await self.store.find_user_reaction(user.id, post.id)

        if existing is None:
            added = await self.store.add_reaction(user.id, post.id, reaction_value)
            result = ToggleResult(reaction_value, None, conflict=added.conflict)
        else:
            previous_value = existing.reaction_value
            removed = await self.store.remove_reaction(existing)
            if not removed:
                # Already removed by a concurrent request
                result = ToggleResult(None, previous_value, conflict=True)
            elif previous_value == reaction_value:
                result = ToggleResult(None, previous_value)
            else:
                added = await self.store.add_reaction(user.id, post.id, reaction_value)
                result = ToggleResult(reaction_value, previous_value, conflict=added.conflict)

        if result.conflict:
            # Second tab or double click; the other request already applied it
            logger.info(f"Reaction toggle by {user.username} on post {post.id} raced, treating as applied")
        else:
            logger.info(
                f"Reaction toggle by {user.username} on post {post.id}: "
                f"{result.previous_reaction} -> {result.reaction}"
            )
        return result
