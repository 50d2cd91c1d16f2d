"""
Domain errors raised by the reaction services.
"""


class ReactionError(Exception):
    """Base class for reaction service errors."""


class InvalidReaction(ReactionError):
    """Requested reaction kind is not one of the configured kinds."""

    def __init__(self, reaction_value: str | None):
        self.reaction_value = reaction_value
        super().__init__(f"Invalid reaction: {reaction_value!r}")


class NotFound(ReactionError):
    """Post or user does not exist, or the viewer is not allowed to see it."""

    def __init__(self, detail: str = "Not found"):
        self.detail = detail
        super().__init__(detail)
