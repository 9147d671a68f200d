"""
Error kinds raised by the moderation core.
Each one is scoped to a single request; none is fatal to the process.
"""


class ModerationError(Exception):
    """Base class for all moderation core errors."""


class ValidationError(ModerationError):
    """Input rejected before anything was written."""


class ContentNotFoundError(ModerationError):
    """No content with the given id."""

    def __init__(self, content_id: str):
        super().__init__(f"Content {content_id} not found")
        self.content_id = content_id


class StoreConflictError(ModerationError):
    """The store could not serialize a write, even after a retry."""
