"""
Enumeration definitions for the content moderation core.
Statuses, media facets, lifecycle event types and audit actions.
"""

from enum import Enum


class Status(str, Enum):
    """Moderation status of a facet or of the content as a whole."""
    PENDING = "PENDING"       # Not yet moderated (or facet absent)
    APPROVED = "APPROVED"     # Passed moderation
    REJECTED = "REJECTED"     # Failed moderation
    FLAGGED = "FLAGGED"       # Needs a closer look


class MediaType(str, Enum):
    """Media facets a content item may carry."""
    TXT = "TXT"
    IMG = "IMG"
    VIDEO = "VIDEO"


class EventType(str, Enum):
    """Lifecycle markers written to the event log."""
    CREATED = "CREATED"       # Content submitted
    UPDATED = "UPDATED"       # Human override of statuses
    MODERATED = "MODERATED"   # Machine result recorded


class AuditAction(str, Enum):
    """Human actions recorded in the audit trail."""
    REVIEWED = "REVIEWED"       # Looked at, nothing changed
    OVERRIDDEN = "OVERRIDDEN"   # Statuses set by hand


# Content attribute holding each facet's reference and status
FACET_FIELDS = {
    MediaType.TXT: ("text", "text_status"),
    MediaType.IMG: ("image", "image_status"),
    MediaType.VIDEO: ("video", "video_status"),
}
