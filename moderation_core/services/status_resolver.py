"""
Status Resolver - derives a content item's final status from its facets.
The precedence table below is the only place the ordering is defined;
creation, moderation and override all go through it.
"""

from typing import Dict, Mapping

from moderation_core.lib.errors import ValidationError
from moderation_core.models.content import Content
from moderation_core.models.enums import MediaType, Status


# Ordered rule table: the first status present among the facets wins.
# APPROVED is last, so it only results when every present facet is APPROVED.
STATUS_PRECEDENCE = (
    Status.REJECTED,
    Status.FLAGGED,
    Status.PENDING,
    Status.APPROVED,
)


def derive_final_status(facet_statuses: Mapping[MediaType, Status]) -> Status:
    """Final status for the given present facets and their latest statuses."""
    if not facet_statuses:
        raise ValidationError("Content must have at least one facet (text, image or video)")
    present = set(facet_statuses.values())
    for status in STATUS_PRECEDENCE:
        if status in present:
            return status
    raise ValidationError(f"Unknown facet statuses: {sorted(present)}")


def present_facets(content: Content) -> list:
    return [m for m in MediaType if content.has_facet(m)]


def facet_statuses(content: Content) -> Dict[MediaType, Status]:
    """Statuses of present facets only; absent ones take no part."""
    return {m: content.facet_status(m) for m in present_facets(content)}


def resolve(content: Content) -> Status:
    return derive_final_status(facet_statuses(content))


def require_facets(content: Content) -> None:
    """Creation guard: a content item must carry at least one facet."""
    if not present_facets(content):
        raise ValidationError("At least one of text, image or video is required")
