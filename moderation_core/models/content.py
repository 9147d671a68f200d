"""
Content and Moderation Result data models.
Pydantic models for type safety and validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field

from moderation_core.models.base import ApiModel, new_id, utcnow
from moderation_core.models.enums import FACET_FIELDS, MediaType, Status


class StatusAssignment(ApiModel):
    """Full set of statuses for one content item."""
    text_status: Status
    image_status: Status
    video_status: Status
    final_status: Status


class Content(ApiModel):
    """
    Aggregate root: one submitted item with up to three media facets.
    Absent facets stay PENDING and do not take part in derivation.
    """
    id: str = Field(default_factory=new_id)

    # Facets (opaque text / URL references)
    text: Optional[str] = None
    image: Optional[str] = None
    video: Optional[str] = None

    # Per-facet and final status
    text_status: Status = Status.PENDING
    image_status: Status = Status.PENDING
    video_status: Status = Status.PENDING
    final_status: Status = Status.PENDING

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def has_facet(self, media_type: MediaType) -> bool:
        value = getattr(self, FACET_FIELDS[media_type][0])
        return bool(value and value.strip())

    def facet_status(self, media_type: MediaType) -> Status:
        return getattr(self, FACET_FIELDS[media_type][1])

    def set_facet_status(self, media_type: MediaType, status: Status) -> None:
        setattr(self, FACET_FIELDS[media_type][1], status)

    def status_snapshot(self) -> StatusAssignment:
        return StatusAssignment(
            text_status=self.text_status,
            image_status=self.image_status,
            video_status=self.video_status,
            final_status=self.final_status,
        )

    def apply_statuses(self, statuses: StatusAssignment) -> None:
        self.text_status = statuses.text_status
        self.image_status = statuses.image_status
        self.video_status = statuses.video_status
        self.final_status = statuses.final_status


class ModerationResult(ApiModel):
    """
    One machine assessment of one facet.
    Immutable once written; the latest per facet drives the facet status.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    content_id: str
    media_type: MediaType
    status: Status
    risk_score: float = Field(ge=0.0, le=1.0)
    explanation: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class ContentCreate(ApiModel):
    """Upload payload: at least one facet must be non-blank."""
    text: Optional[str] = None
    image: Optional[str] = None
    video: Optional[str] = None


class ModerationResultCreate(ApiModel):
    """Scoring result handed in by the external pipeline."""
    content_id: Optional[str] = None
    media_type: MediaType
    status: Status
    risk_score: float = Field(ge=0.0, le=1.0)
    explanation: Optional[str] = None
