"""
Event log and human review data models.
Append-only lifecycle events, audit records and the override request.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import ConfigDict, Field, model_validator

from moderation_core.models.base import ApiModel, new_id, utcnow
from moderation_core.models.content import Content, ModerationResult, StatusAssignment
from moderation_core.models.enums import AuditAction, EventType, MediaType, Status


class CreatedPayload(ApiModel):
    """CREATED carries no data."""
    model_config = ConfigDict(extra="forbid")


class ModeratedPayload(ApiModel):
    """MODERATED: which facet was scored and where the final status landed."""
    media_type: MediaType
    status: Status
    risk_score: float
    previous_final_status: Status
    final_status: Status


class UpdatedPayload(ApiModel):
    """UPDATED: statuses before and after a human override."""
    old_statuses: StatusAssignment
    new_statuses: StatusAssignment


EventPayload = Union[ModeratedPayload, UpdatedPayload, CreatedPayload]

PAYLOAD_TYPES = {
    EventType.CREATED: CreatedPayload,
    EventType.MODERATED: ModeratedPayload,
    EventType.UPDATED: UpdatedPayload,
}


class ModerationEvent(ApiModel):
    """
    Append-only lifecycle marker.
    The payload schema is fixed by the event type.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    content_id: str
    event_type: EventType
    payload: EventPayload = Field(default_factory=CreatedPayload)
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="before")
    @classmethod
    def _coerce_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        event_type = data.get("event_type", data.get("eventType"))
        if event_type is None:
            return data
        payload_type = PAYLOAD_TYPES[EventType(event_type)]
        payload = data.get("payload")
        if payload is None:
            payload = {}
        if not isinstance(payload, payload_type):
            if isinstance(payload, ApiModel):
                raise ValueError(
                    f"{type(payload).__name__} is not a valid payload for {EventType(event_type).value}"
                )
            payload = payload_type.model_validate(payload)
        return {**data, "payload": payload}

    def transition(self) -> Optional[tuple]:
        """(previous, new) final status if this event moved it, else None."""
        if isinstance(self.payload, ModeratedPayload):
            old, new = self.payload.previous_final_status, self.payload.final_status
        elif isinstance(self.payload, UpdatedPayload):
            old, new = self.payload.old_statuses.final_status, self.payload.new_statuses.final_status
        else:
            return None
        return (old, new) if old != new else None


class Audit(ApiModel):
    """Human action record. Always carries a reason for overrides."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    content_id: str
    action: AuditAction
    reason: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class StatusOverrideRequest(ApiModel):
    """Body of the human override endpoint."""
    content_id: str
    text_status: Status
    image_status: Status
    video_status: Status
    final_status: Status
    reason: str = ""

    def statuses(self) -> StatusAssignment:
        return StatusAssignment(
            text_status=self.text_status,
            image_status=self.image_status,
            video_status=self.video_status,
            final_status=self.final_status,
        )


class ReviewRequest(ApiModel):
    reason: str = ""


class ContentWithResults(Content):
    """Content with its moderation results, oldest first."""
    moderation_result: List[ModerationResult] = Field(default_factory=list)


class ContentWithEvents(Content):
    moderation_events: List[ModerationEvent] = Field(default_factory=list)


class ContentWithAudits(Content):
    audits: List[Audit] = Field(default_factory=list)


def event_payload_dict(event: ModerationEvent) -> Dict[str, Any]:
    """JSON-ready payload, as stored in the events table."""
    return event.payload.model_dump(mode="json", by_alias=True)
