"""
Event Log - append-only lifecycle markers per content item.
There is no update or delete; corrections are new events.
"""

import logging
from datetime import datetime
from typing import Callable, List

from moderation_core.lib.errors import ContentNotFoundError
from moderation_core.lib.store import ModerationStore
from moderation_core.models.base import utcnow
from moderation_core.models.content import ModerationResult, StatusAssignment
from moderation_core.models.enums import EventType, Status
from moderation_core.models.review import (
    CreatedPayload, ModeratedPayload, ModerationEvent, UpdatedPayload
)

logger = logging.getLogger(__name__)


class EventLog:
    """Writes and reads ModerationEvents through the store."""

    def __init__(self, store: ModerationStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def _append(self, content_id: str, event_type: EventType, payload) -> ModerationEvent:
        event = ModerationEvent(
            content_id=content_id,
            event_type=event_type,
            payload=payload,
            created_at=self.clock(),
        )
        self.store.append_event(event)
        logger.debug(f"Event {event_type.value} appended for content {content_id}")
        return event

    def record_created(self, content_id: str) -> ModerationEvent:
        return self._append(content_id, EventType.CREATED, CreatedPayload())

    def record_moderated(
        self,
        result: ModerationResult,
        previous_final_status: Status,
        final_status: Status,
    ) -> ModerationEvent:
        return self._append(
            result.content_id,
            EventType.MODERATED,
            ModeratedPayload(
                media_type=result.media_type,
                status=result.status,
                risk_score=result.risk_score,
                previous_final_status=previous_final_status,
                final_status=final_status,
            ),
        )

    def record_updated(
        self,
        content_id: str,
        old_statuses: StatusAssignment,
        new_statuses: StatusAssignment,
    ) -> ModerationEvent:
        return self._append(
            content_id,
            EventType.UPDATED,
            UpdatedPayload(old_statuses=old_statuses, new_statuses=new_statuses),
        )

    def list_events(self, content_id: str) -> List[ModerationEvent]:
        """Oldest first, ties broken by id."""
        if self.store.get_content(content_id) is None:
            raise ContentNotFoundError(content_id)
        return self.store.list_events(content_id)
