"""
Content Store service.
Owns content creation, reads, and the audited human override path.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from moderation_core.lib.errors import ContentNotFoundError, ValidationError
from moderation_core.lib.metrics import metrics
from moderation_core.lib.store import ModerationStore, retry_on_conflict
from moderation_core.models.base import clock as default_clock
from moderation_core.models.content import Content, StatusAssignment
from moderation_core.models.enums import FACET_FIELDS, AuditAction, MediaType, Status
from moderation_core.models.review import (
    Audit, ContentWithAudits, ContentWithEvents, ContentWithResults
)
from moderation_core.services.audit_trail import AuditTrail, require_reason
from moderation_core.services.event_log import EventLog
from moderation_core.services.status_resolver import present_facets, require_facets, resolve

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    """Blank references count as absent."""
    if value is None or not value.strip():
        return None
    return value


class ContentService:
    """
    Single source of truth for per-facet and final status.
    Status writes for one content id are serialized by the store.
    """

    def __init__(
        self,
        store: ModerationStore,
        event_log: EventLog,
        audit_trail: AuditTrail,
        clock: Callable[[], datetime] = default_clock,
    ):
        self.store = store
        self.event_log = event_log
        self.audit_trail = audit_trail
        self.clock = clock

    # -- creation -----------------------------------------------------------

    def create_content(
        self,
        text: Optional[str] = None,
        image: Optional[str] = None,
        video: Optional[str] = None,
    ) -> Content:
        """Create a content item with every status PENDING and log CREATED."""
        now = self.clock()
        content = Content(
            text=_clean(text),
            image=_clean(image),
            video=_clean(video),
            created_at=now,
            updated_at=now,
        )
        require_facets(content)
        content.final_status = resolve(content)

        self.store.insert_content(content)
        self.event_log.record_created(content.id)

        facets = "+".join(m.value for m in present_facets(content))
        metrics.record_content(facets)
        logger.info(f"Content {content.id} created with facets {facets}")
        return content

    # -- reads --------------------------------------------------------------

    def get_content(self, content_id: str) -> Content:
        content = self.store.get_content(content_id)
        if content is None:
            raise ContentNotFoundError(content_id)
        return content

    def list_contents(self) -> List[Content]:
        return self.store.list_contents()

    # Review page views: content plus one nested history each

    def with_results(self, content_id: str) -> ContentWithResults:
        content = self.get_content(content_id)
        return ContentWithResults(
            **content.model_dump(), moderation_result=self.store.list_results(content_id)
        )

    def with_events(self, content_id: str) -> ContentWithEvents:
        content = self.get_content(content_id)
        return ContentWithEvents(
            **content.model_dump(), moderation_events=self.event_log.list_events(content_id)
        )

    def with_audits(self, content_id: str) -> ContentWithAudits:
        content = self.get_content(content_id)
        return ContentWithAudits(
            **content.model_dump(), audits=self.audit_trail.list_audits(content_id)
        )

    # -- human review -------------------------------------------------------

    def override_statuses(
        self,
        content_id: str,
        statuses: StatusAssignment,
        reason: str,
    ) -> Content:
        """
        Set every status by hand. The only way to store a final status out of
        derived order. Nothing is written unless the reason is non-empty and
        the assignment keeps absent facets at PENDING.
        """
        reason = require_reason(AuditAction.OVERRIDDEN, reason)

        def apply():
            with self.store.content_transaction(content_id) as unit:
                content = unit.content
                for media_type in MediaType:
                    new_status = getattr(statuses, FACET_FIELDS[media_type][1])
                    if not content.has_facet(media_type) and new_status != Status.PENDING:
                        raise ValidationError(
                            f"{media_type.value} is not present on content {content_id} and must stay PENDING"
                        )
                old = content.status_snapshot()
                content.apply_statuses(statuses)
                content.updated_at = self.clock()
                unit.save()
                return old, content

        old, content = retry_on_conflict(apply)

        self.audit_trail.record(content_id, AuditAction.OVERRIDDEN, reason)
        self.event_log.record_updated(content_id, old, content.status_snapshot())

        metrics.record_override(content.final_status.value)
        if old.final_status != content.final_status:
            metrics.record_transition("override", content.final_status.value)
        logger.info(
            f"Content {content_id} overridden: {old.final_status.value} -> "
            f"{content.final_status.value} ({reason})"
        )
        return content

    def mark_reviewed(self, content_id: str, reason: str = "") -> Audit:
        """Reviewer looked at the content and left it as is."""
        self.get_content(content_id)
        audit = self.audit_trail.record(content_id, AuditAction.REVIEWED, reason)
        metrics.record_review()
        return audit
