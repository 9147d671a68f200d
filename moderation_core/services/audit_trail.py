"""
Audit Trail - append-only record of human decisions.
"""

import logging
from datetime import datetime
from typing import Callable, List

from moderation_core.lib.errors import ContentNotFoundError, ValidationError
from moderation_core.lib.store import ModerationStore
from moderation_core.models.base import utcnow
from moderation_core.models.enums import AuditAction
from moderation_core.models.review import Audit

logger = logging.getLogger(__name__)


def require_reason(action: AuditAction, reason: str) -> str:
    """Overrides must say why; reviews may leave the reason empty."""
    reason = (reason or "").strip()
    if action == AuditAction.OVERRIDDEN and not reason:
        raise ValidationError("A reason is required to override statuses")
    return reason


class AuditTrail:

    def __init__(self, store: ModerationStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def record(self, content_id: str, action: AuditAction, reason: str = "") -> Audit:
        audit = Audit(
            content_id=content_id,
            action=action,
            reason=require_reason(action, reason),
            created_at=self.clock(),
        )
        self.store.append_audit(audit)
        logger.info(f"Audit {action.value} recorded for content {content_id}")
        return audit

    def list_audits(self, content_id: str) -> List[Audit]:
        """Oldest first, ties broken by id."""
        if self.store.get_content(content_id) is None:
            raise ContentNotFoundError(content_id)
        return self.store.list_audits(content_id)
