"""
Moderation Result Recorder.
Appends machine results, recomputes the facet and final status under the
per-content lock, then logs a MODERATED event.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from moderation_core.lib.errors import ContentNotFoundError, ValidationError
from moderation_core.lib.metrics import metrics
from moderation_core.lib.store import ModerationStore, retry_on_conflict
from moderation_core.models.base import clock as default_clock
from moderation_core.models.content import ModerationResult, ModerationResultCreate
from moderation_core.models.enums import MediaType, Status
from moderation_core.services.event_log import EventLog
from moderation_core.services.status_resolver import resolve

logger = logging.getLogger(__name__)


class ModerationResultRecorder:
    """
    Entry point for scoring results coming from the external pipeline.
    Results are never rewritten; re-scoring appends and the latest wins.
    """

    def __init__(
        self,
        store: ModerationStore,
        event_log: EventLog,
        clock: Callable[[], datetime] = default_clock,
    ):
        self.store = store
        self.event_log = event_log
        self.clock = clock

    def _build_result(
        self,
        content_id: str,
        media_type: Union[MediaType, str],
        status: Union[Status, str],
        risk_score: float,
        explanation: Optional[str],
    ) -> ModerationResult:
        try:
            return ModerationResult(
                content_id=content_id,
                media_type=media_type,
                status=status,
                risk_score=risk_score,
                explanation=explanation or None,
                created_at=self.clock(),
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid moderation result: {e}") from e

    @metrics.track_processing("record_result")
    def record_result(
        self,
        content_id: str,
        media_type: Union[MediaType, str],
        status: Union[Status, str],
        risk_score: float,
        explanation: Optional[str] = None,
    ) -> ModerationResult:
        """Persist a result and move the content's statuses accordingly."""
        result = self._build_result(content_id, media_type, status, risk_score, explanation)

        def apply():
            with self.store.content_transaction(content_id) as unit:
                content = unit.content
                if not content.has_facet(result.media_type):
                    raise ValidationError(
                        f"Content {content_id} has no {result.media_type.value} facet"
                    )
                previous = content.final_status
                unit.insert_result(result)
                # Latest committed result per facet, not the one just handed in
                latest = unit.latest_result(result.media_type)
                content.set_facet_status(result.media_type, latest.status)
                content.final_status = resolve(content)
                content.updated_at = self.clock()
                unit.save()
                return previous, content.final_status

        previous, final = retry_on_conflict(apply)

        self.event_log.record_moderated(result, previous, final)

        metrics.record_result(result.media_type.value, result.status.value)
        if previous != final:
            metrics.record_transition("moderation", final.value)
        logger.info(
            f"Result {result.id} recorded for content {content_id} "
            f"{result.media_type.value}={result.status.value} "
            f"(risk {result.risk_score:.2f}); final {previous.value} -> {final.value}"
        )
        return result

    def record(self, payload: ModerationResultCreate, content_id: Optional[str] = None) -> ModerationResult:
        """Record a validated request body or broker message."""
        content_id = content_id or payload.content_id
        if not content_id:
            raise ValidationError("contentId is required")
        return self.record_result(
            content_id,
            payload.media_type,
            payload.status,
            payload.risk_score,
            payload.explanation,
        )

    def list_results(self, content_id: str) -> List[ModerationResult]:
        """All results for a content item, oldest first."""
        if self.store.get_content(content_id) is None:
            raise ContentNotFoundError(content_id)
        return self.store.list_results(content_id)
