"""
In-memory store for development and tests.
Per-content locks serialize status changes; analytics read under a short
structural lock and never wait on a content lock.
"""
import logging
import threading
from collections import Counter, defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from moderation_core.lib.errors import ContentNotFoundError
from moderation_core.lib.store import ContentUnit, ModerationStore
from moderation_core.models.content import Content, ModerationResult
from moderation_core.models.enums import EventType, MediaType, Status
from moderation_core.models.review import Audit, ModerationEvent

logger = logging.getLogger(__name__)


def _chronological(records):
    return sorted(records, key=lambda r: (r.created_at, r.id))


class _MemoryUnit(ContentUnit):

    def __init__(self, content: Content, committed: List[ModerationResult]):
        super().__init__(content)
        self._committed = committed
        self.staged_results: List[ModerationResult] = []
        self.dirty = False

    def latest_result(self, media_type: MediaType) -> Optional[ModerationResult]:
        candidates = [
            r for r in self._committed + self.staged_results
            if r.media_type == media_type
        ]
        return max(candidates, key=lambda r: (r.created_at, r.id)) if candidates else None

    def insert_result(self, result: ModerationResult) -> None:
        self.staged_results.append(result)

    def save(self) -> None:
        self.dirty = True


class InMemoryStore(ModerationStore):
    """Dict-backed store. Returned models are copies; callers cannot mutate state."""

    def __init__(self):
        self._lock = threading.Lock()
        self._content_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._contents: Dict[str, Content] = {}
        self._results: Dict[str, List[ModerationResult]] = defaultdict(list)
        self._events: Dict[str, List[ModerationEvent]] = defaultdict(list)
        self._audits: Dict[str, List[Audit]] = defaultdict(list)

    # -- content ------------------------------------------------------------

    def insert_content(self, content: Content) -> Content:
        with self._lock:
            self._contents[content.id] = content.model_copy(deep=True)
        return content

    def get_content(self, content_id: str) -> Optional[Content]:
        with self._lock:
            content = self._contents.get(content_id)
            return content.model_copy(deep=True) if content else None

    def list_contents(self) -> List[Content]:
        with self._lock:
            contents = [c.model_copy(deep=True) for c in self._contents.values()]
        return sorted(contents, key=lambda c: (c.created_at, c.id), reverse=True)

    @contextmanager
    def content_transaction(self, content_id: str) -> Iterator[ContentUnit]:
        with self._lock:
            if content_id not in self._contents:
                raise ContentNotFoundError(content_id)
            content_lock = self._content_locks[content_id]

        with content_lock:
            with self._lock:
                unit = _MemoryUnit(
                    self._contents[content_id].model_copy(deep=True),
                    list(self._results[content_id]),
                )
            yield unit
            # Commit: only reached when the body did not raise
            with self._lock:
                self._results[content_id].extend(unit.staged_results)
                if unit.dirty:
                    self._contents[content_id] = unit.content.model_copy(deep=True)

    # -- append-only histories ----------------------------------------------

    def list_results(self, content_id: str) -> List[ModerationResult]:
        with self._lock:
            return _chronological(self._results.get(content_id, []))

    def append_event(self, event: ModerationEvent) -> ModerationEvent:
        with self._lock:
            self._events[event.content_id].append(event)
        return event

    def list_events(self, content_id: str) -> List[ModerationEvent]:
        with self._lock:
            return _chronological(self._events.get(content_id, []))

    def append_audit(self, audit: Audit) -> Audit:
        with self._lock:
            self._audits[audit.content_id].append(audit)
        return audit

    def list_audits(self, content_id: str) -> List[Audit]:
        with self._lock:
            return _chronological(self._audits.get(content_id, []))

    # -- analytics reads ----------------------------------------------------

    def _snapshot(self) -> List[Content]:
        with self._lock:
            return list(self._contents.values())

    def count_by_final_status(self) -> Dict[Status, int]:
        return dict(Counter(c.final_status for c in self._snapshot()))

    def count_present_facets(self) -> Dict[MediaType, int]:
        counts: Dict[MediaType, int] = Counter()
        for content in self._snapshot():
            for media_type in MediaType:
                if content.has_facet(media_type):
                    counts[media_type] += 1
        return dict(counts)

    def count_facet_statuses(self) -> Dict[MediaType, Dict[Status, int]]:
        counts: Dict[MediaType, Dict[Status, int]] = {m: Counter() for m in MediaType}
        for content in self._snapshot():
            for media_type in MediaType:
                if content.has_facet(media_type):
                    counts[media_type][content.facet_status(media_type)] += 1
        return {m: dict(c) for m, c in counts.items()}

    def count_contents_since(self, since: datetime) -> int:
        return sum(1 for c in self._snapshot() if c.created_at >= since)

    def list_risk_scores(self) -> List[float]:
        with self._lock:
            return [r.risk_score for results in self._results.values() for r in results]

    def count_audits(self) -> int:
        with self._lock:
            return sum(len(audits) for audits in self._audits.values())

    def list_events_since(self, since: datetime, event_types: List[EventType]) -> List[ModerationEvent]:
        with self._lock:
            events = [
                e for events in self._events.values() for e in events
                if e.created_at >= since and e.event_type in event_types
            ]
        return _chronological(events)

    def list_audit_times_since(self, since: datetime) -> List[datetime]:
        with self._lock:
            return sorted(
                a.created_at for audits in self._audits.values() for a in audits
                if a.created_at >= since
            )
