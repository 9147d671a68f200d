"""
Persistence port for the moderation core.
Two backends implement it: in-memory (dev/tests) and PostgreSQL.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from moderation_core.lib.config import Settings
from moderation_core.lib.errors import StoreConflictError
from moderation_core.models.content import Content, ModerationResult
from moderation_core.models.enums import EventType, MediaType, Status
from moderation_core.models.review import Audit, ModerationEvent

logger = logging.getLogger(__name__)


class ContentUnit(ABC):
    """
    One serialized read-modify-write on a single content item.
    `content` is read fresh once the per-content lock is held; nothing
    staged here is visible to readers until the unit commits.
    """

    def __init__(self, content: Content):
        self.content = content

    @abstractmethod
    def latest_result(self, media_type: MediaType) -> Optional[ModerationResult]:
        """Latest committed or staged result for a facet."""

    @abstractmethod
    def insert_result(self, result: ModerationResult) -> None:
        ...

    @abstractmethod
    def save(self) -> None:
        """Stage the current statuses of `content` for commit."""


class ModerationStore(ABC):
    """Storage operations the services rely on."""

    # -- content ------------------------------------------------------------

    @abstractmethod
    def insert_content(self, content: Content) -> Content:
        ...

    @abstractmethod
    def get_content(self, content_id: str) -> Optional[Content]:
        ...

    @abstractmethod
    def list_contents(self) -> List[Content]:
        """All content, newest first."""

    @abstractmethod
    @contextmanager
    def content_transaction(self, content_id: str) -> Iterator[ContentUnit]:
        """
        Serialize status changes for one content id.
        Raises ContentNotFoundError; commits on clean exit, rolls back on error.
        """

    # -- append-only histories ----------------------------------------------

    @abstractmethod
    def list_results(self, content_id: str) -> List[ModerationResult]:
        ...

    @abstractmethod
    def append_event(self, event: ModerationEvent) -> ModerationEvent:
        ...

    @abstractmethod
    def list_events(self, content_id: str) -> List[ModerationEvent]:
        ...

    @abstractmethod
    def append_audit(self, audit: Audit) -> Audit:
        ...

    @abstractmethod
    def list_audits(self, content_id: str) -> List[Audit]:
        ...

    # -- analytics reads (no locks) -----------------------------------------

    @abstractmethod
    def count_by_final_status(self) -> Dict[Status, int]:
        ...

    @abstractmethod
    def count_present_facets(self) -> Dict[MediaType, int]:
        ...

    @abstractmethod
    def count_facet_statuses(self) -> Dict[MediaType, Dict[Status, int]]:
        """Per facet, status counts over content where that facet is present."""

    @abstractmethod
    def count_contents_since(self, since: datetime) -> int:
        ...

    @abstractmethod
    def list_risk_scores(self) -> List[float]:
        ...

    @abstractmethod
    def count_audits(self) -> int:
        ...

    @abstractmethod
    def list_events_since(self, since: datetime, event_types: List[EventType]) -> List[ModerationEvent]:
        ...

    @abstractmethod
    def list_audit_times_since(self, since: datetime) -> List[datetime]:
        ...

    def init_schema(self) -> None:
        pass

    def close(self) -> None:
        pass


def build_store(settings: Settings) -> ModerationStore:
    """Pick the backend named by STORE_BACKEND."""
    if settings.store_backend == "postgres":
        from moderation_core.lib.database import PostgresStore
        return PostgresStore(database_url=settings.database_url)
    if settings.store_backend == "memory":
        from moderation_core.lib.memory_store import InMemoryStore
        return InMemoryStore()
    raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend}")


def retry_on_conflict(operation):
    """Run a serialized write; retry once if the store could not serialize it."""
    try:
        return operation()
    except StoreConflictError as e:
        logger.warning(f"Write conflict, retrying once: {e}")
    try:
        return operation()
    except StoreConflictError as e:
        logger.error(f"Write conflict persisted after retry: {e}")
        raise
