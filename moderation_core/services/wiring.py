"""
Assembles the services over one store.
Shared by the HTTP API and the Kafka worker.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from moderation_core.lib.config import Settings
from moderation_core.lib.store import ModerationStore, build_store
from moderation_core.models.base import clock as default_clock
from moderation_core.services.analytics_service import AnalyticsAggregator
from moderation_core.services.audit_trail import AuditTrail
from moderation_core.services.content_service import ContentService
from moderation_core.services.event_log import EventLog
from moderation_core.services.moderation_service import ModerationResultRecorder


@dataclass
class ModerationServices:
    store: ModerationStore
    content: ContentService
    recorder: ModerationResultRecorder
    events: EventLog
    audits: AuditTrail
    analytics: AnalyticsAggregator


def build_services(
    store: Optional[ModerationStore] = None,
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = default_clock,
) -> ModerationServices:
    settings = settings or Settings.from_env()
    store = store or build_store(settings)
    events = EventLog(store, clock=clock)
    audits = AuditTrail(store, clock=clock)
    return ModerationServices(
        store=store,
        content=ContentService(store, events, audits, clock=clock),
        recorder=ModerationResultRecorder(store, events, clock=clock),
        events=events,
        audits=audits,
        analytics=AnalyticsAggregator(store, tz=settings.tz, clock=clock),
    )
