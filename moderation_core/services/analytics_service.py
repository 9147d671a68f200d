"""
Analytics Aggregator - read-only dashboard queries.
All day buckets use calendar days in one reference time zone.
Every query degrades to zero-filled output on empty stores.
"""

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Dict, List, Tuple

from moderation_core.lib.store import ModerationStore
from moderation_core.models.analytics import (
    Dataset, LabelValue, LabelValueData, ModerationSummary, RiskScoreData,
    RiskScoreRange, StatusByMediaType, StatusByMediaTypeData, TimeSeries,
)
from moderation_core.models.base import utcnow
from moderation_core.models.enums import EventType, MediaType, Status

logger = logging.getLogger(__name__)

# (label, inclusive upper bound on the 0-100 scale)
RISK_BUCKETS: List[Tuple[str, float]] = [
    ("0-25", 25.0),
    ("26-50", 50.0),
    ("51-75", 75.0),
    ("76-100", 100.0),
]

# Chart series order on the dashboard
SERIES_STATUSES = (Status.APPROVED, Status.REJECTED, Status.FLAGGED, Status.PENDING)

TIME_SERIES_DAYS = 30
RECENT_CONTENT_DAYS = 7


def risk_bucket(risk_score: float) -> str:
    """Bucket label for a [0, 1] score; buckets partition [0, 100]."""
    scaled = risk_score * 100
    for label, upper in RISK_BUCKETS:
        if scaled <= upper:
            return label
    return RISK_BUCKETS[-1][0]


class AnalyticsAggregator:
    """Computes the analytics page views. Never writes."""

    def __init__(
        self,
        store: ModerationStore,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.tz = tz
        self.clock = clock

    # -- day helpers --------------------------------------------------------

    def today(self) -> date:
        return self.clock().astimezone(self.tz).date()

    def trailing_days(self, count: int) -> List[date]:
        """`count` calendar days ending today, oldest first."""
        today = self.today()
        return [today - timedelta(days=offset) for offset in range(count - 1, -1, -1)]

    def start_of(self, day: date) -> datetime:
        """Midnight of `day` in the reference zone, as a UTC instant."""
        return datetime.combine(day, time.min, tzinfo=self.tz).astimezone(timezone.utc)

    def local_day(self, instant: datetime) -> date:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(self.tz).date()

    # -- views --------------------------------------------------------------

    def summary(self) -> ModerationSummary:
        by_status = self.store.count_by_final_status()
        scores = self.store.list_risk_scores()
        week_start = self.start_of(self.trailing_days(RECENT_CONTENT_DAYS)[0])
        avg = round(sum(scores) / len(scores) * 100, 2) if scores else 0.0
        return ModerationSummary(
            total_content=sum(by_status.values()),
            pending_count=by_status.get(Status.PENDING, 0),
            approved_count=by_status.get(Status.APPROVED, 0),
            rejected_count=by_status.get(Status.REJECTED, 0),
            flagged_count=by_status.get(Status.FLAGGED, 0),
            total_audits=self.store.count_audits(),
            avg_risk_score=avg,
            content_last_week=self.store.count_contents_since(week_start),
        )

    def status_distribution(self) -> LabelValueData:
        by_status = self.store.count_by_final_status()
        return LabelValueData(data=[
            LabelValue(label=status.value, value=by_status.get(status, 0))
            for status in Status
        ])

    def media_type_breakdown(self) -> LabelValueData:
        by_facet = self.store.count_present_facets()
        return LabelValueData(data=[
            LabelValue(label=media_type.value, value=by_facet.get(media_type, 0))
            for media_type in MediaType
        ])

    def risk_score_distribution(self) -> RiskScoreData:
        counts = Counter(risk_bucket(score) for score in self.store.list_risk_scores())
        return RiskScoreData(data=[
            RiskScoreRange(range=label, count=counts.get(label, 0))
            for label, _ in RISK_BUCKETS
        ])

    def moderation_over_time(self) -> TimeSeries:
        """Final status transitions per day, one series per status."""
        days = self.trailing_days(TIME_SERIES_DAYS)
        index = {day: i for i, day in enumerate(days)}
        series: Dict[Status, List[int]] = {s: [0] * len(days) for s in SERIES_STATUSES}

        events = self.store.list_events_since(
            self.start_of(days[0]), [EventType.MODERATED, EventType.UPDATED]
        )
        for event in events:
            transition = event.transition()
            if transition is None:
                continue
            position = index.get(self.local_day(event.created_at))
            if position is not None:
                series[transition[1]][position] += 1

        return TimeSeries(
            labels=[day.isoformat() for day in days],
            datasets=[Dataset(label=s.value, data=series[s]) for s in SERIES_STATUSES],
        )

    def audit_activity(self) -> TimeSeries:
        days = self.trailing_days(TIME_SERIES_DAYS)
        index = {day: i for i, day in enumerate(days)}
        counts = [0] * len(days)
        for created_at in self.store.list_audit_times_since(self.start_of(days[0])):
            position = index.get(self.local_day(created_at))
            if position is not None:
                counts[position] += 1
        return TimeSeries(
            labels=[day.isoformat() for day in days],
            datasets=[Dataset(label="audits", data=counts)],
        )

    def status_by_media_type(self) -> StatusByMediaTypeData:
        counts = self.store.count_facet_statuses()
        rows = []
        for media_type in MediaType:
            per_status = counts.get(media_type, {})
            rows.append(StatusByMediaType(
                media_type=media_type.value,
                approved=per_status.get(Status.APPROVED, 0),
                rejected=per_status.get(Status.REJECTED, 0),
                flagged=per_status.get(Status.FLAGGED, 0),
                pending=per_status.get(Status.PENDING, 0),
            ))
        return StatusByMediaTypeData(data=rows)
