"""
Dashboard aggregation shapes.
Field names follow the analytics page contracts (camelCase on the wire).
"""

from typing import List

from moderation_core.models.base import ApiModel


class ModerationSummary(ApiModel):
    """KPI cards at the top of the analytics page."""
    total_content: int = 0
    pending_count: int = 0
    approved_count: int = 0
    rejected_count: int = 0
    flagged_count: int = 0
    total_audits: int = 0
    avg_risk_score: float = 0.0   # 0-100 scale
    content_last_week: int = 0


class LabelValue(ApiModel):
    label: str
    value: int


class LabelValueData(ApiModel):
    data: List[LabelValue]


class RiskScoreRange(ApiModel):
    range: str
    count: int


class RiskScoreData(ApiModel):
    data: List[RiskScoreRange]


class Dataset(ApiModel):
    label: str
    data: List[int]


class TimeSeries(ApiModel):
    """Chart-ready series: data[i] of every dataset belongs to labels[i]."""
    labels: List[str]
    datasets: List[Dataset]


class StatusByMediaType(ApiModel):
    media_type: str
    approved: int = 0
    rejected: int = 0
    flagged: int = 0
    pending: int = 0


class StatusByMediaTypeData(ApiModel):
    data: List[StatusByMediaType]
