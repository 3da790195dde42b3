from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class WireModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class CreativeRead(WireModel):
    id: str
    name: str
    type: str
    status: str
    last_failure_reason: Optional[str] = None
    load_time: int
    size: str
    advertiser: str
    created_at: str
    impressions: int
    clicks: int


class GeoLocationRead(WireModel):
    country: str
    region: str
    city: str


class DeviceRead(WireModel):
    type: str
    os: str
    browser: str


class TelemetryEventRead(WireModel):
    creative_id: str
    slot_id: str
    status: str
    reason: Optional[str] = None
    timestamp: str
    geo: GeoLocationRead
    device: DeviceRead
    latency: int


class GeoStatsRead(WireModel):
    country: str
    country_code: str
    impressions: int
    failures: int
    fill_rate: float
    avg_latency: int
    revenue: float


class PacingRead(WireModel):
    campaign_id: str
    campaign_name: str
    delivery_percent: float
    expected_percent: float
    variance: float
    status: str
    daily_budget: int
    spent: float
    remaining_days: int


class EnvelopeMeta(WireModel):
    total: int
    timestamp: str


class TelemetrySummary(WireModel):
    status_counts: Dict[str, int]
    success_rate: str


class TelemetryMeta(EnvelopeMeta):
    summary: TelemetrySummary


class GeoTotals(WireModel):
    impressions: int
    failures: int
    revenue: float
    overall_fill_rate: str


class GeoMeta(EnvelopeMeta):
    totals: GeoTotals


class PacingSummary(WireModel):
    status_counts: Dict[str, int]
    total_budget: int
    total_spent: float
    avg_variance: str


class PacingMeta(EnvelopeMeta):
    summary: PacingSummary


class Envelope(WireModel, Generic[T]):
    """The ``{success, data, meta}`` shape every analytics endpoint returns."""

    success: bool = True
    data: List[T]
    meta: EnvelopeMeta


class CreativesEnvelope(Envelope[CreativeRead]):
    pass


class TelemetryEnvelope(Envelope[TelemetryEventRead]):
    meta: TelemetryMeta


class GeoEnvelope(Envelope[GeoStatsRead]):
    meta: GeoMeta


class PacingEnvelope(Envelope[PacingRead]):
    meta: PacingMeta
