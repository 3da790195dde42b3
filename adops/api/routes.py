from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Sequence

from fastapi import APIRouter, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from adops.api.schemas import (
    CreativeRead,
    CreativesEnvelope,
    EnvelopeMeta,
    GeoEnvelope,
    GeoMeta,
    GeoStatsRead,
    GeoTotals,
    PacingEnvelope,
    PacingMeta,
    PacingRead,
    PacingSummary,
    TelemetryEnvelope,
    TelemetryEventRead,
    TelemetryMeta,
    TelemetrySummary,
)
from adops.api.settings import get_api_settings
from adops.sources import gam_provider
from adops.sources.gam_provider import GeoStats, PacingData, TelemetryEvent

router = APIRouter()
limiter = Limiter(key_func=get_remote_address, enabled=get_api_settings().rate_limit_enabled)


def _rate_limit() -> str:
    return get_api_settings().rate_limit


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _check_count(count: int) -> int:
    max_count = get_api_settings().max_count
    if count > max_count:
        raise HTTPException(status_code=422, detail=f"count must be <= {max_count}")
    return count


def _percent(numerator: float, denominator: float) -> str:
    if not denominator:
        return "0.00%"
    return f"{numerator / denominator * 100:.2f}%"


def telemetry_summary(events: Sequence[TelemetryEvent]) -> TelemetrySummary:
    status_counts: Dict[str, int] = dict(Counter(event.status for event in events))
    return TelemetrySummary(
        status_counts=status_counts,
        success_rate=_percent(status_counts.get("served", 0), len(events)),
    )


def geo_totals(stats: Sequence[GeoStats]) -> GeoTotals:
    impressions = sum(row.impressions for row in stats)
    failures = sum(row.failures for row in stats)
    return GeoTotals(
        impressions=impressions,
        failures=failures,
        revenue=round(sum(row.revenue for row in stats), 2),
        overall_fill_rate=_percent(impressions - failures, impressions),
    )


def pacing_summary(campaigns: Sequence[PacingData]) -> PacingSummary:
    avg_variance = sum(c.variance for c in campaigns) / len(campaigns) if campaigns else 0.0
    return PacingSummary(
        status_counts=dict(Counter(c.status for c in campaigns)),
        total_budget=sum(c.daily_budget for c in campaigns),
        total_spent=round(sum(c.spent for c in campaigns), 2),
        avg_variance=f"{avg_variance:.2f}",
    )


@router.get("/creatives", response_model=CreativesEnvelope)
@limiter.limit(_rate_limit)
async def list_creatives(request: Request, count: int = Query(20, ge=0)):
    creatives = gam_provider.get_creatives(_check_count(count))
    data: List[CreativeRead] = [CreativeRead.model_validate(c) for c in creatives]
    return CreativesEnvelope(
        data=data,
        meta=EnvelopeMeta(total=len(data), timestamp=_timestamp()),
    )


@router.get("/telemetry", response_model=TelemetryEnvelope)
@limiter.limit(_rate_limit)
async def list_telemetry(request: Request, count: int = Query(100, ge=0)):
    events = gam_provider.get_telemetry(_check_count(count))
    return TelemetryEnvelope(
        data=[TelemetryEventRead.model_validate(e) for e in events],
        meta=TelemetryMeta(
            total=len(events),
            timestamp=_timestamp(),
            summary=telemetry_summary(events),
        ),
    )


@router.get("/geos", response_model=GeoEnvelope)
@limiter.limit(_rate_limit)
async def list_geos(request: Request):
    stats = gam_provider.get_geo_stats()
    return GeoEnvelope(
        data=[GeoStatsRead.model_validate(s) for s in stats],
        meta=GeoMeta(
            total=len(stats),
            timestamp=_timestamp(),
            totals=geo_totals(stats),
        ),
    )


@router.get("/pacing", response_model=PacingEnvelope)
@limiter.limit(_rate_limit)
async def list_pacing(request: Request, count: int = Query(10, ge=0)):
    campaigns = gam_provider.get_pacing(_check_count(count))
    return PacingEnvelope(
        data=[PacingRead.model_validate(c) for c in campaigns],
        meta=PacingMeta(
            total=len(campaigns),
            timestamp=_timestamp(),
            summary=pacing_summary(campaigns),
        ),
    )
