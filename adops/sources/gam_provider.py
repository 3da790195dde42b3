"""
Fake GAM (Google Ad Manager) Data Provider
==========================================

Generates realistic mock records for ad operations analytics. Nothing is
persisted: every call draws a fresh random sample.
"""

from __future__ import annotations

import random
import string
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass(slots=True)
class Creative:
    id: str
    name: str
    type: str
    status: str
    last_failure_reason: Optional[str]
    load_time: int
    size: str
    advertiser: str
    created_at: str
    impressions: int
    clicks: int


@dataclass(slots=True)
class GeoLocation:
    country: str
    region: str
    city: str


@dataclass(slots=True)
class DeviceInfo:
    type: str
    os: str
    browser: str


@dataclass(slots=True)
class TelemetryEvent:
    creative_id: str
    slot_id: str
    status: str
    reason: Optional[str]
    timestamp: str
    geo: GeoLocation
    device: DeviceInfo
    latency: int


@dataclass(slots=True)
class GeoStats:
    country: str
    country_code: str
    impressions: int
    failures: int
    fill_rate: float
    avg_latency: int
    revenue: float


@dataclass(slots=True)
class PacingData:
    campaign_id: str
    campaign_name: str
    delivery_percent: float
    expected_percent: float
    variance: float
    status: str
    daily_budget: int
    spent: float
    remaining_days: int


CREATIVE_TYPES = ["image", "html5", "third_party_tag", "video"]
CREATIVE_STATUSES = ["active", "paused", "error", "pending_review"]
SIZES = ["300x250", "728x90", "160x600", "320x50", "300x600", "970x250", "320x480"]
ADVERTISERS = [
    "TechCorp Inc.",
    "Fashion Forward",
    "AutoDrive Motors",
    "FoodieDelight",
    "TravelEase",
    "FinanceFirst",
    "HealthPlus",
    "GameZone Studios",
    "EcoGreen Products",
    "LuxuryBrands Co.",
]
CREATIVE_NAMES = [
    "Summer Sale Banner",
    "Holiday Promo",
    "Brand Awareness",
    "Product Launch",
    "Retargeting Campaign",
    "Mobile App Install",
    "Video Pre-roll",
    "Native Content",
    "Rich Media Interactive",
    "Dynamic Creative",
]
FAILURE_REASONS = [
    "Creative timeout exceeded",
    "Invalid creative format",
    "Third-party script blocked",
    "SSL certificate error",
    "Creative size mismatch",
    "Network request failed",
    "CORS policy violation",
    "Malware detected",
    "Policy violation",
]

TELEMETRY_STATUSES = ["served", "failed", "timeout", "blocked"]
TELEMETRY_REASONS: Dict[str, List[str]] = {
    "failed": ["Creative load error", "Network timeout", "Invalid response", "Script error"],
    "timeout": ["Request timeout after 3000ms", "Bid response timeout", "Render timeout"],
    "blocked": ["Ad blocker detected", "Brand safety violation", "Geo restriction", "Device restriction"],
}
SERVED_SHARE = 0.7

# (country, code, traffic weight)
COUNTRIES = [
    ("United States", "US", 35),
    ("United Kingdom", "UK", 15),
    ("Germany", "DE", 12),
    ("France", "FR", 8),
    ("Canada", "CA", 7),
    ("Australia", "AU", 6),
    ("India", "IN", 5),
    ("Japan", "JP", 4),
    ("Brazil", "BR", 4),
    ("Netherlands", "NL", 4),
]

REGIONS = ["California", "New York", "Texas", "London", "Bavaria", "Ontario", "Maharashtra"]
CITIES = ["New York", "Los Angeles", "London", "Berlin", "Paris", "Toronto", "Mumbai", "Tokyo"]
DEVICE_TYPES = ["desktop", "mobile", "tablet", "ctv"]
OPERATING_SYSTEMS = ["Windows 11", "macOS 14", "iOS 17", "Android 14", "Chrome OS", "tvOS"]
BROWSERS = ["Chrome 120", "Safari 17", "Firefox 121", "Edge 120", "Samsung Browser"]

CAMPAIGN_NAMES = [
    "Q4 Brand Campaign",
    "Holiday Season Push",
    "New Product Launch",
    "Retention Campaign",
    "Awareness Drive",
    "Performance Max",
    "Mobile First Initiative",
    "Video Engagement",
    "Cross-Platform Reach",
    "Lookalike Audience",
]

PACING_TOLERANCE = 5.0
_ID_ALPHABET = string.ascii_uppercase + string.digits


def _pick(rng: random.Random, items: Sequence[T]) -> T:
    return items[rng.randrange(len(items))]


def _rand_float(rng: random.Random, low: float, high: float, decimals: int = 2) -> float:
    return round(rng.uniform(low, high), decimals)


def _generate_id(rng: random.Random, prefix: str) -> str:
    suffix = "".join(rng.choice(_ID_ALPHABET) for _ in range(7))
    return f"{prefix}-{suffix}"


def _random_timestamp(rng: random.Random, hours_ago: float, now: datetime) -> str:
    past = now - timedelta(seconds=rng.random() * hours_ago * 3600)
    return past.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def pacing_status(variance: float) -> str:
    if variance > PACING_TOLERANCE:
        return "over_delivery"
    if variance < -PACING_TOLERANCE:
        return "under_delivery"
    return "on_track"


def get_creatives(count: int = 20, *, rng: Optional[random.Random] = None) -> List[Creative]:
    """Creatives sorted by impressions, highest first."""
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)
    creatives: List[Creative] = []

    for _ in range(count):
        status = _pick(rng, CREATIVE_STATUSES)
        has_failure = status == "error" or rng.random() < 0.15

        creatives.append(
            Creative(
                id=_generate_id(rng, "CR"),
                name=f"{_pick(rng, CREATIVE_NAMES)} {rng.randint(1, 99)}",
                type=_pick(rng, CREATIVE_TYPES),
                status=status,
                last_failure_reason=_pick(rng, FAILURE_REASONS) if has_failure else None,
                load_time=rng.randint(50, 2500),
                size=_pick(rng, SIZES),
                advertiser=_pick(rng, ADVERTISERS),
                created_at=_random_timestamp(rng, 720, now),  # last 30 days
                impressions=rng.randint(10_000, 500_000),
                clicks=rng.randint(100, 15_000),
            )
        )

    return sorted(creatives, key=lambda c: c.impressions, reverse=True)


def get_telemetry(count: int = 100, *, rng: Optional[random.Random] = None) -> List[TelemetryEvent]:
    """Ad-serving events from the last 24 hours, newest first."""
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)
    creative_ids = [_generate_id(rng, "CR") for _ in range(15)]
    slot_ids = [_generate_id(rng, "SLOT") for _ in range(8)]
    events: List[TelemetryEvent] = []

    for _ in range(count):
        if rng.random() < SERVED_SHARE:
            status = "served"
            reason = None
        else:
            status = _pick(rng, ["failed", "timeout", "blocked"])
            reason = _pick(rng, TELEMETRY_REASONS[status])

        country = _pick(rng, COUNTRIES)
        events.append(
            TelemetryEvent(
                creative_id=_pick(rng, creative_ids),
                slot_id=_pick(rng, slot_ids),
                status=status,
                reason=reason,
                timestamp=_random_timestamp(rng, 24, now),
                geo=GeoLocation(
                    country=country[0],
                    region=_pick(rng, REGIONS),
                    city=_pick(rng, CITIES),
                ),
                device=DeviceInfo(
                    type=_pick(rng, DEVICE_TYPES),
                    os=_pick(rng, OPERATING_SYSTEMS),
                    browser=_pick(rng, BROWSERS),
                ),
                latency=rng.randint(20, 800),
            )
        )

    return sorted(events, key=lambda e: e.timestamp, reverse=True)


def get_geo_stats(*, rng: Optional[random.Random] = None) -> List[GeoStats]:
    """One row per country, sorted by impressions, highest first."""
    rng = rng or random.Random()
    stats: List[GeoStats] = []

    for country, code, weight in COUNTRIES:
        impressions = int(rng.randint(50_000, 500_000) * (weight / 10))
        failures = int(impressions * _rand_float(rng, 0.02, 0.12))
        fill_rate = (impressions - failures) / impressions * 100

        stats.append(
            GeoStats(
                country=country,
                country_code=code,
                impressions=impressions,
                failures=failures,
                fill_rate=round(fill_rate, 2),
                avg_latency=rng.randint(80, 350),
                revenue=_rand_float(rng, 1000, 25_000),
            )
        )

    return sorted(stats, key=lambda s: s.impressions, reverse=True)


def get_pacing(count: int = 10, *, rng: Optional[random.Random] = None) -> List[PacingData]:
    """Campaign pacing sorted by absolute variance, worst first."""
    rng = rng or random.Random()
    pacing: List[PacingData] = []

    for _ in range(count):
        expected_percent = _rand_float(rng, 30, 85)
        variance = _rand_float(rng, -15, 15, 1)
        delivery_percent = max(0.0, min(100.0, expected_percent + variance))
        daily_budget = rng.randint(500, 10_000)

        pacing.append(
            PacingData(
                campaign_id=_generate_id(rng, "CMP"),
                campaign_name=f"{_pick(rng, CAMPAIGN_NAMES)} {rng.randint(1, 50)}",
                delivery_percent=round(delivery_percent, 1),
                expected_percent=round(expected_percent, 1),
                variance=variance,
                status=pacing_status(variance),
                daily_budget=daily_budget,
                spent=round(daily_budget * delivery_percent / 100, 2),
                remaining_days=rng.randint(1, 30),
            )
        )

    return sorted(pacing, key=lambda p: abs(p.variance), reverse=True)


def get_all_data(*, rng: Optional[random.Random] = None) -> Dict[str, list]:
    rng = rng or random.Random()
    return {
        "creatives": get_creatives(rng=rng),
        "telemetry": get_telemetry(rng=rng),
        "geo_stats": get_geo_stats(rng=rng),
        "pacing": get_pacing(rng=rng),
    }


__all__ = [
    "Creative",
    "GeoLocation",
    "DeviceInfo",
    "TelemetryEvent",
    "GeoStats",
    "PacingData",
    "get_creatives",
    "get_telemetry",
    "get_geo_stats",
    "get_pacing",
    "get_all_data",
    "pacing_status",
]
