"""Synthetic daily sales for demo and development databases.

Revenue per (day, brand, channel) is a channel base figure scaled by a brand
multiplier, reduced on weekends and jittered by +-20%.
"""

import random
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

# Daily base revenue per channel for a 1.0 brand multiplier
CHANNEL_BASE_REVENUE: dict[str, float] = {
    "Amazon": 250_000,
    "TikTok": 30_000,
    "DTC-Shopify": 55_000,
    "Retail": 11_000,
    "CA International": 27_000,
    "UK International": 22_000,
}
DEFAULT_CHANNEL_BASE = 15_000

BRAND_MULTIPLIERS: dict[str, float] = {"LifePro": 1.0, "PetCove": 0.12}
DEFAULT_BRAND_MULTIPLIER = 0.08

WEEKEND_FACTOR = 0.7
NOISE_LOW = 0.8
NOISE_HIGH = 1.2


@dataclass
class SampleDataConfig:
    """What to generate.

    Attributes:
        start_date: First day (inclusive).
        end_date: Last day (inclusive).
        brands: Brand names.
        channels: Channel names.
        seed: Random seed; the same seed yields the same rows.
    """

    start_date: date
    end_date: date
    brands: Sequence[str] = field(default_factory=lambda: list(BRAND_MULTIPLIERS))
    channels: Sequence[str] = field(default_factory=lambda: list(CHANNEL_BASE_REVENUE))
    seed: int = 42

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise ValueError("end_date must be greater than or equal to start_date")


def daily_revenue(brand: str, channel: str, day: date, rng: random.Random) -> float:
    """Revenue for one brand and channel on one day, rounded to whole units."""
    base = CHANNEL_BASE_REVENUE.get(channel, DEFAULT_CHANNEL_BASE)
    base *= BRAND_MULTIPLIERS.get(brand, DEFAULT_BRAND_MULTIPLIER)
    if day.weekday() >= 5:
        base *= WEEKEND_FACTOR
    return float(round(base * rng.uniform(NOISE_LOW, NOISE_HIGH)))


def generate_sales_rows(config: SampleDataConfig) -> Iterator[dict[str, Any]]:
    """Yield one sales row per day, brand and channel.

    Args:
        config: Date range, dimensions and seed.

    Yields:
        Rows ready for ``DataService.batch_save_sales_data``.
    """
    rng = random.Random(config.seed)
    day = config.start_date
    while day <= config.end_date:
        for brand in config.brands:
            for channel in config.channels:
                yield {
                    "date": day.isoformat(),
                    "brand": brand,
                    "channel": channel,
                    "revenue": daily_revenue(brand, channel, day, rng),
                }
        day += timedelta(days=1)
