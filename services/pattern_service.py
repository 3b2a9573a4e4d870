"""
Seasonal pattern and trend extraction.

Builds a ProductSeriesProfile per product: multiplicative month/weekday/quarter
indices plus growth, volatility and cyclicality statistics.
"""

from statistics import mean, pstdev
from typing import Sequence

import structlog

from models.forecast import ProductSeriesProfile, SeasonalPatterns, TrendStats
from models.sales import HistoricalSalesRecord

logger = structlog.get_logger(__name__)


# Trend statistics need at least a week of daily records
MIN_TREND_RECORDS = 7


def normalize_indices(totals: Sequence[float], counts: Sequence[int]) -> list[float]:
    """
    Turn per-slot totals into indices with mean 1.0.

    Each observed slot becomes the mean quantity per observed day, divided by
    the mean of the observed slots. Slots with no observations stay at 1.0,
    so the whole vector still averages 1.0. Zero demand leaves all ones.
    """
    size = len(totals)
    slot_means = {i: totals[i] / counts[i] for i in range(size) if counts[i] > 0}

    if not slot_means:
        return [1.0] * size

    observed_mean = sum(slot_means.values()) / len(slot_means)
    if observed_mean <= 0:
        return [1.0] * size

    return [slot_means[i] / observed_mean if i in slot_means else 1.0 for i in range(size)]


def extract_seasonal_patterns(records: Sequence[HistoricalSalesRecord]) -> SeasonalPatterns:
    """Bucket daily quantities by month, weekday and quarter, then normalize."""
    monthly, monthly_n = [0.0] * 12, [0] * 12
    weekly, weekly_n = [0.0] * 7, [0] * 7
    quarterly, quarterly_n = [0.0] * 4, [0] * 4

    for record in records:
        tag = record.seasonality_tag
        monthly[tag.month - 1] += record.quantity_sold
        monthly_n[tag.month - 1] += 1
        weekly[tag.day_of_week] += record.quantity_sold
        weekly_n[tag.day_of_week] += 1
        quarterly[tag.quarter - 1] += record.quantity_sold
        quarterly_n[tag.quarter - 1] += 1

    return SeasonalPatterns(
        monthly=normalize_indices(monthly, monthly_n),
        weekly=normalize_indices(weekly, weekly_n),
        quarterly=normalize_indices(quarterly, quarterly_n),
    )


def calculate_growth(quantities: Sequence[float]) -> float:
    """Least-squares slope of quantity over record index (units per record)."""
    n = len(quantities)
    if n < 2:
        return 0.0

    x_mean = (n - 1) / 2
    y_mean = sum(quantities) / n

    numerator = sum((i - x_mean) * (q - y_mean) for i, q in enumerate(quantities))
    denominator = sum((i - x_mean) ** 2 for i in range(n))

    return numerator / denominator if denominator else 0.0


def calculate_volatility(quantities: Sequence[float]) -> float:
    """
    Population std dev of relative day-over-day changes.

    Pairs whose previous value is zero have no relative change and are skipped.
    """
    changes = [
        (quantities[i] - quantities[i - 1]) / quantities[i - 1]
        for i in range(1, len(quantities))
        if quantities[i - 1] != 0
    ]

    if not changes:
        return 0.0

    return pstdev(changes)


def calculate_cyclicality(records: Sequence[HistoricalSalesRecord]) -> float:
    """
    Variance of the 12 monthly mean quantities over their mean.

    Months without sales count as zero. Higher means more seasonal.
    """
    totals = [0.0] * 12
    counts = [0] * 12
    for record in records:
        totals[record.date.month - 1] += record.quantity_sold
        counts[record.date.month - 1] += 1

    averages = [totals[i] / counts[i] if counts[i] else 0.0 for i in range(12)]
    overall = sum(averages) / 12
    variance = sum((a - overall) ** 2 for a in averages) / 12

    return variance / (overall or 1)


def calculate_trends(records: Sequence[HistoricalSalesRecord]) -> TrendStats:
    """Growth, volatility and cyclicality; all None below MIN_TREND_RECORDS."""
    if len(records) < MIN_TREND_RECORDS:
        return TrendStats()

    quantities = [r.quantity_sold for r in records]

    return TrendStats(
        growth=calculate_growth(quantities),
        volatility=calculate_volatility(quantities),
        cyclicality=calculate_cyclicality(records),
    )


def build_profile(product_id: str, records: Sequence[HistoricalSalesRecord]) -> ProductSeriesProfile:
    """Profile for one product; works for any history length."""
    records = sorted(records, key=lambda r: r.date)

    category = records[-1].category if records else None
    prices = [r.unit_price for r in records if r.unit_price > 0]
    average_price = mean(prices) if prices else 0.0

    return ProductSeriesProfile(
        product_id=product_id,
        category=category,
        average_price=average_price,
        records=records,
        seasonal_patterns=extract_seasonal_patterns(records),
        trends=calculate_trends(records),
    )


class PatternService:
    """Builds series profiles for every product with history."""

    def build_profiles(self, history: dict[str, list[HistoricalSalesRecord]]) -> dict[str, ProductSeriesProfile]:
        """
        Build a profile for each product in the history.

        Short histories still get a profile (trend fields None).
        """
        profiles = {
            product_id: build_profile(product_id, records)
            for product_id, records in history.items()
        }

        short = sum(1 for p in profiles.values() if p.trends.growth is None)

        logger.info(
            "series_profiles_built",
            count=len(profiles),
            short_histories=short
        )

        return profiles

