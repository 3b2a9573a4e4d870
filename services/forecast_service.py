"""
Demand forecasting.

Hybrid model per product:
- Trend: Holt double exponential smoothing, one-step-ahead predictions
- Seasonal: daily quantity scaled by the (month + weekday) / 2 index
- Combined: trend_weight * trend + (1 - trend_weight) * seasonal

Fitted forecasts are held in memory and replaced wholesale on every train.
Future projections are cached per product and horizon.
"""

import random
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Sequence

import structlog

from config.settings import Settings
from models.forecast import (
    DemandForecast,
    ForecastPoint,
    ForecastResult,
    FutureForecastPoint,
    ProductSeriesProfile,
    SeasonalPoint,
    TrendPoint,
    clamp_confidence,
    MODEL_TAG,
)
from models.sales import HistoricalSalesRecord
from services.cache_service import TTLCache

logger = structlog.get_logger(__name__)


NO_FORECAST_MESSAGE = "No forecast available for this product"

# Confidence constants
BASE_POINT_CONFIDENCE = 0.7
SEASONAL_BONUS = 0.1
SEASONAL_BONUS_MIN_FACTOR = 0.8
MIN_RECORDS_FOR_CONFIDENCE = 10
SHORT_HISTORY_CONFIDENCE = 0.5
FULL_DATA_RECORDS = 100
HORIZON_DECAY_PER_DAY = 0.01

# Projections jitter within +/-10%
RANDOM_FACTOR_LOW = 0.9
RANDOM_FACTOR_HIGH = 1.1


# ===================
# MODEL COMPONENTS
# ===================

def holt_smoothing(
    records: Sequence[HistoricalSalesRecord],
    alpha: float = 0.3,
    beta: float = 0.1
) -> list[TrendPoint]:
    """
    One-step-ahead Holt predictions for records[1:].

    The prediction for day i is level + trend after seeing day i-1.
    Fewer than 2 records produce no points.
    """
    if len(records) < 2:
        return []

    level = records[0].quantity_sold
    trend = 0.0
    points = []

    for record in records[1:]:
        actual = record.quantity_sold
        predicted = level + trend

        points.append(TrendPoint(
            date=record.date,
            predicted=predicted,
            actual=actual,
            error=abs(actual - predicted),
        ))

        new_level = alpha * actual + (1 - alpha) * (level + trend)
        trend = beta * (new_level - level) + (1 - beta) * trend
        level = new_level

    return points


def seasonal_decomposition(profile: ProductSeriesProfile) -> list[SeasonalPoint]:
    """Seasonally adjusted demand for every historical day."""
    patterns = profile.seasonal_patterns
    points = []

    for record in profile.records:
        factor = patterns.factor_for(record.date)
        points.append(SeasonalPoint(
            date=record.date,
            seasonal_factor=factor,
            adjusted_demand=record.quantity_sold * factor,
        ))

    return points


def point_confidence(trend: TrendPoint, seasonal: SeasonalPoint) -> float:
    """
    0.7 * error penalty, plus 0.1 when the seasonal factor is above 0.8.

    An exact prediction has no penalty; a miss against a non-positive
    prediction gets the full penalty.
    """
    if trend.error == 0:
        error_penalty = 1.0
    elif trend.predicted <= 0:
        error_penalty = 0.0
    else:
        error_penalty = max(0.0, 1 - trend.error / trend.predicted)

    bonus = SEASONAL_BONUS if seasonal.seasonal_factor > SEASONAL_BONUS_MIN_FACTOR else 0.0

    return clamp_confidence(BASE_POINT_CONFIDENCE * error_penalty + bonus)


def combine_forecasts(
    trend_points: Sequence[TrendPoint],
    seasonal_points: Sequence[SeasonalPoint],
    trend_weight: float = 0.6
) -> list[ForecastPoint]:
    """
    Weighted blend of the trend and seasonal series, paired by date.

    Trend points start at the second record, so each one is paired with the
    seasonal point for the same day.
    """
    seasonal_by_date = {p.date: p for p in seasonal_points}
    seasonal_weight = 1 - trend_weight
    combined = []

    for trend in trend_points:
        seasonal = seasonal_by_date.get(trend.date)
        if seasonal is None:
            continue

        combined.append(ForecastPoint(
            date=trend.date,
            predicted=trend_weight * trend.predicted + seasonal_weight * seasonal.adjusted_demand,
            actual=trend.actual,
            trend_component=trend.predicted,
            seasonal_component=seasonal.adjusted_demand,
            confidence=point_confidence(trend, seasonal),
        ))

    return combined


def series_confidence(profile: ProductSeriesProfile) -> float:
    """
    Overall confidence from data quantity and volatility.

    min(n / 100, 1) * max(0, 1 - 2 * volatility), capped at 0.95.
    Histories under 10 records get a flat 0.5.
    """
    n = profile.record_count
    if n < MIN_RECORDS_FOR_CONFIDENCE:
        return SHORT_HISTORY_CONFIDENCE

    data_quality = min(n / FULL_DATA_RECORDS, 1.0)
    volatility = profile.trends.volatility or 0.0
    volatility_penalty = max(0.0, 1 - 2 * volatility)

    return clamp_confidence(data_quality * volatility_penalty)


def fit_forecast(
    profile: ProductSeriesProfile,
    alpha: float = 0.3,
    beta: float = 0.1,
    trend_weight: float = 0.6,
    now: Optional[datetime] = None
) -> Optional[DemandForecast]:
    """Fit the hybrid model for one product; None with fewer than 2 records."""
    trend_points = holt_smoothing(profile.records, alpha, beta)
    if not trend_points:
        return None

    points = combine_forecasts(trend_points, seasonal_decomposition(profile), trend_weight)

    return DemandForecast(
        product_id=profile.product_id,
        points=points,
        confidence=series_confidence(profile),
        last_updated=now or datetime.now(timezone.utc),
        model=MODEL_TAG,
    )


# ===================
# SERVICE
# ===================

class ForecastService:
    """
    Holds fitted forecasts and serves future projections.

    rng is the random source for projection jitter; pass a seeded
    random.Random for reproducible projections.
    """

    def __init__(self, settings: Settings, cache: TTLCache, rng: Optional[random.Random] = None):
        self.settings = settings
        self.cache = cache
        self.rng = rng or random.Random()
        self.forecasts: dict[str, DemandForecast] = {}
        self.profiles: dict[str, ProductSeriesProfile] = {}

    # ===================
    # TRAINING
    # ===================

    def train(
        self,
        profiles: dict[str, ProductSeriesProfile],
        now: Optional[datetime] = None
    ) -> dict[str, DemandForecast]:
        """
        Fit a forecast for every profile with at least 2 records.

        Replaces the forecast and profile maps wholesale.
        """
        now = now or datetime.now(timezone.utc)
        forecasts = {}

        for product_id, profile in profiles.items():
            forecast = fit_forecast(
                profile,
                alpha=self.settings.smoothing_alpha,
                beta=self.settings.smoothing_beta,
                trend_weight=self.settings.trend_weight,
                now=now,
            )
            if forecast is not None:
                forecasts[product_id] = forecast

        self.forecasts = forecasts
        self.profiles = dict(profiles)
        self.invalidate_cache()

        logger.info(
            "forecasts_trained",
            count=len(forecasts),
            skipped=len(profiles) - len(forecasts)
        )

        return forecasts

    def get_forecast(self, product_id: str) -> Optional[DemandForecast]:
        return self.forecasts.get(product_id)

    def get_profile(self, product_id: str) -> Optional[ProductSeriesProfile]:
        return self.profiles.get(product_id)

    def get_stale_forecasts(self, max_age_hours: float, now: Optional[datetime] = None) -> list[DemandForecast]:
        """Forecasts last fitted more than max_age_hours ago."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(hours=max_age_hours)
        return [f for f in self.forecasts.values() if f.last_updated < cutoff]

    # ===================
    # PROJECTION
    # ===================

    def project(self, product_id: str, days: int, start: Optional[date] = None) -> list[FutureForecastPoint]:
        """
        Project demand for `days` days starting the day after `start`.

        Baseline is the last combined prediction, scaled by the calendar index
        for each day and a uniform random factor in [0.9, 1.1].
        """
        forecast = self.forecasts.get(product_id)
        profile = self.profiles.get(product_id)
        if forecast is None or profile is None or not forecast.points:
            return []

        start = start or datetime.now(timezone.utc).date()
        baseline = forecast.points[-1].predicted
        patterns = profile.seasonal_patterns
        points = []

        for i in range(1, days + 1):
            day = start + timedelta(days=i)
            factor = patterns.factor_for(day)
            random_factor = self.rng.uniform(RANDOM_FACTOR_LOW, RANDOM_FACTOR_HIGH)

            points.append(FutureForecastPoint(
                date=day,
                predicted=max(0, round(baseline * factor * random_factor)),
                confidence=clamp_confidence(forecast.confidence * (1 - HORIZON_DECAY_PER_DAY * i)),
                seasonal_factor=factor,
            ))

        return points

    def get_demand_forecast(self, product_id: str, days: Optional[int] = None) -> ForecastResult:
        """
        Future demand for one product, cached for forecast_cache_ttl.

        Products without a fitted model get available=False, never zeros.
        """
        if days is None:
            days = self.settings.forecast_horizon_days
        key = f"forecast:{product_id}:{days}"

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        forecast = self.forecasts.get(product_id)
        if forecast is None:
            logger.debug("forecast_not_available", product_id=product_id)
            return ForecastResult(
                product_id=product_id,
                available=False,
                days=days,
                message=NO_FORECAST_MESSAGE,
            )

        result = ForecastResult(
            product_id=product_id,
            available=True,
            days=days,
            points=self.project(product_id, days),
            confidence=forecast.confidence,
            generated_at=datetime.now(timezone.utc),
        )

        self.cache.set(key, result, self.settings.forecast_cache_ttl)

        return result

    def invalidate_cache(self, product_id: Optional[str] = None) -> int:
        """Drop cached projections for one product, or all of them."""
        prefix = f"forecast:{product_id}:" if product_id else "forecast:"
        removed = self.cache.delete_prefix(prefix)
        logger.debug("forecast_cache_invalidated", product_id=product_id, removed=removed)
        return removed
