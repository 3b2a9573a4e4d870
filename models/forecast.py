"""
Forecast schemas.

Profiles (seasonal indices + trend statistics), fitted forecasts and the
tagged result returned to callers when asking for a projection.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import Field

from models.base import BaseSchema
from models.sales import HistoricalSalesRecord


MODEL_TAG = "hybrid_exponential_seasonal"
MAX_CONFIDENCE = 0.95


def clamp_confidence(value: float) -> float:
    """Clamp a confidence to [0, 0.95]; the model never claims certainty."""
    return max(0.0, min(value, MAX_CONFIDENCE))


class SeasonalPatterns(BaseSchema):
    """Multiplicative calendar indices, each normalized to mean 1.0."""

    monthly: list[float] = Field(default_factory=lambda: [1.0] * 12, min_length=12, max_length=12)
    weekly: list[float] = Field(default_factory=lambda: [1.0] * 7, min_length=7, max_length=7)
    quarterly: list[float] = Field(default_factory=lambda: [1.0] * 4, min_length=4, max_length=4)

    def factor_for(self, day: date) -> float:
        """Combined monthly/weekly factor for a calendar day."""
        return (self.monthly[day.month - 1] + self.weekly[day.weekday()]) / 2


class TrendStats(BaseSchema):
    """Trend statistics; None when the series is too short (< 7 records)."""

    growth: Optional[float] = Field(None, description="Regression slope, units/day")
    volatility: Optional[float] = Field(None, ge=0, description="Std dev of relative daily changes")
    cyclicality: Optional[float] = Field(None, ge=0, description="Variance/mean of monthly means")


class ProductSeriesProfile(BaseSchema):
    """Everything the forecaster knows about one product's history."""

    product_id: str
    category: Optional[str] = None
    average_price: float = 0.0
    records: list[HistoricalSalesRecord] = Field(default_factory=list)
    seasonal_patterns: SeasonalPatterns = Field(default_factory=SeasonalPatterns)
    trends: TrendStats = Field(default_factory=TrendStats)

    @property
    def record_count(self) -> int:
        return len(self.records)


class TrendPoint(BaseSchema):
    """One-step-ahead Holt prediction for a historical day."""

    date: date
    predicted: float
    actual: float
    error: float


class SeasonalPoint(BaseSchema):
    """Seasonally adjusted demand for a historical day."""

    date: date
    seasonal_factor: float
    adjusted_demand: float


class ForecastPoint(BaseSchema):
    """Combined model output for a historical day."""

    date: date
    predicted: float
    actual: Optional[float] = None
    trend_component: float
    seasonal_component: float
    confidence: float = Field(..., ge=0, le=MAX_CONFIDENCE)


class DemandForecast(BaseSchema):
    """Fitted forecast for one product."""

    product_id: str
    points: list[ForecastPoint] = Field(default_factory=list)
    confidence: float = Field(..., ge=0, le=MAX_CONFIDENCE)
    last_updated: datetime
    model: str = MODEL_TAG


class FutureForecastPoint(BaseSchema):
    """Projected demand for a future day."""

    date: date
    predicted: int = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=MAX_CONFIDENCE)
    seasonal_factor: float


class ForecastResult(BaseSchema):
    """
    Tagged forecast response.

    available=False means there is no fitted model for the product; callers
    must not treat that as zero demand.
    """

    product_id: str
    available: bool
    days: int
    points: list[FutureForecastPoint] = Field(default_factory=list)
    confidence: Optional[float] = None
    message: Optional[str] = None
    generated_at: Optional[datetime] = None


class RetrainSummary(BaseSchema):
    """Outcome of a full reload -> profile -> fit -> reorder cycle."""

    started_at: datetime
    finished_at: datetime
    products_with_history: int
    profiles_built: int
    forecasts_trained: int
    reorder_points_calculated: int

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()
