"""
Cost forecasting.

Extrapolates future monthly spend from historical month-over-month growth.

The model is deliberately simple: the mean growth rate is compounded from
the last known month, and confidence drops as growth becomes erratic.
"""

import math
import statistics
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Sequence

from saas_spend.config.loader import ForecastConfig
from .pricing import round_half_up, round_to_int
from .trends import CostTrend, add_months

INSUFFICIENT_DATA_PERIOD = "Insufficient Data"


@dataclass(frozen=True)
class CostForecast:
    """Predicted spend for one future month."""
    period: str
    predicted_cost: float
    confidence: int
    factors: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def is_insufficient_data(self) -> bool:
        return self.period == INSUFFICIENT_DATA_PERIOD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "predictedCost": self.predicted_cost,
            "confidence": self.confidence,
            "factors": list(self.factors),
            "recommendations": list(self.recommendations),
        }


def insufficient_data_forecast() -> CostForecast:
    """Placeholder returned when history is too short to extrapolate."""
    return CostForecast(
        period=INSUFFICIENT_DATA_PERIOD,
        predicted_cost=0.0,
        confidence=0,
        factors=["Not enough historical data for accurate forecasting"],
        recommendations=["Collect more usage data over time for better predictions"]
    )


def forecast_confidence(growth_rates: Sequence[float], config: ForecastConfig) -> int:
    """Confidence score that shrinks with the variance of growth rates.

    Args:
        growth_rates: Month-over-month growth rates in percent
        config: Forecast bounds and penalty

    Returns:
        Whole-number confidence between the configured minimum and maximum
    """
    variance = statistics.pvariance(growth_rates)
    confidence = max(config.min_confidence, config.max_confidence - config.variance_penalty * variance)
    return round_to_int(min(config.max_confidence, confidence))


def project_cost(last_cost: float, growth_rate: float, offset: int) -> float:
    """Compound ``growth_rate`` percent onto ``last_cost`` for ``offset`` months.

    Projections too large for a float are reported as infinity.
    """
    if last_cost == 0:
        return 0.0
    try:
        return last_cost * (1 + growth_rate / 100) ** offset
    except OverflowError:
        return math.inf


def compute_cost_forecast(
    trends: Sequence[CostTrend],
    months: int,
    as_of: date,
    config: ForecastConfig
) -> List[CostForecast]:
    """Project monthly cost for the next ``months`` months.

    Args:
        trends: Historical monthly trends, oldest first
        months: Number of future months to project
        as_of: Reference date; the first forecast is for the following month
        config: Forecast thresholds

    Returns:
        One forecast per future month, nearest first, or a single
        insufficient-data entry when there are too few trend months

    Raises:
        ValueError: If months is less than 1
    """
    if months < 1:
        raise ValueError("months must be >= 1")

    if len(trends) < config.min_history_months:
        return [insufficient_data_forecast()]

    # The first month has no predecessor, so its growth rate is not a measurement
    growth_rates = [trend.growth_rate for trend in trends[1:]]
    average_growth = statistics.fmean(growth_rates)
    confidence = forecast_confidence(growth_rates, config)
    last_cost = trends[-1].total_cost

    factors: List[str] = []
    recommendations: List[str] = []
    if average_growth > config.high_growth_rate:
        factors.append("High growth rate detected")
        recommendations.append("Monitor for cost spikes and optimize license allocation")
    if average_growth < config.decline_rate:
        factors.append("Declining usage trend")
        recommendations.append("Consider downsizing licenses or renegotiating contracts")
    if not factors:
        factors.append("Based on historical growth patterns")
    if not recommendations:
        recommendations.append("Continue monitoring usage trends")

    forecasts = []
    for offset in range(1, months + 1):
        predicted = project_cost(last_cost, average_growth, offset)
        forecasts.append(CostForecast(
            period=add_months(as_of, offset).strftime("%b %Y"),
            predicted_cost=round_half_up(predicted),
            confidence=confidence,
            factors=list(factors),
            recommendations=list(recommendations)
        ))
    return forecasts
