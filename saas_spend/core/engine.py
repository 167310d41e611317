"""
Analysis engine.

Fetches an organization's licenses and usage from the repository and runs
the cost, utilization, savings and forecast analyses over them.

Each call reads a fresh snapshot; nothing is cached between calls. Read
failures are logged and propagated unchanged to the caller.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from saas_spend.config.loader import DEFAULT_CONFIG, AnalysisConfig
from .forecast import CostForecast, compute_cost_forecast
from .opportunities import SavingsOpportunity, identify_savings_opportunities
from .patterns import UsagePattern, compute_usage_patterns
from .report import AnalysisReport, summarize
from .trends import CostTrend, add_months, compute_cost_trends
from .utilization import LicenseUtilization, compute_license_utilization
from saas_spend.storage.models import License
from saas_spend.storage.repository import SpendRepository, get_repository

logger = logging.getLogger(__name__)

DEFAULT_TREND_MONTHS = 6
DEFAULT_FORECAST_MONTHS = 6
USAGE_PATTERN_DAYS = 90


class AnalysisEngine:
    """Stateless analysis service over a spend repository.

    Args:
        repository: Source of applications, licenses and usage
        config: Thresholds and heuristics for the analyses
        clock: Returns the current time; windows are anchored on its date
    """

    def __init__(
        self,
        repository: SpendRepository,
        config: AnalysisConfig = DEFAULT_CONFIG,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.repository = repository
        self.config = config
        self.clock = clock

    def _today(self) -> date:
        return self.clock().date()

    def analyze_cost_trends(
        self,
        organization_id: str,
        months: int = DEFAULT_TREND_MONTHS
    ) -> List[CostTrend]:
        """Monthly spend over the last ``months`` months.

        Raises:
            ValueError: If months is less than 1
        """
        if months < 1:
            raise ValueError("months must be >= 1")

        logger.info("Cost trends analysis requested for %s (months=%d)", organization_id, months)
        start = add_months(self._today(), -months)
        try:
            records = self.repository.list_usage_records(organization_id, start)
        except Exception as e:
            logger.error("Error analyzing cost trends for %s: %s", organization_id, e)
            raise
        return compute_cost_trends(records)

    def _active_licenses(self, organization_id: str) -> List[License]:
        since = self._today() - timedelta(days=self.config.utilization.window_days)
        return self.repository.list_active_licenses(organization_id, since)

    def analyze_license_utilization(self, organization_id: str) -> List[LicenseUtilization]:
        """Trailing-window utilization of every active license, highest first."""
        logger.info("License utilization analysis requested for %s", organization_id)
        try:
            licenses = self._active_licenses(organization_id)
        except Exception as e:
            logger.error("Error analyzing license utilization for %s: %s", organization_id, e)
            raise
        return compute_license_utilization(licenses, self.config.utilization.max_records)

    def identify_savings_opportunities(self, organization_id: str) -> List[SavingsOpportunity]:
        """Savings recommendations, largest potential saving first."""
        logger.info("Savings opportunities analysis requested for %s", organization_id)
        try:
            licenses = self._active_licenses(organization_id)
            applications = self.repository.list_applications(organization_id)
        except Exception as e:
            logger.error("Error identifying savings opportunities for %s: %s", organization_id, e)
            raise

        utilization = compute_license_utilization(licenses, self.config.utilization.max_records)
        opportunities = identify_savings_opportunities(
            utilization,
            licenses,
            applications,
            self.config.thresholds,
            self.config.heuristics,
            self.config.utilization.window_days
        )
        logger.debug("Found %d savings opportunities for %s", len(opportunities), organization_id)
        return opportunities

    def analyze_usage_patterns(self, organization_id: str) -> List[UsagePattern]:
        """Daily usage profile of each application over the last 90 days."""
        logger.info("Usage patterns analysis requested for %s", organization_id)
        since = self._today() - timedelta(days=USAGE_PATTERN_DAYS)
        try:
            applications = self.repository.list_applications(organization_id, usage_since=since)
        except Exception as e:
            logger.error("Error analyzing usage patterns for %s: %s", organization_id, e)
            raise
        return compute_usage_patterns(applications)

    def generate_cost_forecast(
        self,
        organization_id: str,
        months: int = DEFAULT_FORECAST_MONTHS
    ) -> List[CostForecast]:
        """Projected spend for the next ``months`` months.

        Returns a single insufficient-data entry when fewer than three
        months of history exist.

        Raises:
            ValueError: If months is less than 1
        """
        if months < 1:
            raise ValueError("months must be >= 1")

        logger.info("Cost forecast requested for %s (months=%d)", organization_id, months)
        trends = self.analyze_cost_trends(organization_id, self.config.forecast.lookback_months)
        forecasts = compute_cost_forecast(trends, months, self._today(), self.config.forecast)
        if forecasts[0].is_insufficient_data:
            logger.warning(
                "Only %d months of cost history for %s, forecast unavailable",
                len(trends), organization_id
            )
        return forecasts

    def generate_analysis_report(self, organization_id: str) -> AnalysisReport:
        """Run every analysis and summarize the results."""
        logger.info("Comprehensive analysis report requested for %s", organization_id)
        cost_trends = self.analyze_cost_trends(organization_id)
        utilization = self.analyze_license_utilization(organization_id)
        opportunities = self.identify_savings_opportunities(organization_id)
        usage_patterns = self.analyze_usage_patterns(organization_id)
        cost_forecast = self.generate_cost_forecast(organization_id)

        return AnalysisReport(
            organization_id=organization_id,
            summary=summarize(utilization, opportunities, self.clock()),
            cost_trends=cost_trends,
            utilization=utilization,
            savings_opportunities=opportunities,
            usage_patterns=usage_patterns,
            cost_forecast=cost_forecast
        )


# Global engine instance
_default_engine: Optional[AnalysisEngine] = None


def get_engine(
    db_path: Optional[str] = None,
    config: Optional[AnalysisConfig] = None
) -> AnalysisEngine:
    """Get an engine over the default repository.

    A new engine is built whenever a database path or configuration is
    given; otherwise the shared instance is reused.

    Args:
        db_path: Optional path to SQLite database file
        config: Optional analysis configuration

    Returns:
        An instance of AnalysisEngine
    """
    global _default_engine
    if _default_engine is None or db_path is not None or config is not None:
        repository = get_repository(db_path) if db_path is not None else get_repository()
        _default_engine = AnalysisEngine(repository, config or DEFAULT_CONFIG)
    return _default_engine
