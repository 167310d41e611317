"""
Integration tests for the analysis engine.

Runs every analysis against a temporary SQLite database with a fixed clock.
"""

import logging
import os
import sqlite3
import tempfile
from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from saas_spend.config.loader import AnalysisConfig, ThresholdConfig, UtilizationConfig
from saas_spend.core.engine import AnalysisEngine, get_engine
from saas_spend.core.forecast import INSUFFICIENT_DATA_PERIOD
from saas_spend.core.opportunities import OpportunityType, Priority
from saas_spend.storage.models import (
    Application,
    ApplicationCategory,
    BillingCycle,
    License,
    UsageRecord,
)
from saas_spend.storage.repository import (
    SpendRepository,
    initialize_schema,
    insert_application,
    insert_license,
    insert_usage_records,
)

NOW = datetime(2024, 6, 30, 12, 0, 0)
TODAY = NOW.date()


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def db_path():
    """Create a database holding one small organization.

    Zoom: 100 seats at $10/month, 5 daily users (unused).
    Slack: 10 seats at $8/month, 9 daily users (healthy).
    Zoom also has one day of history in each of January to May.
    """
    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "engine.db")
        initialize_schema(path)

        insert_application(Application("zoom", "org-1", "Zoom", ApplicationCategory.COMMUNICATION), path)
        insert_application(Application("slack", "org-1", "Slack", ApplicationCategory.COMMUNICATION), path)
        insert_license(License("zoom-l", "zoom", "org-1", 100, 10.0, BillingCycle.MONTHLY), path)
        insert_license(License("slack-l", "slack", "org-1", 10, 8.0, BillingCycle.MONTHLY), path)

        records = []
        for offset in range(30):
            day = TODAY - timedelta(days=offset)
            records.append(UsageRecord("zoom", day, 5, "zoom-l"))
            records.append(UsageRecord("slack", day, 9, "slack-l"))
        for month in range(1, 6):
            records.append(UsageRecord("zoom", date(2024, month, 15), 10, "zoom-l"))
        insert_usage_records(records, path)

        yield path


@pytest.fixture
def engine(db_path):
    return AnalysisEngine(SpendRepository(db_path), clock=fixed_clock)


class TestCostTrends:
    """Test cost trend analysis end to end."""

    def test_monthly_trends(self, engine):
        """Test one entry per month with data, oldest first."""
        trends = engine.analyze_cost_trends("org-1", months=6)

        assert [t.month for t in trends] == [
            "2024-01", "2024-02", "2024-03", "2024-04", "2024-05", "2024-06"
        ]
        assert trends[0].growth_rate == 0.0
        assert trends[1].total_cost == 100.0
        assert trends[1].growth_rate == 0.0
        # June: 30 days * (5 * $10 + 9 * $8)
        assert trends[-1].total_cost == 3660.0

    def test_lookback_limits_months(self, engine):
        """Test a short lookback drops older months."""
        trends = engine.analyze_cost_trends("org-1", months=1)
        assert [t.month for t in trends] == ["2024-06"]

    def test_unknown_organization_is_empty(self, engine):
        """Test an organization without data yields no trends."""
        assert engine.analyze_cost_trends("org-unknown") == []

    def test_invalid_months_rejected(self, engine):
        """Test a lookback under one month is an error."""
        with pytest.raises(ValueError, match="months must be >= 1"):
            engine.analyze_cost_trends("org-1", months=0)


class TestUtilizationAndSavings:
    """Test utilization scoring and savings detection end to end."""

    def test_utilization_ranked(self, engine):
        """Test licenses are scored and ranked."""
        result = engine.analyze_license_utilization("org-1")

        assert [u.application_name for u in result] == ["Slack", "Zoom"]
        assert result[0].utilization_rate == 90.0
        assert result[1].utilization_rate == 5.0
        assert result[1].inactive_users == 95

    def test_unused_zoom_flagged(self, engine):
        """Test the unused license is priced, prioritized and ranked first."""
        result = engine.identify_savings_opportunities("org-1")

        assert [o.type for o in result] == [
            OpportunityType.UNUSED_LICENSE,
            OpportunityType.DUPLICATE_FUNCTIONALITY,
        ]
        assert result[0].application_name == "Zoom"
        assert result[0].potential_savings == 11400.0
        assert result[0].priority == Priority.HIGH

    def test_duplicate_communication_tools(self, engine):
        """Test the overlapping chat tools are flagged."""
        result = engine.identify_savings_opportunities("org-1")

        duplicates = [o for o in result if o.type == OpportunityType.DUPLICATE_FUNCTIONALITY]
        assert len(duplicates) == 1
        # (100 * $10 + 10 * $8) * 12 = $12,960; 30% of it
        assert duplicates[0].potential_savings == 3888.0
        assert duplicates[0].metadata["applications"] == ["Slack", "Zoom"]

    def test_configured_threshold_applies(self, db_path):
        """Test a higher duplicate threshold suppresses the consolidation hint."""
        config = AnalysisConfig(thresholds=ThresholdConfig(duplicate_min_cost=20000))
        engine = AnalysisEngine(SpendRepository(db_path), config, clock=fixed_clock)
        result = engine.identify_savings_opportunities("org-1")

        assert [o.type for o in result] == [OpportunityType.UNUSED_LICENSE]

    def test_unused_description_follows_window(self, db_path):
        """Test a shorter utilization window is named in the description."""
        config = AnalysisConfig(utilization=UtilizationConfig(window_days=14, max_records=14))
        engine = AnalysisEngine(SpendRepository(db_path), config, clock=fixed_clock)
        result = engine.identify_savings_opportunities("org-1")

        unused = [o for o in result if o.type == OpportunityType.UNUSED_LICENSE]
        assert unused[0].description.endswith("over the past 14 days")


class TestForecastAndReport:
    """Test forecasting and the comprehensive report."""

    def test_forecast_six_months(self, engine):
        """Test a forecast entry per future month."""
        result = engine.generate_cost_forecast("org-1", months=6)

        assert len(result) == 6
        assert result[0].period == "Jul 2024"
        assert result[-1].period == "Dec 2024"
        assert all(20 <= f.confidence <= 90 for f in result)

    def test_forecast_without_history(self, engine, caplog):
        """Test an empty organization gets the insufficient-data entry."""
        with caplog.at_level(logging.WARNING):
            result = engine.generate_cost_forecast("org-unknown")

        assert len(result) == 1
        assert result[0].period == INSUFFICIENT_DATA_PERIOD
        assert result[0].predicted_cost == 0
        assert result[0].confidence == 0
        assert "forecast unavailable" in caplog.text

    def test_usage_patterns(self, engine):
        """Test patterns cover applications with recent usage."""
        result = engine.analyze_usage_patterns("org-1")
        assert {p.application_name for p in result} == {"Zoom", "Slack"}

    def test_report_summary(self, engine):
        """Test the report bundles every analysis."""
        report = engine.generate_analysis_report("org-1")

        assert report.summary.total_applications == 2
        assert report.summary.total_potential_savings == 15288.0
        assert report.summary.high_priority_opportunities == 1
        assert report.summary.average_utilization == 47.5
        assert report.summary.generated_at == NOW
        assert len(report.cost_forecast) == 6

        data = report.to_dict()
        assert set(data) == {
            "organizationId", "summary", "costTrends", "utilization",
            "savingsOpportunities", "usagePatterns", "costForecast",
        }


class TestErrorPropagation:
    """Test data-access failures reach the caller unchanged."""

    def test_trend_read_failure_propagates(self, caplog):
        """Test repository errors are logged and re-raised."""
        repository = MagicMock()
        repository.list_usage_records.side_effect = sqlite3.OperationalError("disk I/O error")
        engine = AnalysisEngine(repository, clock=fixed_clock)

        with caplog.at_level(logging.ERROR):
            with pytest.raises(sqlite3.OperationalError, match="disk I/O error"):
                engine.analyze_cost_trends("org-1")
        assert "Error analyzing cost trends" in caplog.text

    def test_savings_read_failure_propagates(self):
        """Test savings detection does not mask read errors."""
        repository = MagicMock()
        repository.list_active_licenses.side_effect = RuntimeError("Database error")
        engine = AnalysisEngine(repository, clock=fixed_clock)

        with pytest.raises(RuntimeError, match="Database error"):
            engine.identify_savings_opportunities("org-1")

    def test_report_failure_propagates(self):
        """Test the report fails when any analysis fails."""
        repository = MagicMock()
        repository.list_usage_records.side_effect = RuntimeError("Database error")
        engine = AnalysisEngine(repository, clock=fixed_clock)

        with pytest.raises(RuntimeError, match="Database error"):
            engine.generate_analysis_report("org-1")

    def test_missing_schema_propagates(self):
        """Test an uninitialized database raises rather than returning empty."""
        with tempfile.TemporaryDirectory() as temp_dir:
            engine = AnalysisEngine(SpendRepository(os.path.join(temp_dir, "empty.db")))
            with pytest.raises(sqlite3.OperationalError):
                engine.analyze_license_utilization("org-1")


class TestGetEngine:
    """Test the shared engine accessor."""

    def test_reuses_instance(self):
        """Test repeated calls without arguments share an engine."""
        first = get_engine(db_path="shared.db")
        assert get_engine() is first

    def test_rebuilds_for_new_path(self):
        """Test a new path builds an engine over that database."""
        engine = get_engine(db_path="other.db")
        assert engine.repository.db_path == "other.db"
