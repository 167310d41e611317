"""
Tests for the CLI interface.
"""
import json
import os
import tempfile
from datetime import datetime
from unittest.mock import patch, MagicMock

import pytest
from typer.testing import CliRunner

from saas_spend.cli.main import app, EXIT_CODE_PASS, EXIT_CODE_FAIL
from saas_spend.core.forecast import CostForecast, insufficient_data_forecast
from saas_spend.core.opportunities import OpportunityType, Priority, SavingsOpportunity
from saas_spend.core.report import AnalysisReport, ReportSummary
from saas_spend.core.trends import CostTrend
from saas_spend.core.utilization import LicenseUtilization

runner = CliRunner()


@pytest.fixture
def db_path():
    """Temporary database path (not initialized)."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield os.path.join(temp_dir, "cli.db")


@pytest.fixture
def mock_engine():
    """Replace the engine the CLI builds."""
    engine = MagicMock()
    with patch('saas_spend.cli.main._build_engine', return_value=engine):
        yield engine


def sample_opportunity() -> SavingsOpportunity:
    return SavingsOpportunity(
        type=OpportunityType.UNUSED_LICENSE,
        title="Remove 95 unused Zoom licenses",
        description="These licenses have less than 10% utilization over the past 30 days",
        potential_savings=11400.0,
        priority=Priority.HIGH,
        confidence=85,
        action_required="Review inactive users and cancel unused licenses",
        application_id="zoom",
        application_name="Zoom"
    )


class TestSetupCommands:
    """Test database setup commands."""

    def test_init_creates_database(self, db_path):
        """Test init creates the schema."""
        result = runner.invoke(app, ["--db", db_path, "init"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Database initialized successfully" in result.output
        assert os.path.exists(db_path)

    def test_seed_demo_then_savings_json(self, db_path):
        """Test demo data produces every kind of opportunity."""
        result = runner.invoke(app, ["--db", db_path, "seed-demo"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Demo data inserted" in result.output

        result = runner.invoke(app, ["--db", db_path, "savings", "--json"])
        assert result.exit_code == EXIT_CODE_PASS
        payload = json.loads(result.stdout)
        assert payload["success"] is True
        types = {item["type"] for item in payload["data"]}
        assert types == {"unused_license", "underutilized_app", "duplicate_functionality"}
        savings = [item["potentialSavings"] for item in payload["data"]]
        assert savings == sorted(savings, reverse=True)

    def test_db_path_from_environment(self, db_path):
        """Test SAAS_SPEND_DB selects the database."""
        result = runner.invoke(app, ["init"], env={"SAAS_SPEND_DB": db_path})
        assert result.exit_code == EXIT_CODE_PASS
        assert os.path.exists(db_path)


class TestAnalysisCommands:
    """Test analysis commands with a mocked engine."""

    def test_trends_table(self, mock_engine):
        """Test trends are rendered with currency and signed growth."""
        mock_engine.analyze_cost_trends.return_value = [
            CostTrend(month="2024-01", total_cost=1000.0, growth_rate=0.0),
            CostTrend(month="2024-02", total_cost=1500.0, growth_rate=50.0),
        ]
        result = runner.invoke(app, ["trends", "--org", "org-1", "--months", "3"])

        assert result.exit_code == EXIT_CODE_PASS
        mock_engine.analyze_cost_trends.assert_called_once_with("org-1", 3)
        assert "2024-02" in result.output
        assert "$1,500.00" in result.output
        assert "+50.0%" in result.output

    def test_trends_rejects_zero_months(self, mock_engine):
        """Test the months option must be positive."""
        result = runner.invoke(app, ["trends", "--months", "0"])
        assert result.exit_code != EXIT_CODE_PASS
        mock_engine.analyze_cost_trends.assert_not_called()

    def test_utilization_json_envelope(self, mock_engine):
        """Test JSON output uses the success/data envelope."""
        mock_engine.analyze_license_utilization.return_value = [
            LicenseUtilization(
                license_id="zoom-l",
                application_id="zoom",
                application_name="Zoom",
                total_licenses=100,
                used_licenses=5,
                utilization_rate=5.0,
                inactive_users=95
            )
        ]
        result = runner.invoke(app, ["utilization", "--json"])

        assert result.exit_code == EXIT_CODE_PASS
        payload = json.loads(result.stdout)
        assert payload["success"] is True
        assert payload["data"][0]["utilizationRate"] == 5.0
        assert payload["data"][0]["inactiveUsers"] == 95

    def test_savings_output(self, mock_engine):
        """Test savings show priority, amount and action."""
        mock_engine.identify_savings_opportunities.return_value = [sample_opportunity()]
        result = runner.invoke(app, ["savings"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "HIGH" in result.output
        assert "$11,400.00" in result.output
        assert "Review inactive users" in result.output

    def test_no_savings(self, mock_engine):
        """Test an empty result prints a friendly message."""
        mock_engine.identify_savings_opportunities.return_value = []
        result = runner.invoke(app, ["savings"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "No savings opportunities found" in result.output

    def test_forecast_insufficient_data(self, mock_engine):
        """Test the insufficient-data forecast is explained."""
        mock_engine.generate_cost_forecast.return_value = [insufficient_data_forecast()]
        result = runner.invoke(app, ["forecast"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Insufficient data" in result.output

    def test_forecast_table(self, mock_engine):
        """Test forecasts render period and confidence."""
        mock_engine.generate_cost_forecast.return_value = [
            CostForecast(
                period="Jul 2024",
                predicted_cost=1234.5,
                confidence=88,
                factors=["Based on historical growth patterns"],
                recommendations=["Continue monitoring usage trends"]
            )
        ]
        result = runner.invoke(app, ["forecast", "--months", "1"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Jul 2024" in result.output
        assert "$1,234.50" in result.output
        assert "Continue monitoring usage trends" in result.output

    def test_report_summary(self, mock_engine):
        """Test the report prints its headline figures."""
        mock_engine.generate_analysis_report.return_value = AnalysisReport(
            organization_id="org-1",
            summary=ReportSummary(
                total_potential_savings=11400.0,
                average_utilization=47.5,
                total_applications=2,
                high_priority_opportunities=1,
                generated_at=datetime(2024, 6, 30, 12, 0)
            ),
            cost_trends=[],
            utilization=[],
            savings_opportunities=[sample_opportunity()],
            usage_patterns=[],
            cost_forecast=[insufficient_data_forecast()]
        )
        result = runner.invoke(app, ["report", "--org", "org-1"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "SaaS Spend Report" in result.output
        assert "Potential annual savings: $11,400.00" in result.output
        assert "Average utilization: 47.5%" in result.output


class TestErrorHandling:
    """Test failures map to exit codes."""

    def test_missing_schema_prints_hint(self, db_path):
        """Test an uninitialized database explains how to start."""
        result = runner.invoke(app, ["--db", db_path, "utilization"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "No SaaS usage data found" in result.output
        assert "saas-spend init" in result.output

    def test_engine_error_fails(self, mock_engine):
        """Test unexpected errors exit with failure."""
        mock_engine.analyze_usage_patterns.side_effect = RuntimeError("Database error")
        result = runner.invoke(app, ["patterns"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Database error" in result.output

    def test_missing_config_file_fails(self, db_path):
        """Test a bad --config path is reported."""
        result = runner.invoke(app, ["--db", db_path, "--config", "/nonexistent/analysis.yaml", "trends"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Analysis config file not found" in result.output
