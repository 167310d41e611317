"""
Comprehensive analysis report.

Bundles every analysis for an organization with a headline summary.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

from .forecast import CostForecast
from .opportunities import Priority, SavingsOpportunity
from .patterns import UsagePattern
from .pricing import round_half_up
from .trends import CostTrend
from .utilization import LicenseUtilization


@dataclass(frozen=True)
class ReportSummary:
    """Headline figures of an analysis report."""
    total_potential_savings: float
    average_utilization: float
    total_applications: int
    high_priority_opportunities: int
    generated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPotentialSavings": self.total_potential_savings,
            "averageUtilization": self.average_utilization,
            "totalApplications": self.total_applications,
            "highPriorityOpportunities": self.high_priority_opportunities,
            "generatedAt": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class AnalysisReport:
    """All analyses for one organization."""
    organization_id: str
    summary: ReportSummary
    cost_trends: List[CostTrend]
    utilization: List[LicenseUtilization]
    savings_opportunities: List[SavingsOpportunity]
    usage_patterns: List[UsagePattern]
    cost_forecast: List[CostForecast]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organizationId": self.organization_id,
            "summary": self.summary.to_dict(),
            "costTrends": [t.to_dict() for t in self.cost_trends],
            "utilization": [u.to_dict() for u in self.utilization],
            "savingsOpportunities": [o.to_dict() for o in self.savings_opportunities],
            "usagePatterns": [p.to_dict() for p in self.usage_patterns],
            "costForecast": [f.to_dict() for f in self.cost_forecast],
        }


def summarize(
    utilization: List[LicenseUtilization],
    opportunities: List[SavingsOpportunity],
    generated_at: datetime
) -> ReportSummary:
    """Compute the headline figures for a report."""
    average = (
        sum(u.utilization_rate for u in utilization) / len(utilization)
        if utilization else 0.0
    )
    return ReportSummary(
        total_potential_savings=round_half_up(sum(o.potential_savings for o in opportunities)),
        average_utilization=round_half_up(average),
        total_applications=len(utilization),
        high_priority_opportunities=sum(1 for o in opportunities if o.priority is Priority.HIGH),
        generated_at=generated_at
    )
