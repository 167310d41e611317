"""
Savings opportunity detection.

Applies fixed utilization and cost rules to flag licenses and tools worth
reviewing.

Rules:
- unused_license: utilization below the unused threshold (10%)
- underutilized_app: utilization from the unused threshold up to, but not
  including, the underutilized threshold (10% to 50%)
- duplicate_functionality: more than one application in a category with a
  combined annual cost above the duplicate threshold ($10,000)

Rules run independently and are not deduplicated against each other.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from saas_spend.config.loader import HeuristicConfig, ThresholdConfig
from .pricing import round_half_up, seat_savings
from .utilization import LicenseUtilization
from saas_spend.storage.models import Application, ApplicationCategory, License


class OpportunityType(Enum):
    """Kind of savings opportunity."""
    UNUSED_LICENSE = "unused_license"
    UNDERUTILIZED_APP = "underutilized_app"
    DUPLICATE_FUNCTIONALITY = "duplicate_functionality"


class Priority(Enum):
    """How urgently an opportunity should be reviewed."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class SavingsOpportunity:
    """A recommended action with its estimated annual saving."""
    type: OpportunityType
    title: str
    description: str
    potential_savings: float  # annualized
    priority: Priority
    confidence: int  # 0-100
    action_required: str
    application_id: Optional[str] = None
    application_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "applicationId": self.application_id,
            "applicationName": self.application_name,
            "potentialSavings": self.potential_savings,
            "priority": self.priority.value,
            "confidence": self.confidence,
            "actionRequired": self.action_required,
            "metadata": dict(self.metadata),
        }


def savings_priority(annual_savings: float, thresholds: ThresholdConfig) -> Priority:
    """Bucket an annual saving into a priority."""
    if annual_savings > thresholds.high_priority_savings:
        return Priority.HIGH
    if annual_savings > thresholds.medium_priority_savings:
        return Priority.MEDIUM
    return Priority.LOW


def find_unused_licenses(
    utilization: Iterable[LicenseUtilization],
    licenses: Mapping[str, License],
    thresholds: ThresholdConfig,
    heuristics: HeuristicConfig,
    window_days: int = 30
) -> List[SavingsOpportunity]:
    """Flag licenses whose seats are almost never used.

    Every inactive seat is counted as releasable.
    """
    opportunities = []
    for usage in utilization:
        if usage.utilization_rate >= thresholds.unused_rate:
            continue
        lic = licenses.get(usage.license_id)
        if lic is None:
            continue

        annual_savings = seat_savings(lic.cost_per_seat, usage.inactive_users, lic.billing_cycle)
        opportunities.append(SavingsOpportunity(
            type=OpportunityType.UNUSED_LICENSE,
            title=f"Remove {usage.inactive_users} unused {usage.application_name} licenses",
            description=(
                f"These licenses have less than {thresholds.unused_rate:g}% "
                f"utilization over the past {window_days} days"
            ),
            application_id=usage.application_id,
            application_name=usage.application_name,
            potential_savings=round_half_up(annual_savings),
            priority=savings_priority(annual_savings, thresholds),
            confidence=heuristics.unused_confidence,
            action_required="Review inactive users and cancel unused licenses",
            metadata={
                "licenseId": usage.license_id,
                "inactiveUsers": usage.inactive_users,
                "utilizationRate": usage.utilization_rate,
                "periodCost": round_half_up(lic.cost_per_seat * usage.inactive_users),
            }
        ))
    return opportunities


def find_underutilized_licenses(
    utilization: Iterable[LicenseUtilization],
    licenses: Mapping[str, License],
    thresholds: ThresholdConfig,
    heuristics: HeuristicConfig
) -> List[SavingsOpportunity]:
    """Flag licenses with moderate idle capacity.

    Only a fraction of the idle seats is assumed releasable; the rest may
    belong to occasional users.
    """
    opportunities = []
    for usage in utilization:
        if not thresholds.unused_rate <= usage.utilization_rate < thresholds.underutilized_rate:
            continue
        lic = licenses.get(usage.license_id)
        if lic is None:
            continue

        reduction = math.floor(usage.inactive_users * heuristics.underutilized_reduction)
        annual_savings = seat_savings(lic.cost_per_seat, reduction, lic.billing_cycle)
        opportunities.append(SavingsOpportunity(
            type=OpportunityType.UNDERUTILIZED_APP,
            title=f"Optimize {usage.application_name} license allocation",
            description=(
                f"Application is only {usage.utilization_rate:g}% utilized, "
                f"consider reducing licenses"
            ),
            application_id=usage.application_id,
            application_name=usage.application_name,
            potential_savings=round_half_up(annual_savings),
            priority=Priority.MEDIUM,
            confidence=heuristics.underutilized_confidence,
            action_required="Analyze user needs and consider reducing license count",
            metadata={
                "licenseId": usage.license_id,
                "currentUtilization": usage.utilization_rate,
                "suggestedReduction": reduction,
            }
        ))
    return opportunities


def find_duplicate_functionality(
    applications: Iterable[Application],
    thresholds: ThresholdConfig,
    heuristics: HeuristicConfig
) -> List[SavingsOpportunity]:
    """Flag categories where several paid tools likely overlap.

    The saving is a flat share of the category's combined annual license
    cost, not the result of comparing features.
    """
    groups: Dict[ApplicationCategory, List[Application]] = {}
    for app in applications:
        if _is_consolidation_candidate(app.category):
            groups.setdefault(app.category, []).append(app)

    opportunities = []
    for category, apps in groups.items():
        if len(apps) <= 1:
            continue
        total_cost = sum(lic.annual_cost for app in apps for lic in app.licenses)
        if total_cost <= thresholds.duplicate_min_cost:
            continue

        label = category.value.replace("_", " ")
        opportunities.append(SavingsOpportunity(
            type=OpportunityType.DUPLICATE_FUNCTIONALITY,
            title=f"Consolidate {label} tools",
            description=(
                f"Multiple applications in the {label} category "
                f"may have overlapping functionality"
            ),
            potential_savings=round_half_up(total_cost * heuristics.duplicate_overlap),
            priority=Priority.MEDIUM,
            confidence=heuristics.duplicate_confidence,
            action_required="Review applications for overlapping features and consolidate",
            metadata={
                "category": category.value,
                "applications": [app.name for app in apps],
                "totalCost": round_half_up(total_cost),
            }
        ))
    return opportunities


def _is_consolidation_candidate(category: ApplicationCategory) -> bool:
    """Whether tools in ``category`` are comparable enough to consolidate."""
    if category is ApplicationCategory.OTHER:
        return False
    if category in (
        ApplicationCategory.COMMUNICATION,
        ApplicationCategory.PRODUCTIVITY,
        ApplicationCategory.PROJECT_MANAGEMENT,
        ApplicationCategory.DESIGN,
        ApplicationCategory.DEVELOPMENT,
        ApplicationCategory.SECURITY,
        ApplicationCategory.ANALYTICS,
        ApplicationCategory.STORAGE,
    ):
        return True
    raise ValueError(f"Unhandled application category: {category}")


def identify_savings_opportunities(
    utilization: Iterable[LicenseUtilization],
    licenses: Iterable[License],
    applications: Iterable[Application],
    thresholds: ThresholdConfig,
    heuristics: HeuristicConfig,
    window_days: int = 30
) -> List[SavingsOpportunity]:
    """Run every savings rule and rank the results.

    Args:
        utilization: Scored licenses
        licenses: The licenses that were scored, for pricing lookups
        applications: All applications with their licenses embedded
        thresholds: Rule thresholds
        heuristics: Savings estimates and confidence scores
        window_days: Days of usage the utilization was scored over

    Returns:
        Opportunities sorted by potential savings, largest first
    """
    utilization = list(utilization)
    licenses_by_id = {lic.id: lic for lic in licenses}

    opportunities = (
        find_unused_licenses(utilization, licenses_by_id, thresholds, heuristics, window_days)
        + find_underutilized_licenses(utilization, licenses_by_id, thresholds, heuristics)
        + find_duplicate_functionality(applications, thresholds, heuristics)
    )
    opportunities.sort(key=lambda o: o.potential_savings, reverse=True)
    return opportunities
