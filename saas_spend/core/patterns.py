"""
Usage pattern analysis.

Summarizes daily active users per application over a recent window.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from .pricing import percent_change, round_half_up, round_to_int
from saas_spend.storage.models import Application

LOW_USAGE_FRACTION = 0.5
MAX_LOW_USAGE_PERIODS = 10
GROWTH_SAMPLE_DAYS = 7


@dataclass(frozen=True)
class UsagePattern:
    """Daily usage profile of one application."""
    application_id: str
    application_name: str
    average_daily_users: int
    peak_usage: int
    user_growth_rate: float  # percent, first week versus last week
    low_usage_periods: List[str] = field(default_factory=list)  # ISO dates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applicationId": self.application_id,
            "applicationName": self.application_name,
            "averageDailyUsers": self.average_daily_users,
            "peakUsage": self.peak_usage,
            "lowUsagePeriods": list(self.low_usage_periods),
            "userGrowthRate": self.user_growth_rate,
        }


def compute_usage_patterns(applications: Iterable[Application]) -> List[UsagePattern]:
    """Build a usage profile for every application that has usage.

    Days below half the average are reported as low-usage periods (at most
    ten). Growth compares the average of the first seven records with the
    average of the last seven.

    Args:
        applications: Applications with embedded usage, oldest first

    Returns:
        Patterns sorted by average daily users (highest first), then name
    """
    patterns = []
    for app in applications:
        if not app.usage:
            continue

        daily_users = [record.active_users for record in app.usage]
        average = sum(daily_users) / len(daily_users)
        low_usage = [
            record.date.isoformat()
            for record in app.usage
            if record.active_users < average * LOW_USAGE_FRACTION
        ]

        first_week = daily_users[:GROWTH_SAMPLE_DAYS]
        last_week = daily_users[-GROWTH_SAMPLE_DAYS:]
        growth = percent_change(
            sum(first_week) / len(first_week),
            sum(last_week) / len(last_week)
        )

        patterns.append(UsagePattern(
            application_id=app.id,
            application_name=app.name,
            average_daily_users=round_to_int(average),
            peak_usage=max(daily_users),
            user_growth_rate=round_half_up(growth),
            low_usage_periods=low_usage[:MAX_LOW_USAGE_PERIODS]
        ))

    patterns.sort(key=lambda p: p.application_name)
    patterns.sort(key=lambda p: p.average_daily_users, reverse=True)
    return patterns
