"""
Cost trend aggregation.

Rolls daily license usage up into monthly spend with month-over-month growth.
"""

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List

from .pricing import percent_change, round_half_up
from saas_spend.storage.models import UsageRecord


@dataclass(frozen=True)
class CostTrend:
    """Total spend for one calendar month."""
    month: str  # YYYY-MM
    total_cost: float
    growth_rate: float  # percent versus the previous month in the series

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "totalCost": self.total_cost,
            "growthRate": self.growth_rate,
        }


def month_key(day: date) -> str:
    """Format a day as its ``YYYY-MM`` month key."""
    return f"{day.year:04d}-{day.month:02d}"


def add_months(day: date, months: int) -> date:
    """Shift a date by whole calendar months, clamping to the month's last day.

    Args:
        day: Starting date
        months: Number of months to move (negative moves back)

    Returns:
        Shifted date, e.g. 31 March minus one month is 28/29 February
    """
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def compute_cost_trends(records: Iterable[UsageRecord]) -> List[CostTrend]:
    """Aggregate usage records into monthly cost totals.

    Each record joined to a license contributes ``cost_per_seat *
    active_users`` to its month. Licenses are additive: two licenses used
    on the same day both count. Records without a license still open
    their month but add no cost.

    Months with no records are not synthesized, so the result may skip
    calendar months.

    Args:
        records: Usage records, in any order

    Returns:
        Monthly trends in ascending month order; empty if there were no records
    """
    totals: Dict[str, float] = {}
    for record in records:
        key = month_key(record.date)
        totals.setdefault(key, 0.0)
        if record.cost_per_seat is not None:
            totals[key] += record.cost_per_seat * record.active_users

    trends: List[CostTrend] = []
    for key in sorted(totals):
        total_cost = round_half_up(totals[key])
        growth_rate = 0.0
        if trends:
            growth_rate = round_half_up(percent_change(trends[-1].total_cost, total_cost))
        trends.append(CostTrend(month=key, total_cost=total_cost, growth_rate=growth_rate))

    return trends
