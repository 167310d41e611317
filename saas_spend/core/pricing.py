"""
Pricing calculations for SaaS licenses.

Annualizes license costs and rounds money and percentages consistently.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext

from saas_spend.storage.models import BillingCycle


def round_half_up(value: float, places: int = 2) -> float:
    """Round away from zero on ties, the way finance reports expect.

    Python's built-in ``round`` uses banker's rounding, which would turn
    2.5 seats into 2 and 0.125 into 0.12. Infinite and NaN values are
    returned unchanged.

    Args:
        value: Number to round
        places: Decimal places to keep

    Returns:
        Rounded value
    """
    if not math.isfinite(value):
        return value
    exact = Decimal(str(value))
    with localcontext() as ctx:
        # quantize needs every integer digit plus the kept places
        ctx.prec = max(ctx.prec, exact.adjusted() + places + 2)
        return float(exact.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def round_to_int(value: float) -> int:
    """Round half-up to a whole number."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def annualize(amount: float, billing_cycle: BillingCycle) -> float:
    """Convert a per-billing-period amount into a yearly amount.

    Args:
        amount: Cost for one billing period
        billing_cycle: How often the amount is charged

    Returns:
        Amount charged over a year
    """
    return amount * billing_cycle.annual_multiplier


def seat_savings(cost_per_seat: float, seats: int, billing_cycle: BillingCycle) -> float:
    """Annualized saving from releasing ``seats`` seats of a license."""
    return annualize(cost_per_seat * seats, billing_cycle)


def percent_change(previous: float, current: float) -> float:
    """Percentage change from ``previous`` to ``current``.

    A zero baseline has no meaningful percentage change and yields 0.
    """
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100
