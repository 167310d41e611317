"""
Data models for storage layer.

Defines the applications, licenses and usage records the analyses consume.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple


class ApplicationCategory(Enum):
    """Functional category of a SaaS application."""
    COMMUNICATION = "communication"
    PRODUCTIVITY = "productivity"
    PROJECT_MANAGEMENT = "project_management"
    DESIGN = "design"
    DEVELOPMENT = "development"
    SECURITY = "security"
    ANALYTICS = "analytics"
    STORAGE = "storage"
    OTHER = "other"


class BillingCycle(Enum):
    """Recurrence of a license's cost."""
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def annual_multiplier(self) -> int:
        """Number of billing periods in a year."""
        return 12 if self is BillingCycle.MONTHLY else 1


class LicenseStatus(Enum):
    """Lifecycle state of a license."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


@dataclass(frozen=True)
class UsageRecord:
    """Active-user count for one application (and optionally license) on one day.

    ``cost_per_seat`` is only populated when the record was read joined
    to its license.
    """
    application_id: str
    date: date
    active_users: int
    license_id: Optional[str] = None
    cost_per_seat: Optional[float] = None

    def __post_init__(self):
        if self.active_users < 0:
            raise ValueError("active_users cannot be negative")


@dataclass(frozen=True)
class License:
    """A block of seats purchased for an application."""
    id: str
    application_id: str
    organization_id: str
    total_seats: int
    cost_per_seat: float
    billing_cycle: BillingCycle
    status: LicenseStatus = LicenseStatus.ACTIVE
    application: Optional["Application"] = None
    recent_usage: Tuple[UsageRecord, ...] = ()  # newest first

    def __post_init__(self):
        """Validate seat count and price are non-negative."""
        if self.total_seats < 0:
            raise ValueError("total_seats cannot be negative")
        if self.cost_per_seat < 0:
            raise ValueError("cost_per_seat cannot be negative")

    @property
    def annual_cost(self) -> float:
        """Full annualized cost of every seat on the license."""
        return self.cost_per_seat * self.total_seats * self.billing_cycle.annual_multiplier


@dataclass(frozen=True)
class Application:
    """A SaaS application used by an organization."""
    id: str
    organization_id: str
    name: str
    category: ApplicationCategory
    licenses: Tuple[License, ...] = ()
    usage: Tuple[UsageRecord, ...] = ()  # oldest first
