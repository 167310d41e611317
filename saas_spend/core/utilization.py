"""
License utilization scoring.

Compares each license's recent active users with the seats paid for.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .pricing import round_half_up, round_to_int
from saas_spend.storage.models import License


@dataclass(frozen=True)
class LicenseUtilization:
    """Seat usage of one license over the trailing window."""
    license_id: str
    application_id: str
    application_name: str
    total_licenses: int
    used_licenses: int
    utilization_rate: float  # percent of seats in use
    inactive_users: int
    last_active_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "licenseId": self.license_id,
            "applicationId": self.application_id,
            "applicationName": self.application_name,
            "totalLicenses": self.total_licenses,
            "usedLicenses": self.used_licenses,
            "utilizationRate": self.utilization_rate,
            "inactiveUsers": self.inactive_users,
            "lastActiveDate": self.last_active_date.isoformat() if self.last_active_date else None,
        }


def score_license(lic: License, max_records: int = 30) -> LicenseUtilization:
    """Score a single license from its embedded recent usage.

    Args:
        lic: License with ``recent_usage`` ordered newest first
        max_records: Number of most recent records to average

    Returns:
        Utilization for the license; a license without seats scores 0%
    """
    recent = lic.recent_usage[:max_records]
    average_users = sum(r.active_users for r in recent) / len(recent) if recent else 0.0
    rate = average_users / lic.total_seats * 100 if lic.total_seats > 0 else 0.0
    used = round_to_int(average_users)

    return LicenseUtilization(
        license_id=lic.id,
        application_id=lic.application_id,
        application_name=lic.application.name if lic.application else lic.application_id,
        total_licenses=lic.total_seats,
        used_licenses=used,
        utilization_rate=round_half_up(rate),
        inactive_users=lic.total_seats - used,
        last_active_date=recent[0].date if recent else None
    )


def compute_license_utilization(
    licenses: Iterable[License],
    max_records: int = 30
) -> List[LicenseUtilization]:
    """Score every license and rank them.

    Args:
        licenses: Active licenses with embedded recent usage
        max_records: Number of most recent records to average per license

    Returns:
        Utilization sorted by rate (highest first), then application name
        and license id so equal rates always come out in the same order
    """
    scored = [score_license(lic, max_records) for lic in licenses]
    scored.sort(key=lambda u: (u.application_name, u.license_id))
    scored.sort(key=lambda u: u.utilization_rate, reverse=True)
    return scored
