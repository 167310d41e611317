# saas_spend/demo/seed_demo_data.py

from datetime import date, timedelta
from typing import Optional

from saas_spend.storage.db import DEFAULT_DB_PATH
from saas_spend.storage.models import (
    Application,
    ApplicationCategory,
    BillingCycle,
    License,
    UsageRecord,
)
from saas_spend.storage.repository import (
    initialize_schema,
    insert_application,
    insert_license,
    insert_usage_records,
)

DEMO_ORGANIZATION = "demo-org"
DEMO_DAYS = 180

# (app id, name, category, seats, cost per seat, billing cycle, daily active users)
DEMO_APPS = [
    ("slack", "Slack", ApplicationCategory.COMMUNICATION, 120, 8.75, BillingCycle.MONTHLY, 105),
    ("figma", "Figma", ApplicationCategory.DESIGN, 40, 45.0, BillingCycle.MONTHLY, 14),
    ("sketch", "Sketch", ApplicationCategory.DESIGN, 25, 120.0, BillingCycle.YEARLY, 2),
    ("adobe-cc", "Adobe Creative Cloud", ApplicationCategory.DESIGN, 20, 59.99, BillingCycle.MONTHLY, 16),
    ("jira", "Jira", ApplicationCategory.PROJECT_MANAGEMENT, 80, 7.75, BillingCycle.MONTHLY, 62),
    ("zoom", "Zoom", ApplicationCategory.COMMUNICATION, 100, 13.33, BillingCycle.MONTHLY, 4),
]


def seed_demo_data(
    db_path: str = DEFAULT_DB_PATH,
    organization_id: str = DEMO_ORGANIZATION,
    today: Optional[date] = None
) -> int:
    """Create a demo organization with six months of daily usage.

    Slack and Jira are healthy, Zoom is nearly unused, Figma is
    underutilized and the three design tools overlap.

    Returns:
        Number of usage records written
    """
    today = today or date.today()
    initialize_schema(db_path)

    records = []
    for app_id, name, category, seats, cost, cycle, users in DEMO_APPS:
        app_key = f"{organization_id}-{app_id}"
        insert_application(Application(
            id=app_key,
            organization_id=organization_id,
            name=name,
            category=category
        ), db_path)
        insert_license(License(
            id=f"{app_key}-license",
            application_id=app_key,
            organization_id=organization_id,
            total_seats=seats,
            cost_per_seat=cost,
            billing_cycle=cycle
        ), db_path)

        for offset in range(DEMO_DAYS):
            day = today - timedelta(days=offset)
            # Weekends run at half staffing; usage drifts up towards today
            weekday_users = users if day.weekday() < 5 else users // 2
            growth = (DEMO_DAYS - offset) // 60
            records.append(UsageRecord(
                application_id=app_key,
                license_id=f"{app_key}-license",
                date=day,
                active_users=min(seats, weekday_users + growth)
            ))

    insert_usage_records(records, db_path)
    return len(records)


if __name__ == "__main__":
    count = seed_demo_data()
    print(f"Demo usage data inserted ({count} records)")
