"""
Repository pattern for data access.

Handles database operations for applications, licenses and usage records.
"""

from datetime import date
from typing import Dict, List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import (
    Application,
    ApplicationCategory,
    BillingCycle,
    License,
    LicenseStatus,
    UsageRecord,
)


class SpendRepository:
    """Read-only access to an organization's SaaS inventory and usage.

    Every method opens its own connection and closes it before returning,
    so one instance can be shared freely between callers.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def list_usage_records(
        self,
        organization_id: str,
        start: date,
        end: Optional[date] = None
    ) -> List[UsageRecord]:
        """Get usage records for an organization joined to license pricing.

        Args:
            organization_id: Organization to read
            start: First day to include
            end: Optional last day to include

        Returns:
            Usage records ordered by date (oldest first)
        """
        conn = get_connection(self.db_path)
        try:
            query = """
                SELECT u.application_id, u.date, u.active_users,
                       u.license_id, l.cost_per_seat
                FROM usage_record u
                JOIN application a ON a.id = u.application_id
                LEFT JOIN license l ON l.id = u.license_id
                WHERE a.organization_id = ? AND u.date >= ?
            """
            params: list = [organization_id, start.isoformat()]
            if end is not None:
                query += " AND u.date <= ?"
                params.append(end.isoformat())
            query += " ORDER BY u.date ASC, u.id ASC"

            cursor = conn.execute(query, params)
            return [_usage_from_row(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def list_active_licenses(
        self,
        organization_id: str,
        usage_since: date
    ) -> List[License]:
        """Get active licenses with their application and recent usage.

        Args:
            organization_id: Organization to read
            usage_since: Earliest usage day to embed

        Returns:
            Active licenses; each carries its usage newest first
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT l.id, l.application_id, l.organization_id, l.total_seats,
                       l.cost_per_seat, l.billing_cycle, l.status,
                       a.id, a.organization_id, a.name, a.category
                FROM license l
                JOIN application a ON a.id = l.application_id
                WHERE l.organization_id = ? AND l.status = ?
                ORDER BY l.id
            """, (organization_id, LicenseStatus.ACTIVE.value))
            rows = cursor.fetchall()

            usage_by_license: Dict[str, List[UsageRecord]] = {}
            cursor = conn.execute("""
                SELECT u.application_id, u.date, u.active_users,
                       u.license_id, l.cost_per_seat
                FROM usage_record u
                JOIN license l ON l.id = u.license_id
                WHERE l.organization_id = ? AND l.status = ? AND u.date >= ?
                ORDER BY u.date DESC, u.id DESC
            """, (organization_id, LicenseStatus.ACTIVE.value, usage_since.isoformat()))
            for row in cursor.fetchall():
                usage_by_license.setdefault(row[3], []).append(_usage_from_row(row))

            licenses = []
            for row in rows:
                application = Application(
                    id=row[7],
                    organization_id=row[8],
                    name=row[9],
                    category=ApplicationCategory(row[10])
                )
                licenses.append(License(
                    id=row[0],
                    application_id=row[1],
                    organization_id=row[2],
                    total_seats=row[3],
                    cost_per_seat=row[4],
                    billing_cycle=BillingCycle(row[5]),
                    status=LicenseStatus(row[6]),
                    application=application,
                    recent_usage=tuple(usage_by_license.get(row[0], ()))
                ))
            return licenses
        finally:
            conn.close()

    def list_applications(
        self,
        organization_id: str,
        usage_since: Optional[date] = None
    ) -> List[Application]:
        """Get applications with all their licenses.

        Args:
            organization_id: Organization to read
            usage_since: When given, embed usage from this day onwards

        Returns:
            Applications ordered by name; embedded usage is oldest first
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT id, application_id, organization_id, total_seats,
                       cost_per_seat, billing_cycle, status
                FROM license
                WHERE organization_id = ?
                ORDER BY id
            """, (organization_id,))
            licenses_by_app: Dict[str, List[License]] = {}
            for row in cursor.fetchall():
                licenses_by_app.setdefault(row[1], []).append(License(
                    id=row[0],
                    application_id=row[1],
                    organization_id=row[2],
                    total_seats=row[3],
                    cost_per_seat=row[4],
                    billing_cycle=BillingCycle(row[5]),
                    status=LicenseStatus(row[6])
                ))

            usage_by_app: Dict[str, List[UsageRecord]] = {}
            if usage_since is not None:
                cursor = conn.execute("""
                    SELECT u.application_id, u.date, u.active_users,
                           u.license_id, l.cost_per_seat
                    FROM usage_record u
                    JOIN application a ON a.id = u.application_id
                    LEFT JOIN license l ON l.id = u.license_id
                    WHERE a.organization_id = ? AND u.date >= ?
                    ORDER BY u.date ASC, u.id ASC
                """, (organization_id, usage_since.isoformat()))
                for row in cursor.fetchall():
                    usage_by_app.setdefault(row[0], []).append(_usage_from_row(row))

            cursor = conn.execute("""
                SELECT id, organization_id, name, category
                FROM application
                WHERE organization_id = ?
                ORDER BY name, id
            """, (organization_id,))
            return [
                Application(
                    id=row[0],
                    organization_id=row[1],
                    name=row[2],
                    category=ApplicationCategory(row[3]),
                    licenses=tuple(licenses_by_app.get(row[0], ())),
                    usage=tuple(usage_by_app.get(row[0], ()))
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()


def _usage_from_row(row) -> UsageRecord:
    return UsageRecord(
        application_id=row[0],
        date=date.fromisoformat(row[1]),
        active_users=row[2],
        license_id=row[3],
        cost_per_seat=row[4]
    )


# Global repository instance
_default_repository: Optional[SpendRepository] = None


def get_repository(db_path: str = DEFAULT_DB_PATH) -> SpendRepository:
    """Get a repository instance.

    Returns a process-wide instance, rebuilt when a different
    database path is requested.

    Args:
        db_path: Path to SQLite database file

    Returns:
        An instance of SpendRepository
    """
    global _default_repository
    if _default_repository is None or _default_repository.db_path != db_path:
        _default_repository = SpendRepository(db_path)
    return _default_repository


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the application, license and usage_record tables if missing.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS application (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                name TEXT NOT NULL,
                category TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS license (
                id TEXT PRIMARY KEY,
                application_id TEXT NOT NULL REFERENCES application(id),
                organization_id TEXT NOT NULL,
                total_seats INTEGER NOT NULL CHECK (total_seats >= 0),
                cost_per_seat REAL NOT NULL CHECK (cost_per_seat >= 0),
                billing_cycle TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'active'
            );
            CREATE TABLE IF NOT EXISTS usage_record (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                application_id TEXT NOT NULL REFERENCES application(id),
                license_id TEXT REFERENCES license(id),
                date TEXT NOT NULL,
                active_users INTEGER NOT NULL CHECK (active_users >= 0)
            );
            CREATE INDEX IF NOT EXISTS idx_usage_record_date
                ON usage_record (date);
        """)
        conn.commit()
    finally:
        conn.close()


def insert_application(application: Application, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a single application.

    Args:
        application: The application to store (embedded rows are ignored)
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO application (id, organization_id, name, category)
            VALUES (?, ?, ?, ?)
        """, (
            application.id,
            application.organization_id,
            application.name,
            application.category.value
        ))
        conn.commit()
    finally:
        conn.close()


def insert_license(lic: License, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a single license.

    Args:
        lic: The license to store (embedded rows are ignored)
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO license
            (id, application_id, organization_id, total_seats,
             cost_per_seat, billing_cycle, status)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            lic.id,
            lic.application_id,
            lic.organization_id,
            lic.total_seats,
            lic.cost_per_seat,
            lic.billing_cycle.value,
            lic.status.value
        ))
        conn.commit()
    finally:
        conn.close()


def insert_usage_records(records: List[UsageRecord], db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert multiple usage records atomically.

    All records are inserted in a single transaction to ensure consistency.

    Args:
        records: Usage records to store
        db_path: Path to SQLite database file
    """
    if not records:
        return

    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN TRANSACTION")
        conn.executemany("""
            INSERT INTO usage_record (application_id, license_id, date, active_users)
            VALUES (?, ?, ?, ?)
        """, [
            (
                record.application_id,
                record.license_id,
                record.date.isoformat(),
                record.active_users
            )
            for record in records
        ])
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
