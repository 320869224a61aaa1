"""Source data quality and target integrity checks."""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from src.migration.errors import CriticalValidationError, IntegrityValidationError
from src.schema.models import ValidationIssue

logger = logging.getLogger(__name__)

# The only blocking check; every other issue is a warning
COMPANY_EXISTS_CHECK = "source_company_exists"

SOURCE_VALIDATION_SQL = "SELECT issue, count FROM migration_validation"

TARGET_COUNTS_SQL = """
    SELECT 'organizations' AS table_name, count(*) AS record_count
    FROM organizations WHERE id = %s
    UNION ALL
    SELECT 'leads', count(*) FROM leads WHERE organization_id = %s
    UNION ALL
    SELECT 'conversions', count(*) FROM conversions WHERE organization_id = %s
"""

TARGET_INTEGRITY_SQL = """
    SELECT 'orphaned_leads' AS issue, count(*) AS count
    FROM leads l
    LEFT JOIN organizations o ON l.organization_id = o.id
    WHERE l.organization_id = %s AND o.id IS NULL
    UNION ALL
    SELECT 'orphaned_conversions', count(*)
    FROM conversions c
    LEFT JOIN leads l ON c.lead_id = l.id
    WHERE c.organization_id = %s AND l.id IS NULL
"""


@dataclass
class SourceValidationReport:
    """Classified rows of the ``migration_validation`` view."""

    passed: List[ValidationIssue] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)
    critical: List[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.critical


class DataValidator:
    """Validates source data before and target data after a migration."""

    def __init__(self, source_db: Any = None, target_db: Any = None):
        self.source_db = source_db
        self.target_db = target_db

    @staticmethod
    def classify(rows: List[Dict[str, Any]]) -> SourceValidationReport:
        """Split validation rows into passed checks, warnings and blockers."""
        report = SourceValidationReport()
        for row in rows:
            item = ValidationIssue(issue=row["issue"], count=int(row["count"] or 0))
            if item.issue == COMPANY_EXISTS_CHECK:
                if item.count > 0:
                    report.passed.append(item)
                else:
                    report.critical.append(item)
            elif item.count > 0:
                report.issues.append(item)
        return report

    def validate_source(self) -> SourceValidationReport:
        """
        Run the source quality checks.

        Raises:
            CriticalValidationError: If the source company check found nothing
        """
        report = self.classify(self.source_db.fetch_all(SOURCE_VALIDATION_SQL))
        for item in report.issues:
            logger.warning("Data quality issue %s: %d records", item.issue, item.count)
        if not report.ok:
            raise CriticalValidationError(
                "Critical validation issues found - source company not found or inactive"
            )
        return report

    def target_counts(self, organization_id: str) -> Dict[str, int]:
        rows = self.target_db.fetch_all(TARGET_COUNTS_SQL, (organization_id,) * 3)
        return {row["table_name"]: int(row["record_count"]) for row in rows}

    def validate_target(self, organization_id: str) -> Dict[str, int]:
        """
        Check referential integrity of the migrated organization.

        Returns:
            Row counts per table for the organization

        Raises:
            IntegrityValidationError: If any orphaned rows exist
        """
        counts = self.target_counts(organization_id)
        rows = self.target_db.fetch_all(TARGET_INTEGRITY_SQL, (organization_id,) * 2)
        orphans = {row["issue"]: int(row["count"]) for row in rows if int(row["count"]) > 0}
        if orphans:
            raise IntegrityValidationError(orphans)
        return counts
