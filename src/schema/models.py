"""Modelos para representar uma execução de migração."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


# Dependency order: later tables hold foreign keys into earlier ones
MIGRATION_TABLES = (
    "organizations",
    "leads_custom_fields_definitions",
    "leads",
    "leads_custom_fields",
    "conversions",
    "segments",
    "webhooks",
)

ALL_TABLES = "all"

# Views whose row counts are shown before migrating (stat name → view)
STAT_VIEWS = {
    "organizations": "organizations_transformed",
    "leads": "leads_transformed",
    "conversions": "conversions_transformed",
    "segments": "segments_transformed",
    "leads_custom_fields_definitions": "leads_custom_fields_definitions_transformed",
    "webhooks": "webhooks_transformed",
    "custom_fields": "leads_custom_fields_transformed",
}


def view_name(table: str) -> str:
    """Transformation view that feeds a target table."""
    return f"{table}_transformed"


def order_tables(requested: List[str]) -> List[str]:
    """Filter ``MIGRATION_TABLES`` down to the requested ones, keeping dependency order."""
    if ALL_TABLES in requested:
        return list(MIGRATION_TABLES)
    return [table for table in MIGRATION_TABLES if table in requested]


@dataclass
class MigrationOptions:
    """What the user asked for."""

    source_company_id: str
    tables: List[str] = field(default_factory=lambda: list(MIGRATION_TABLES))
    dry_run: bool = False
    assume_yes: bool = False
    organization_id: Optional[str] = None  # reuse the id of a failed run


@dataclass
class CompanyInfo:
    """Legacy company being migrated."""

    id: str
    name: str
    active: bool = True


@dataclass
class ValidationIssue:
    """A named data-quality check and how many rows it matched."""

    issue: str
    count: int


@dataclass
class TableResult:
    """Outcome of migrating one table."""

    table: str
    source_rows: int = 0
    migrated: int = 0
    batches: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "source_rows": self.source_rows,
            "migrated": self.migrated,
            "batches": self.batches,
            "warnings": self.warnings,
        }


@dataclass
class MigrationRecord:
    """
    One migration run.

    ``organization_id`` is generated once when the run starts and owns every
    row written by it; re-running a failed migration with the same id is
    safe for the upserting tables.
    """

    organization_id: str
    source_company_id: str
    tables: List[str]
    dry_run: bool = False
    company_name: Optional[str] = None
    status: str = "pending"  # pending, dry_run, cancelled, completed, failed
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    stats: Dict[str, int] = field(default_factory=dict)
    results: List[TableResult] = field(default_factory=list)
    target_counts: Dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None

    def finish(self, status: str, error: Optional[str] = None) -> None:
        self.status = status
        self.error = error
        self.finished_at = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Converte para dicionário."""
        return {
            "organization_id": self.organization_id,
            "source_company_id": self.source_company_id,
            "company_name": self.company_name,
            "tables": self.tables,
            "dry_run": self.dry_run,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "stats": self.stats,
            "results": [result.to_dict() for result in self.results],
            "target_counts": self.target_counts,
            "error": self.error,
        }
