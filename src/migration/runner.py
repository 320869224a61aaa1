"""
Selective migration runner.

Migrates one legacy company into a brand new organization:

    validate company → generate org id → install views → validate source
    → stats → (dry run stops) → confirm → migrate tables → validate target

The transformation views are dropped at the end whatever happened.
"""
import logging
from typing import Callable, Dict, Optional

from config import MigrationSettings
from src.builder.view_sql import ViewScriptLoader
from src.cli import console
from src.exporter.json_exporter import JsonExporter
from src.migration.errors import SourceCompanyNotFoundError
from src.migration.identifiers import generate_id
from src.migration.table_mover import TableMover
from src.schema.models import (
    STAT_VIEWS,
    CompanyInfo,
    MigrationOptions,
    MigrationRecord,
    order_tables,
)
from src.validator.data_validator import DataValidator

logger = logging.getLogger(__name__)

COMPANY_SQL = "SELECT id, name, active FROM companies WHERE id = %s"


def _always_confirm(company_name: str, total_records: int, organization_id: str) -> bool:
    return True


class SelectiveMigrationRunner:
    """Orchestrates one migration run against a source and a target database."""

    def __init__(
        self,
        source_db,
        target_db,
        settings: Optional[MigrationSettings] = None,
        mover: Optional[TableMover] = None,
        view_loader: Optional[ViewScriptLoader] = None,
        exporter: Optional[JsonExporter] = None,
        confirm: Callable[[str, int, str], bool] = _always_confirm,
        id_factory: Callable[[int], str] = generate_id,
    ):
        self.source_db = source_db
        self.target_db = target_db
        self.settings = settings or MigrationSettings()
        self.mover = mover or TableMover(source_db, target_db, settings=self.settings, id_factory=id_factory)
        self.view_loader = view_loader or ViewScriptLoader(self.settings.sql_dir)
        self.exporter = exporter
        self.validator = DataValidator(source_db, target_db)
        self.confirm = confirm
        self.id_factory = id_factory
        self.record: Optional[MigrationRecord] = None

    def run(self, options: MigrationOptions) -> MigrationRecord:
        """
        Execute a migration.

        Returns:
            The run record (status ``dry_run``, ``cancelled`` or ``completed``)

        Raises:
            MigrationError: Any failure; views are still cleaned up and the
                record is exported with status ``failed``
        """
        tables = order_tables(options.tables)
        console.plain("🚀 Starting selective migration...")
        console.info(f"Source company: {options.source_company_id}")
        console.info(f"Tables: {', '.join(tables)}")
        console.info(f"Mode: {'DRY RUN' if options.dry_run else 'LIVE MIGRATION'}")
        console.plain()

        try:
            company = self.validate_source_company(options.source_company_id)
            console.success(f'Found source company: "{company.name}"')

            self.record = MigrationRecord(
                organization_id=options.organization_id or self.id_factory(self.settings.id_length),
                source_company_id=options.source_company_id,
                tables=tables,
                dry_run=options.dry_run,
                company_name=company.name,
            )
            if options.organization_id:
                console.info(f"Resuming organization ID: {self.record.organization_id}")
            else:
                console.info(f"Generated new organization ID: {self.record.organization_id}")

            self.setup_views(options.source_company_id, self.record.organization_id)
            console.success("Transformation views created")

            self.validate_source_data()

            self.record.stats = self.collect_stats()
            self.display_stats(self.record.stats)

            if options.dry_run:
                console.warning("DRY RUN MODE - No data will be migrated")
                self.record.finish("dry_run")
                return self.record

            total = sum(self.record.stats.values())
            console.warning(f'About to migrate {total:,} records from "{company.name}"')
            console.plain(f"🎯 This will create a new organization with ID: {self.record.organization_id}")
            if not options.assume_yes and not self.confirm(company.name, total, self.record.organization_id):
                console.info("Migration cancelled by user")
                self.record.finish("cancelled")
                return self.record

            self.record.results = self.mover.execute(tables)

            console.step("Validating migrated data...")
            self.record.target_counts = self.validator.validate_target(self.record.organization_id)
            console.plain("\n📊 Target database record counts:")
            for table, count in self.record.target_counts.items():
                console.plain(f"  {table}: {count} records")
            console.success("Data integrity validation passed")

            self.record.finish("completed")
            console.success("🎉 Migration completed successfully!")
            console.plain(f"📊 New organization ID: {self.record.organization_id}")
            return self.record
        except KeyboardInterrupt:
            console.error("Migration interrupted")
            if self.record is not None:
                self.record.finish("failed", "interrupted")
            raise
        except Exception as e:
            console.error(f"Migration failed: {e}")
            if self.record is not None:
                self.record.finish("failed", str(e))
            raise
        finally:
            self.cleanup()
            self._export()

    def validate_source_company(self, company_id: str) -> CompanyInfo:
        console.step("Validating source company...")
        row = self.source_db.fetch_one(COMPANY_SQL, (company_id,))
        if row is None:
            raise SourceCompanyNotFoundError(company_id)

        company = CompanyInfo(id=str(row["id"]), name=row["name"], active=bool(row.get("active", True)))
        if not company.active:
            console.warning(f'Company "{company.name}" is marked as inactive')
        return company

    def setup_views(self, source_company_id: str, organization_id: str) -> None:
        console.step("Setting up transformation views...")
        self.source_db.execute_script(self.view_loader.cleanup_statements())
        self.source_db.execute_script(
            self.view_loader.transformation_statements(source_company_id, organization_id)
        )

    def validate_source_data(self) -> None:
        console.step("Validating source data quality...")
        report = self.validator.validate_source()
        if report.passed:
            console.success("Source company found and validated")
        if report.issues:
            console.warning("Data quality issues found:")
            for item in report.issues:
                console.plain(f"  - {item.issue}: {item.count} records")
        elif report.passed:
            console.success("Data validation passed")

    def collect_stats(self) -> Dict[str, int]:
        """Row counts per transformation view; a missing view counts as 0."""
        stats = {}
        for name, view in STAT_VIEWS.items():
            try:
                row = self.source_db.fetch_one(f"SELECT COUNT(*) AS count FROM {view}")
                stats[name] = int(row["count"]) if row else 0
            except Exception as e:
                logger.debug("Could not count %s: %s", view, e)
                stats[name] = 0
        return stats

    @staticmethod
    def display_stats(stats: Dict[str, int]) -> None:
        console.plain("\n📊 Migration Statistics:")
        for table, count in stats.items():
            console.plain(f"  {table}: {count:,} records")
        console.plain()

    def cleanup(self) -> None:
        """Drop the transformation views; failures are only reported."""
        try:
            self.source_db.execute_script(self.view_loader.cleanup_statements())
        except Exception as e:
            console.warning(f"Cleanup warning: {e}")

    def _export(self) -> None:
        if self.exporter is None or self.record is None:
            return
        try:
            path = self.exporter.export(self.record)
            logger.info("Run record written to %s", path)
        except OSError as e:
            console.warning(f"Could not write run record: {e}")
