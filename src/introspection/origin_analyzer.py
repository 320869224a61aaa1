"""
Origin Database Analyzer - inspects a restored legacy database

Produces a Markdown report used to plan the transformation views:
- Schema overview grouped by schema
- Columns, row counts and sample rows of the public tables
- Contact/conversion quality checks
- JSON and array columns
- Foreign key relationships
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from src.builder.sql_literals import quote_identifier
from src.db.connection import Database
from src.introspection.container import PostgresContainer
from src.parser.backup_locator import detect_pg_version, find_latest_backup

logger = logging.getLogger(__name__)

SAMPLE_TABLES = ("companies", "contacts", "conversions", "leads")
QUALITY_TABLES = ("companies", "contacts", "conversions", "leads", "segments")
CONTACT_TABLES = ("contacts", "leads")
SAMPLE_SIZE = 3

TABLES_SQL = """
    SELECT schemaname, tablename
    FROM pg_tables
    WHERE schemaname NOT IN ('information_schema', 'pg_catalog', 'pg_toast')
    ORDER BY schemaname, tablename
"""

COLUMNS_SQL = """
    SELECT column_name, data_type, is_nullable, column_default
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = %s
    ORDER BY ordinal_position
"""

COMPLEX_COLUMNS_SQL = """
    SELECT table_name, column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = 'public'
      AND (data_type LIKE '%%json%%' OR data_type = 'ARRAY' OR data_type LIKE '%%[]')
    ORDER BY table_name, column_name
"""

FOREIGN_KEYS_SQL = """
    SELECT
      tc.table_name,
      kcu.column_name,
      ccu.table_name AS foreign_table_name,
      ccu.column_name AS foreign_column_name
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
      ON tc.constraint_name = kcu.constraint_name
      AND tc.table_schema = kcu.table_schema
    JOIN information_schema.constraint_column_usage AS ccu
      ON ccu.constraint_name = tc.constraint_name
      AND ccu.table_schema = tc.table_schema
    WHERE tc.constraint_type = 'FOREIGN KEY'
      AND tc.table_schema = 'public'
    ORDER BY tc.table_name, kcu.column_name
"""

MAPPING_RECOMMENDATIONS = [
    "### companies → organizations",
    "- Preserve: `name`, `created_at`, `updated_at`",
    "- Generate: new `id` (12-char lowercase alphanumeric)",
    "- Map: `active` filter for inclusion",
    "",
    "### contacts → leads",
    "- Preserve: `id` (UUID), `name`, `email`, `phone`, `company`, `job_title`",
    "- Transform: `tags` (JSON array to PostgreSQL array)",
    "- Map: `company_id` to `organization_id`",
    "- Validate: email OR phone required",
    "",
    "### conversions → conversions",
    "- Preserve: `id`, `conversion_name` → `name`",
    "- Map: `contact_id` → `lead_id`, `company_id` → `organization_id`",
    "- Transform: `payload_raw_json` (handle JSON escaping)",
    "- Handle: UTM field mapping",
]

KNOWN_ISSUES = [
    "1. **Supabase Extensions**: the dump contains Supabase-specific extensions that won't restore to vanilla PostgreSQL",
    "2. **Role Dependencies**: Supabase roles (supabase_admin, authenticated, etc.) don't exist in the analysis container",
    "3. **JSON Escaping**: conversion payloads may need special handling",
    "4. **Data Validation**: some records may not meet target schema constraints",
    "5. **ID Mapping**: referential integrity must be kept during transformation",
]


class OriginDatabaseAnalyzer:
    """Builds the analysis report from a restored origin database"""

    def __init__(self, db, now: Optional[datetime] = None):
        """
        Args:
            db: Connected database handle (fetch_all/fetch_one)
            now: Report timestamp (defaults to now)
        """
        self.db = db
        self.now = now or datetime.now()

    def _count(self, table: str, where: str = "") -> int:
        sql = f"SELECT COUNT(*) AS count FROM {quote_identifier(table)}"
        if where:
            sql = f"{sql} WHERE {where}"
        row = self.db.fetch_one(sql)
        return int(row["count"]) if row else 0

    def analyze(self) -> str:
        """
        Run every section and return the Markdown report

        A failing section does not stop the report; the error is appended
        instead.
        """
        lines = ["# Origin Database Analysis Report", "", f"Generated: {self.now.isoformat()}", ""]
        try:
            tables = self.db.fetch_all(TABLES_SQL)
            public_tables = [t["tablename"] for t in tables if t["schemaname"] == "public"]

            lines += self._schema_overview(tables)
            lines += self._public_tables(public_tables)
            lines += self._quality_checks(public_tables)
            lines += self._complex_columns()
            lines += self._relationships()

            lines += ["## 🗺️ Migration Mapping Recommendations", ""]
            lines += MAPPING_RECOMMENDATIONS + [""]
            lines += ["## ⚠️ Potential Migration Issues", ""]
            lines += KNOWN_ISSUES + [""]
        except Exception as e:
            logger.error("Analysis failed: %s", e)
            lines += ["", "## ❌ Analysis Error", "", "```", str(e), "```", ""]

        return "\n".join(lines)

    def _schema_overview(self, tables: List[Dict[str, Any]]) -> List[str]:
        lines = ["## 📊 Schema Overview", "", f"**Total Tables:** {len(tables)}", ""]
        groups: Dict[str, List[str]] = {}
        for table in tables:
            groups.setdefault(table["schemaname"], []).append(table["tablename"])
        for schema, names in groups.items():
            lines.append(f"### {schema} schema ({len(names)} tables)")
            lines += [f"- {name}" for name in names]
            lines.append("")
        return lines

    def _public_tables(self, public_tables: List[str]) -> List[str]:
        lines = ["## 🎯 Core Data Analysis (Public Schema)", ""]
        for table in public_tables:
            lines += [f"### {table}", f"**Row Count:** {self._count(table)}", "", "**Columns:**"]
            for col in self.db.fetch_all(COLUMNS_SQL, (table,)):
                line = f"- `{col['column_name']}` ({col['data_type']})"
                if col["is_nullable"] == "NO":
                    line += " NOT NULL"
                if col.get("column_default"):
                    line += f" DEFAULT {col['column_default']}"
                lines.append(line)
            lines.append("")

            if table in SAMPLE_TABLES:
                try:
                    rows = self.db.fetch_all(f"SELECT * FROM {quote_identifier(table)} LIMIT {SAMPLE_SIZE}")
                    if rows:
                        lines += ["**Sample Data:**", "```json", json.dumps(rows, indent=2, default=str), "```", ""]
                except Exception as e:
                    logger.warning("Sample data for %s failed: %s", table, e)
                    lines += ["**Sample Data:** Error retrieving sample data", ""]
        return lines

    def _quality_checks(self, public_tables: List[str]) -> List[str]:
        lines = ["## 🔍 Data Quality Analysis", ""]
        for table in QUALITY_TABLES:
            if table not in public_tables:
                lines += [f"### {table} ❌ NOT FOUND", ""]
                continue

            lines.append(f"### {table} Quality Check")
            try:
                total = self._count(table)
                if table in CONTACT_TABLES:
                    no_email = self._count(table, "email IS NULL OR email = ''")
                    no_phone = self._count(table, "phone IS NULL OR phone = ''")
                    no_contact = self._count(
                        table, "(email IS NULL OR email = '') AND (phone IS NULL OR phone = '')"
                    )
                    lines += [
                        f"- Total records: {total}",
                        f"- Records without email: {no_email}",
                        f"- Records without phone: {no_phone}",
                        f"- ⚠️ Records without email OR phone: {no_contact}",
                    ]
                elif table == "conversions":
                    no_name = self._count(table, "conversion_name IS NULL OR conversion_name = ''")
                    no_date = self._count(table, "conversion_date IS NULL")
                    lines += [
                        f"- Total conversions: {total}",
                        f"- Conversions without name: {no_name}",
                        f"- Conversions without date: {no_date}",
                    ]
                else:
                    lines.append(f"- Total records: {total}")
            except Exception as e:
                logger.warning("Quality check for %s failed: %s", table, e)
                lines.append(f"- ❌ Error analyzing {table}: {e}")
            lines.append("")
        return lines

    def _complex_columns(self) -> List[str]:
        lines = ["## 🧩 Complex Data Analysis", ""]
        columns = self.db.fetch_all(COMPLEX_COLUMNS_SQL)
        if not columns:
            return lines + ["No complex data types (JSON, arrays) found.", ""]
        lines.append("**Complex Data Types Found:**")
        lines += [f"- {c['table_name']}.{c['column_name']} ({c['data_type']})" for c in columns]
        return lines + [""]

    def _relationships(self) -> List[str]:
        lines = ["## 🔗 Relationship Analysis", ""]
        keys = self.db.fetch_all(FOREIGN_KEYS_SQL)
        if not keys:
            return lines + ["No foreign key constraints found.", ""]
        lines.append("**Foreign Key Relationships:**")
        lines += [
            f"- {k['table_name']}.{k['column_name']} → {k['foreign_table_name']}.{k['foreign_column_name']}"
            for k in keys
        ]
        return lines + [""]


def analyze_dump(
    config,
    dump_file: Optional[Union[str, Path]] = None,
    container_factory=PostgresContainer,
    database_factory=Database,
) -> Path:
    """
    Restore a dump into a throwaway container and write the analysis report

    Args:
        config: AnalysisConfig
        dump_file: Dump to analyze (defaults to the newest one in backup_dir)
        container_factory: PostgresContainer compatible factory
        database_factory: Database compatible factory

    Returns:
        Path of the written report

    Raises:
        BackupNotFoundError: If no dump can be found
        AnalysisError: If the container cannot be started
    """
    dump_path = Path(dump_file) if dump_file else find_latest_backup(config.backup_dir)
    pg_version = detect_pg_version(dump_path)
    logger.info("Analyzing %s (PostgreSQL %s)", dump_path.name, pg_version)

    container = container_factory(
        config.container_name,
        config.db_password,
        config.db_port,
        pg_version,
        startup_wait=config.startup_wait,
    )
    try:
        container.start()
        container.restore(dump_path)

        db = database_factory(name="origin", **container.connect_kwargs())
        try:
            report = OriginDatabaseAnalyzer(db).analyze()
        finally:
            db.close()

        report_path = Path(config.report_file)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(report, encoding="utf-8")
        logger.info("Report written to %s", report_path)
        return report_path
    finally:
        container.stop()
