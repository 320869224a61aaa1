"""Moves rows from the transformation views into the target schema."""
import logging
from typing import Any, Callable, Dict, List, Optional

from config import MigrationSettings
from src.builder.insert_builder import build_conversions_insert, build_lead_insert
from src.cli import console
from src.db.connection import json_param
from src.migration.errors import TableMigrationError
from src.migration.identifiers import generate_id
from src.schema.models import TableResult, order_tables, view_name
from src.schema.rules import RuleValidationError, parse_rule_node, referenced_fields
from src.transformer.registry import TransformerRegistry

logger = logging.getLogger(__name__)


UPSERT_ORGANIZATION_SQL = """
    INSERT INTO organizations (id, name, website, logo, email, is_active, created_at, updated_at)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (id) DO UPDATE SET
      name = EXCLUDED.name,
      website = EXCLUDED.website,
      logo = EXCLUDED.logo,
      email = EXCLUDED.email,
      is_active = EXCLUDED.is_active,
      updated_at = EXCLUDED.updated_at
"""

UPSERT_CUSTOM_FIELD_DEFINITION_SQL = """
    INSERT INTO leads_custom_fields_definitions (
      id, organization_id, field_key, label, type, description, is_required, created_at, updated_at
    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (organization_id, field_key) DO UPDATE SET
      label = EXCLUDED.label,
      type = EXCLUDED.type,
      description = EXCLUDED.description,
      is_required = EXCLUDED.is_required,
      updated_at = EXCLUDED.updated_at
"""

UPSERT_CUSTOM_FIELD_VALUES_SQL = """
    INSERT INTO leads_custom_fields (lead_id, organization_id, field_key, field_value, created_at)
    VALUES %s
    ON CONFLICT (lead_id, organization_id, field_key) DO UPDATE SET
      field_value = EXCLUDED.field_value,
      created_at = EXCLUDED.created_at
"""

CUSTOM_FIELD_VALUES_PAGE_SQL = """
    SELECT * FROM leads_custom_fields_transformed
    ORDER BY lead_id, field_key
    LIMIT %s OFFSET %s
"""

UPSERT_SEGMENT_SQL = """
    INSERT INTO segments (id, organization_id, name, description, rule_json, created_at, updated_at)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (id) DO UPDATE SET
      name = EXCLUDED.name,
      description = EXCLUDED.description,
      rule_json = EXCLUDED.rule_json,
      updated_at = EXCLUDED.updated_at
"""

UPSERT_WEBHOOK_SQL = """
    INSERT INTO webhooks (
      id, organization_id, name, description, field_mappings, sample_payload,
      is_active, created_at, updated_at
    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (id) DO UPDATE SET
      name = EXCLUDED.name,
      description = EXCLUDED.description,
      field_mappings = EXCLUDED.field_mappings,
      sample_payload = EXCLUDED.sample_payload,
      is_active = EXCLUDED.is_active,
      updated_at = EXCLUDED.updated_at
"""


def _batches(rows: List[Dict[str, Any]], size: int):
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


class TableMover:
    """
    Migrates the selected tables one at a time, in dependency order.

    Every table except ``leads_custom_fields`` is read in full from its
    transformation view; custom field values are paged and written one
    transaction per page.
    """

    def __init__(
        self,
        source_db,
        target_db,
        registry: Optional[TransformerRegistry] = None,
        settings: Optional[MigrationSettings] = None,
        id_factory: Callable[[int], str] = generate_id,
    ):
        self.source_db = source_db
        self.target_db = target_db
        self.registry = registry or TransformerRegistry()
        self.settings = settings or MigrationSettings()
        self.id_factory = id_factory

        self.row_handlers = {
            "organizations": self._migrate_organization,
            "leads_custom_fields_definitions": self._migrate_custom_field_definition,
            "leads": self._migrate_lead,
            "segments": self._migrate_segment,
            "webhooks": self._migrate_webhook,
        }

    def execute(self, tables: List[str]) -> List[TableResult]:
        """Migrate ``tables`` (re-ordered by dependency); the first failure aborts."""
        return [self.migrate_table(table) for table in order_tables(tables)]

    def migrate_table(self, table: str) -> TableResult:
        """
        Migrate one table.

        Raises:
            TableMigrationError: Wrapping whatever went wrong
        """
        console.step(f"Migrating {table}...")
        result = TableResult(table=table)
        try:
            if table == "leads_custom_fields":
                self._migrate_custom_field_values(result)
            else:
                rows = self.source_db.fetch_all(f"SELECT * FROM {view_name(table)}")
                result.source_rows = len(rows)
                if not rows:
                    console.warning(f"No data found for {table}")
                    return result

                console.info(f"📦 Found {len(rows)} {table} records to migrate")
                if table == "conversions":
                    self._migrate_conversions(rows, result)
                else:
                    handler = self.row_handlers[table]
                    for record in rows:
                        handler(record, result)
                        result.migrated += 1
        except TableMigrationError:
            raise
        except Exception as e:
            raise TableMigrationError(table, e) from e

        console.success(f"Successfully migrated {result.migrated} {table} records")
        return result

    def _migrate_organization(self, record: Dict[str, Any], result: TableResult) -> None:
        self.target_db.execute(UPSERT_ORGANIZATION_SQL, (
            record["id"], record.get("name"), record.get("website"), record.get("logo"),
            record.get("email"), record.get("is_active"), record.get("created_at"), record.get("updated_at"),
        ))

    def _migrate_custom_field_definition(self, record: Dict[str, Any], result: TableResult) -> None:
        self.target_db.execute(UPSERT_CUSTOM_FIELD_DEFINITION_SQL, (
            record["id"], record["organization_id"], record["field_key"], record.get("label"),
            record.get("type"), record.get("description"), record.get("is_required"),
            record.get("created_at"), record.get("updated_at"),
        ))

    def _migrate_lead(self, record: Dict[str, Any], result: TableResult) -> None:
        lead = dict(record)
        lead["tags"] = self.registry.transform(record.get("tags_json"), "TAGS")
        self.target_db.execute(build_lead_insert(lead))

    def _migrate_custom_field_values(self, result: TableResult) -> None:
        batch_size = self.settings.custom_fields_batch_size
        offset = 0
        while True:
            batch = self.source_db.fetch_all(CUSTOM_FIELD_VALUES_PAGE_SQL, (batch_size, offset))
            if not batch:
                break

            values = [
                (row["lead_id"], row["organization_id"], row["field_key"], row.get("field_value"), row.get("created_at"))
                for row in batch
            ]
            try:
                with self.target_db.transaction():
                    self.target_db.execute_values(UPSERT_CUSTOM_FIELD_VALUES_SQL, values)
            except Exception as e:
                raise TableMigrationError(
                    "leads_custom_fields", RuntimeError(f"batch at offset {offset} rolled back: {e}")
                ) from e

            result.source_rows += len(batch)
            result.migrated += len(batch)
            result.batches += 1
            offset += batch_size
            console.info(f"📦 Migrated {result.migrated} custom field records so far...")

        if not result.migrated:
            console.warning("No data found for leads_custom_fields")

    def _migrate_conversions(self, rows: List[Dict[str, Any]], result: TableResult) -> None:
        batch_size = self.settings.conversions_batch_size
        total_batches = (len(rows) + batch_size - 1) // batch_size
        for number, batch in enumerate(_batches(rows, batch_size), 1):
            self.target_db.execute(build_conversions_insert(batch))
            result.migrated += len(batch)
            result.batches += 1
            console.info(f"📦 Processed batch {number}/{total_batches}")

    def _migrate_segment(self, record: Dict[str, Any], result: TableResult) -> None:
        rule_json = self.registry.transform(record.get("rule_json"), "RULE_JSON")
        if rule_json:
            try:
                tree = parse_rule_node(rule_json)
                logger.debug("Segment %s references %s", record["id"], referenced_fields(tree))
            except RuleValidationError as e:
                message = f"segment {record['id']}: rules do not match the rule model ({e})"
                logger.warning(message)
                result.warnings.append(message)
        else:
            result.warnings.append(f"segment {record['id']}: empty rule set")

        self.target_db.execute(UPSERT_SEGMENT_SQL, (
            record["id"], record["organization_id"], record.get("name"), record.get("description"),
            json_param(rule_json), record.get("created_at"), record.get("updated_at"),
        ))

    def _migrate_webhook(self, record: Dict[str, Any], result: TableResult) -> None:
        # Webhooks get a fresh id instead of keeping the legacy UUID
        webhook_id = self.id_factory(self.settings.id_length)
        inverter = self.registry.webhook_inverter
        field_mappings = self.registry.transform(record.get("field_mapping"), "WEBHOOK_MAPPING")
        for conflict in inverter.conflicts:
            result.warnings.append(
                f"webhook {record.get('name')}: '{conflict.target_field}' in {conflict.section} "
                f"kept {conflict.kept_path}, dropped {conflict.discarded_path}"
            )
        for skipped in inverter.skipped:
            result.warnings.append(
                f"webhook {record.get('name')}: skipped {skipped.section}.{skipped.webhook_field} "
                f"({skipped.value_type} target)"
            )

        self.target_db.execute(UPSERT_WEBHOOK_SQL, (
            webhook_id, record["organization_id"], record.get("name"), record.get("description"),
            json_param(field_mappings), json_param(record.get("sample_payload")), record.get("is_active"),
            record.get("created_at"), record.get("updated_at"),
        ))
