"""
Insert Builder - renders INSERT statements with inline literals

Used for the high-volume paths (conversions batches, leads with array tags)
where the statement is built as text. Columns are declared as
``ColumnSpec(name, kind)`` and each kind has a literal renderer.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence

from .sql_literals import (
    json_literal,
    numeric_literal,
    quote,
    text_array_literal,
    text_literal,
    timestamp_literal,
)


@dataclass(frozen=True)
class ColumnSpec:
    """A target column and how its value is rendered"""

    name: str
    kind: str = "text"  # "id", "text", "timestamp", "number", "count", "json", "tags"
    source: str = ""  # source key when it differs from the column name

    @property
    def source_key(self) -> str:
        return self.source or self.name


RENDERERS: Dict[str, Callable[[Any], str]] = {
    "id": quote,
    "text": text_literal,
    "timestamp": timestamp_literal,
    "number": numeric_literal,
    "count": lambda value: numeric_literal(value, default=0),
    "json": json_literal,
    "tags": lambda value: text_array_literal(value or []),
}


CONVERSION_COLUMNS: List[ColumnSpec] = [
    ColumnSpec("id", "id"),
    ColumnSpec("organization_id", "id"),
    ColumnSpec("lead_id", "id"),
    ColumnSpec("name"),
    ColumnSpec("identifier"),
    ColumnSpec("external_id"),
    ColumnSpec("external_source"),
    ColumnSpec("date", "timestamp"),
    ColumnSpec("value", "number"),
    ColumnSpec("source"),
    ColumnSpec("utm_source"),
    ColumnSpec("utm_medium"),
    ColumnSpec("utm_campaign"),
    ColumnSpec("utm_content"),
    ColumnSpec("utm_term"),
    ColumnSpec("utm_channel"),
    ColumnSpec("conversion_url"),
    ColumnSpec("conversion_domain"),
    ColumnSpec("device"),
    ColumnSpec("raw_payload", "json"),
    ColumnSpec("idempotency_hash", "id"),
    ColumnSpec("created_at", "timestamp"),
]

LEAD_COLUMNS: List[ColumnSpec] = [
    ColumnSpec("id", "id"),
    ColumnSpec("organization_id", "id"),
    ColumnSpec("name"),
    ColumnSpec("email"),
    ColumnSpec("secondary_email"),
    ColumnSpec("phone"),
    ColumnSpec("secondary_phone"),
    ColumnSpec("company"),
    ColumnSpec("job_title"),
    ColumnSpec("import_method"),
    ColumnSpec("external_id"),
    ColumnSpec("external_source"),
    ColumnSpec("fit_score"),
    ColumnSpec("interest", "count"),
    ColumnSpec("total_conversions", "count"),
    ColumnSpec("first_conversion_date", "timestamp"),
    ColumnSpec("last_conversion_date", "timestamp"),
    ColumnSpec("first_conversion_utm_source"),
    ColumnSpec("first_conversion_utm_medium"),
    ColumnSpec("first_conversion_utm_campaign"),
    ColumnSpec("first_conversion_utm_content"),
    ColumnSpec("first_conversion_utm_term"),
    ColumnSpec("last_conversion_utm_source"),
    ColumnSpec("last_conversion_utm_medium"),
    ColumnSpec("last_conversion_utm_campaign"),
    ColumnSpec("last_conversion_utm_content"),
    ColumnSpec("last_conversion_utm_term"),
    ColumnSpec("tags", "tags"),
    ColumnSpec("notes"),
    ColumnSpec("created_at", "timestamp"),
    ColumnSpec("updated_at", "timestamp"),
]


def render_row(columns: Sequence[ColumnSpec], record: Dict[str, Any]) -> str:
    """Render one ``(...)`` tuple of literals"""
    literals = [RENDERERS[col.kind](record.get(col.source_key)) for col in columns]
    return f"({', '.join(literals)})"


def build_insert(
    table: str,
    columns: Sequence[ColumnSpec],
    records: Sequence[Dict[str, Any]],
    on_conflict: str = "",
) -> str:
    """
    Build a multi-row INSERT statement

    Args:
        table: Target table
        columns: Column specs in insert order
        records: Rows keyed by source key
        on_conflict: Trailing ``ON CONFLICT ...`` clause

    Returns:
        SQL text

    Raises:
        ValueError: If ``records`` is empty
    """
    if not records:
        raise ValueError(f"No rows to insert into {table}")

    column_list = ", ".join(col.name for col in columns)
    values = ",\n".join(render_row(columns, record) for record in records)
    statement = f"INSERT INTO {table} ({column_list}) VALUES\n{values}"
    if on_conflict:
        statement = f"{statement}\n{on_conflict}"
    return statement


def build_conversions_insert(records: Sequence[Dict[str, Any]]) -> str:
    """Batch insert for conversions; existing ids are skipped"""
    return build_insert("conversions", CONVERSION_COLUMNS, records, "ON CONFLICT (id) DO NOTHING")


def build_lead_insert(record: Dict[str, Any]) -> str:
    """Single lead insert; a re-run only refreshes ``updated_at``"""
    return build_insert(
        "leads",
        LEAD_COLUMNS,
        [record],
        "ON CONFLICT (id) DO UPDATE SET updated_at = EXCLUDED.updated_at",
    )
