"""Selection of the tables to migrate."""
from typing import List, Optional

import click

from src.schema.models import ALL_TABLES, MIGRATION_TABLES, order_tables


class TableSelector:
    """Parses and validates a ``--tables`` selection."""

    VALID_NAMES = MIGRATION_TABLES + (ALL_TABLES,)

    def __init__(self, raw: Optional[str] = None):
        """Initialize selector."""
        self.raw = raw
        self.requested = self._split(raw)

    @staticmethod
    def _split(raw: Optional[str]) -> List[str]:
        if raw is None or not raw.strip():
            return list(MIGRATION_TABLES)
        return [name.strip() for name in raw.split(",") if name.strip()]

    def invalid_tables(self) -> List[str]:
        """Names that are neither a migration table nor ``all``."""
        return [name for name in self.requested if name not in self.VALID_NAMES]

    def ordered(self) -> List[str]:
        """Requested tables in dependency order."""
        return order_tables(self.requested)


def validate_tables_option(ctx, param, value):
    """Click callback: reject unknown table names before anything connects."""
    selector = TableSelector(value)
    invalid = selector.invalid_tables()
    if invalid:
        raise click.BadParameter(
            f"Invalid tables: {', '.join(invalid)}. "
            f"Valid tables: {', '.join(TableSelector.VALID_NAMES)}"
        )
    return selector.requested
