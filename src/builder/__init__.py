"""
SQL Builder Module

Renders the SQL text the migration executes:
- Escaped literals for statements built as text
- Multi-row INSERT statements for leads and conversions
- Parameterized transformation view scripts
"""

from .insert_builder import build_conversions_insert, build_insert, build_lead_insert
from .sql_literals import escape_text, quote, text_array_literal
from .view_sql import ViewScriptLoader, parameterize, split_statements

__all__ = [
    "build_insert",
    "build_conversions_insert",
    "build_lead_insert",
    "escape_text",
    "quote",
    "text_array_literal",
    "ViewScriptLoader",
    "parameterize",
    "split_statements",
]
