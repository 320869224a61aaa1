"""
Transformation View SQL - loads and parameterizes the view scripts

The scripts reference two tokens, ``$source_company_id`` and
``$target_org_id``, each replaced by a single-quoted literal before the
script is split into statements.
"""

import logging
from pathlib import Path
from typing import List, Union

import sqlparse

from .sql_literals import quote

logger = logging.getLogger(__name__)

SOURCE_COMPANY_TOKEN = "$source_company_id"
TARGET_ORG_TOKEN = "$target_org_id"

CLEANUP_SCRIPT = "cleanup-views.sql"
TRANSFORMATION_SCRIPTS = (
    "transformation-views.sql",
    "custom-fields-transformation.sql",
)


def parameterize(sql_text: str, source_company_id: str, target_org_id: str) -> str:
    """Substitute both tokens with quoted, escaped literals"""
    return sql_text.replace(SOURCE_COMPANY_TOKEN, quote(source_company_id)).replace(
        TARGET_ORG_TOKEN, quote(target_org_id)
    )


def split_statements(sql_text: str) -> List[str]:
    """Split a script into executable statements, dropping comment-only chunks"""
    statements = []
    for raw in sqlparse.split(sql_text):
        stripped = sqlparse.format(raw, strip_comments=True).strip()
        if stripped and stripped != ";":
            statements.append(raw.strip())
    return statements


class ViewScriptLoader:
    """Reads the view scripts from a directory"""

    def __init__(self, sql_dir: Union[str, Path]):
        self.sql_dir = Path(sql_dir)

    def _read(self, name: str) -> str:
        path = self.sql_dir / name
        if not path.exists():
            raise FileNotFoundError(f"SQL script not found: {path}")
        return path.read_text(encoding="utf-8")

    def cleanup_statements(self) -> List[str]:
        return split_statements(self._read(CLEANUP_SCRIPT))

    def transformation_statements(self, source_company_id: str, target_org_id: str) -> List[str]:
        """All transformation statements, in script order"""
        statements: List[str] = []
        for name in TRANSFORMATION_SCRIPTS:
            sql_text = parameterize(self._read(name), source_company_id, target_org_id)
            script_statements = split_statements(sql_text)
            logger.debug("Loaded %d statements from %s", len(script_statements), name)
            statements.extend(script_statements)
        return statements
