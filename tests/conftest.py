"""
Shared fixtures

FakeDatabase stands in for src.db.connection.Database: queries are answered
from canned responses matched by substring, writes are recorded.
"""

from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest


Response = Union[List[Dict[str, Any]], Callable[[str, Optional[Sequence[Any]]], List[Dict[str, Any]]], Exception]


class FakeDatabase:
    """In-memory double for the Database wrapper"""

    def __init__(self, responses: Optional[Dict[str, Response]] = None, name: str = "fake"):
        self.name = name
        self.responses: Dict[str, Response] = dict(responses or {})
        self.queries: List[tuple] = []
        self.executed: List[tuple] = []
        self.values_calls: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.in_transaction = False

    def _check_failure(self, sql: str) -> None:
        for fragment, error in self.fail_on.items():
            if fragment in sql:
                raise error

    def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        self.queries.append((sql, params))
        self._check_failure(sql)
        for fragment, response in self.responses.items():
            if fragment in sql:
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(sql, params)
                return [dict(row) for row in response]
        return []

    def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_all(sql, params)
        return rows[0] if rows else None

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> int:
        self._check_failure(sql)
        self.executed.append((sql, params))
        return 1

    def execute_script(self, statements) -> None:
        for statement in statements:
            self.execute(statement)

    def execute_values(self, sql: str, rows, template: Optional[str] = None) -> None:
        self._check_failure(sql)
        self.values_calls.append((sql, list(rows)))

    @contextmanager
    def transaction(self):
        self.in_transaction = True
        try:
            yield self
            self.commits += 1
        except Exception:
            self.rollbacks += 1
            raise
        finally:
            self.in_transaction = False

    def close(self) -> None:
        self.closed = True

    def executed_sql(self, fragment: str) -> List[str]:
        """Executed statements containing ``fragment``"""
        return [sql for sql, _ in self.executed if fragment in sql]


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def fake_db_factory():
    """Build FakeDatabase instances"""
    return FakeDatabase


@pytest.fixture
def source_db():
    return FakeDatabase(name="source")


@pytest.fixture
def target_db():
    return FakeDatabase(name="target")


@pytest.fixture
def sql_dir(tmp_path):
    """Minimal view scripts using both tokens"""
    directory = tmp_path / "sql"
    directory.mkdir()
    (directory / "cleanup-views.sql").write_text(
        "-- drop everything\n"
        "DROP VIEW IF EXISTS migration_validation;\n"
        "DROP VIEW IF EXISTS organizations_transformed;\n"
    )
    (directory / "transformation-views.sql").write_text(
        "-- views\n"
        "CREATE VIEW organizations_transformed AS\n"
        "SELECT $target_org_id AS id, name FROM companies WHERE id = $source_company_id;\n"
        "CREATE VIEW migration_validation AS\n"
        "SELECT 'source_company_exists' AS issue, count(*) AS count FROM companies WHERE id = $source_company_id;\n"
    )
    (directory / "custom-fields-transformation.sql").write_text(
        "CREATE VIEW leads_custom_fields_transformed AS\n"
        "SELECT lead_id, $target_org_id AS organization_id FROM contact_custom_field_values;\n"
    )
    return directory
