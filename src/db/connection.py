"""Thin psycopg2 wrapper shared by the source and target databases."""
import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

import psycopg2
import psycopg2.extras

logger = logging.getLogger(__name__)


class Database:
    """
    Lazily connected Postgres handle.

    Statements run in autocommit mode; ``transaction()`` opens an explicit
    transaction for the duration of a ``with`` block.
    """

    def __init__(self, dsn: Optional[str] = None, name: str = "db", **connect_kwargs):
        """
        Args:
            dsn: Connection string (takes precedence over keyword arguments)
            name: Label used in log messages
            **connect_kwargs: host/port/dbname/user/password for psycopg2.connect
        """
        self.dsn = dsn
        self.name = name
        self.connect_kwargs = connect_kwargs
        self._conn = None

    @property
    def connection(self):
        if self._conn is None or self._conn.closed:
            if self.dsn:
                self._conn = psycopg2.connect(self.dsn)
            else:
                self._conn = psycopg2.connect(**self.connect_kwargs)
            self._conn.autocommit = True
            logger.debug("%s: connected", self.name)
        return self._conn

    def _log(self, sql: str, started: float, rowcount: Optional[int]) -> None:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug("%s: %.1fms rows=%s %s", self.name, elapsed_ms, rowcount, " ".join(sql.split())[:120])

    def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        started = time.perf_counter()
        with self.connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(sql, params)
            rows = [dict(row) for row in cur.fetchall()]
        self._log(sql, started, len(rows))
        return rows

    def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_all(sql, params)
        return rows[0] if rows else None

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> int:
        """Run a statement, returning the affected row count."""
        started = time.perf_counter()
        with self.connection.cursor() as cur:
            cur.execute(sql, params)
            rowcount = cur.rowcount
        self._log(sql, started, rowcount)
        return rowcount

    def execute_script(self, statements: Iterable[str]) -> None:
        for statement in statements:
            self.execute(statement)

    def execute_values(self, sql: str, rows: Sequence[Sequence[Any]], template: Optional[str] = None) -> None:
        """Multi-row insert through ``psycopg2.extras.execute_values``."""
        started = time.perf_counter()
        with self.connection.cursor() as cur:
            psycopg2.extras.execute_values(cur, sql, rows, template=template, page_size=max(len(rows), 1))
        self._log(sql, started, len(rows))

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        conn = self.connection
        conn.autocommit = False
        try:
            yield self
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.autocommit = True

    def close(self) -> None:
        if self._conn is not None and not self._conn.closed:
            self._conn.close()
            logger.debug("%s: closed", self.name)
        self._conn = None


def json_param(value: Any):
    """Adapt a Python value for a json/jsonb parameter."""
    if value is None:
        return None
    return psycopg2.extras.Json(value)
