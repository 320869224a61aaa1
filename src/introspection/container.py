"""
Throwaway PostgreSQL container used to restore and inspect a legacy dump.

Docker is driven through its CLI; the container is always removed by
``stop()``, which is safe to call when it was never started.
"""

import logging
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional

from src.migration.errors import AnalysisError

logger = logging.getLogger(__name__)

CONTAINER_DUMP_PATH = "/backup.dump"


class PostgresContainer:
    """
    Manages a ``postgres:<version>`` container for dump analysis

    Usage:
    ```python
    container = PostgresContainer("laiki-analysis", "secret", 5433, "15")
    try:
        container.start()
        container.restore(Path("data/db-dumps/laiki-pg15.dump"))
    finally:
        container.stop()
    ```
    """

    def __init__(
        self,
        name: str,
        password: str,
        port: int,
        pg_version: str,
        startup_wait: float = 10.0,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize container handle

        Args:
            name: Docker container name
            password: POSTGRES_PASSWORD for the container
            port: Host port mapped to 5432
            pg_version: Postgres major version (image tag)
            startup_wait: Seconds to wait for the server to accept connections
            runner: subprocess.run compatible callable
            sleep: time.sleep compatible callable
        """
        self.name = name
        self.password = password
        self.port = port
        self.pg_version = pg_version
        self.startup_wait = startup_wait
        self._run = runner
        self._sleep = sleep

    @property
    def image(self) -> str:
        return f"postgres:{self.pg_version}"

    def _docker(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        command = ["docker", *args]
        logger.debug("Running %s", " ".join(command))
        try:
            return self._run(command, check=check, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise AnalysisError("docker executable not found") from e
        except subprocess.CalledProcessError as e:
            raise AnalysisError(
                f"docker {args[0]} failed: {(e.stderr or '').strip()}", returncode=e.returncode
            ) from e

    def start(self) -> None:
        """Replace any container with the same name and start a fresh one"""
        self._docker(["stop", self.name], check=False)
        self._docker(["rm", self.name], check=False)
        self._docker([
            "run", "-d",
            "--name", self.name,
            "-e", f"POSTGRES_PASSWORD={self.password}",
            "-p", f"{self.port}:5432",
            self.image,
        ])
        logger.info("Waiting %.0fs for PostgreSQL to start", self.startup_wait)
        self._sleep(self.startup_wait)

    def restore(self, dump_file: Path) -> bool:
        """
        Restore a dump into the container

        Returns:
            True when pg_restore exited cleanly. Supabase dumps usually
            restore with errors (missing roles and extensions), which are
            tolerated.
        """
        self._docker(["cp", str(dump_file), f"{self.name}:{CONTAINER_DUMP_PATH}"])
        completed = self._docker([
            "exec", "-e", f"PGPASSWORD={self.password}", self.name,
            "pg_restore", "--verbose", "--clean", "--no-acl", "--no-owner", "--if-exists",
            "-U", "postgres", "-d", "postgres", CONTAINER_DUMP_PATH,
        ], check=False)
        if completed.returncode != 0:
            logger.warning("pg_restore exited with %s (expected for Supabase extensions/roles)", completed.returncode)
            return False
        return True

    def stop(self) -> None:
        """Stop and remove the container; errors are only logged"""
        for action in ("stop", "rm"):
            completed = self._docker([action, self.name], check=False)
            if completed.returncode != 0:
                logger.warning("docker %s %s: %s", action, self.name, (completed.stderr or "").strip())

    def connect_kwargs(self) -> dict:
        return {
            "host": "localhost",
            "port": self.port,
            "dbname": "postgres",
            "user": "postgres",
            "password": self.password,
        }
