"""Locates database dumps in the backup directory."""
import re
from dataclasses import dataclass
from datetime import datetime
from functools import cmp_to_key
from pathlib import Path
from typing import List, Union

from src.migration.errors import BackupNotFoundError

DUMP_SUFFIX = ".dump"
DEFAULT_PG_VERSION = "16"

# e.g. "laiki-pg15-2025-08-25T23-00-00.dump"
TIMESTAMP_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2})")
PG_VERSION_PATTERN = re.compile(r"pg(\d+)")


@dataclass
class BackupFile:
    """A dump file candidate."""

    path: Path
    mtime: datetime
    name_timestamp: str = ""

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size_mb(self) -> float:
        return self.path.stat().st_size / 1024 / 1024


def detect_pg_version(filename: Union[str, Path]) -> str:
    """Postgres major version embedded in the file name (``pg15``), default 16."""
    match = PG_VERSION_PATTERN.search(Path(filename).name)
    return match.group(1) if match else DEFAULT_PG_VERSION


def _newest_first(a: BackupFile, b: BackupFile) -> int:
    if a.name_timestamp and b.name_timestamp:
        return (a.name_timestamp < b.name_timestamp) - (a.name_timestamp > b.name_timestamp)
    return (a.mtime < b.mtime) - (a.mtime > b.mtime)


def list_backups(backup_dir: Union[str, Path]) -> List[BackupFile]:
    """
    All ``.dump`` files, newest first.

    Files are ordered by the timestamp in their names when both names carry
    one, otherwise by modification time.

    Raises:
        BackupNotFoundError: If the directory does not exist
    """
    directory = Path(backup_dir)
    if not directory.is_dir():
        raise BackupNotFoundError(f"Backup directory '{directory}' does not exist!")

    files = []
    for path in directory.iterdir():
        if path.is_file() and path.name.endswith(DUMP_SUFFIX):
            match = TIMESTAMP_PATTERN.search(path.name)
            files.append(BackupFile(
                path=path,
                mtime=datetime.fromtimestamp(path.stat().st_mtime),
                name_timestamp=match.group(1) if match else "",
            ))

    return sorted(files, key=cmp_to_key(_newest_first))


def find_latest_backup(backup_dir: Union[str, Path]) -> Path:
    """
    Newest dump in ``backup_dir``.

    Raises:
        BackupNotFoundError: If the directory is missing or holds no dumps
    """
    files = list_backups(backup_dir)
    if not files:
        raise BackupNotFoundError(f"No {DUMP_SUFFIX} files found in '{backup_dir}' directory!")
    return files[0].path
