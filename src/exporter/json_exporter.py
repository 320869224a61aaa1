"""JSON exporter."""
import json
from pathlib import Path
from typing import Any, Dict, List, Union

from src.schema.models import MigrationRecord


class JsonExporter:
    """Export migration run records to JSON."""

    def __init__(self, output_dir: Union[str, Path]):
        self.migrations_dir = Path(output_dir) / "migrations"

    def export(self, record: MigrationRecord) -> Path:
        """Write ``<organization_id>.json`` and return its path."""
        self.migrations_dir.mkdir(parents=True, exist_ok=True)
        output_file = self.migrations_dir / f"{record.organization_id}.json"

        with open(output_file, "w") as f:
            json.dump(record.to_dict(), f, indent=2, default=str)

        return output_file

    def list_records(self) -> List[Dict[str, Any]]:
        """Saved run records, oldest first."""
        if not self.migrations_dir.exists():
            return []

        records = []
        for path in self.migrations_dir.glob("*.json"):
            with open(path, "r") as f:
                records.append(json.load(f))
        records.sort(key=lambda r: r.get("started_at") or "")
        return records
