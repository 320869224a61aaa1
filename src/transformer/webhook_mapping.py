"""
Webhook field mapping inversion.

Legacy webhooks stored ``{section: {webhook_field: target_field}}`` with the
webhook fields relative to ``_structure.dataPath``. The new application
expects ``{section: {target_field: full_webhook_path}}``.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from src.mapper.field_mappings import FieldNormalizer

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = "data.leads[0]"
DEFAULT_STRUCTURE_INFO = "Migrated from old format"
SECTIONS = ("leads", "conversions", "custom_fields")
# Metadata that malformed legacy rows carry inside custom_fields
CUSTOM_FIELD_METADATA_KEYS = ("dataPath", "structureInfo", "_structure")
PATH_SEPARATOR = "."


@dataclass
class MappingConflict:
    """Two legacy webhook fields normalized to the same target field."""

    section: str
    target_field: str
    discarded_path: str
    kept_path: str


@dataclass
class SkippedMapping:
    """A legacy pair whose target field is not a string."""

    section: str
    webhook_field: str
    value_type: str


class WebhookMappingInverter:
    """Turns legacy webhook field mappings into the canonical layout."""

    def __init__(self, normalizer: Optional[FieldNormalizer] = None):
        self.normalizer = normalizer or FieldNormalizer()
        self.conflicts: List[MappingConflict] = []
        self.skipped: List[SkippedMapping] = []

    @staticmethod
    def build_full_path(webhook_field: str, base_data_path: str) -> str:
        """Re-root a webhook field under the base data path (always prefixed)."""
        if not webhook_field or not isinstance(webhook_field, str):
            return webhook_field
        return f"{base_data_path}{PATH_SEPARATOR}{webhook_field}"

    def invert(self, legacy: Any) -> Any:
        """
        Invert a legacy mapping object.

        Args:
            legacy: Legacy field mapping (anything that is not a dict passes through)

        Returns:
            Canonical mapping with ``leads``, ``conversions``, ``custom_fields``
            and ``_structure`` keys

        ``conflicts`` and ``skipped`` describe the last call only.
        """
        self.conflicts = []
        self.skipped = []
        if not legacy or not isinstance(legacy, dict):
            return legacy

        structure = legacy.get("_structure")
        base_data_path = DEFAULT_DATA_PATH
        if isinstance(structure, dict) and structure.get("dataPath"):
            base_data_path = structure["dataPath"]

        canonical: Dict[str, Any] = {section: {} for section in SECTIONS}
        canonical["_structure"] = structure or {
            "dataPath": base_data_path,
            "structureInfo": DEFAULT_STRUCTURE_INFO,
        }

        for section in SECTIONS:
            section_data = legacy.get(section)
            if not isinstance(section_data, dict):
                continue

            for webhook_field, target_field in section_data.items():
                if section == "custom_fields" and webhook_field in CUSTOM_FIELD_METADATA_KEYS:
                    continue

                if not isinstance(target_field, str):
                    self.skipped.append(SkippedMapping(section, webhook_field, type(target_field).__name__))
                    logger.warning(
                        "Skipping webhook mapping %s.%s: target is %s, not a field name",
                        section, webhook_field, type(target_field).__name__,
                    )
                    continue

                full_path = self.build_full_path(webhook_field, base_data_path)
                target_field = self.normalizer.normalize(target_field, section)

                previous = canonical[section].get(target_field)
                if previous is not None and previous != full_path:
                    conflict = MappingConflict(section, target_field, previous, full_path)
                    self.conflicts.append(conflict)
                    logger.warning(
                        "Webhook mapping conflict in %s: '%s' mapped from both '%s' and '%s', keeping the latter",
                        section, target_field, previous, full_path,
                    )
                canonical[section][target_field] = full_path

        return canonical


def invert_mapping(legacy: Any) -> Any:
    """Invert with the default tables (conflicts are only logged)."""
    return WebhookMappingInverter().invert(legacy)
