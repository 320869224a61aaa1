"""Legacy → canonical field key tables used only during data migration.

The application knows only the new field names; these tables translate the
names found in legacy segment rules and webhook mappings.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional


CONVERSION_FIELD_MAPPINGS: Mapping[str, str] = MappingProxyType({
    "conversion_name": "name",
    "conversion_identifier": "identifier",
    "conversion_date": "date",
    "conversion_url": "url",
    "conversion_domain": "domain",
    "conversion_value": "value",
    # UTM
    "traffic_source_source": "utm_source",
    "traffic_source_medium": "utm_medium",
    "traffic_source_campaign": "utm_campaign",
    "traffic_source_content": "utm_content",
    "traffic_source_term": "utm_term",
    "traffic_source_channel": "utm_channel",
    # Lead-level UTM (last conversion attribution, used by segments)
    "last_traffic_source_campaign": "last_conversion_utm_campaign",
    "last_traffic_source_medium": "last_conversion_utm_medium",
    "last_traffic_source_source": "last_conversion_utm_source",
    "last_traffic_source_content": "last_conversion_utm_content",
    "last_traffic_source_term": "last_conversion_utm_term",
    "payload_raw_json": "raw_payload",
})

LEAD_FIELD_MAPPINGS: Mapping[str, str] = MappingProxyType({
    "mobile_phone": "phone",
    "personal_phone": "secondary_phone",
})

# Reserved for future overrides
CUSTOM_FIELD_MAPPINGS: Mapping[str, str] = MappingProxyType({})


def _freeze(table: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return MappingProxyType(dict(table or {}))


@dataclass(frozen=True)
class FieldMappingTables:
    """Immutable set of per-entity mapping tables."""

    leads: Mapping[str, str] = field(default_factory=lambda: LEAD_FIELD_MAPPINGS)
    conversions: Mapping[str, str] = field(default_factory=lambda: CONVERSION_FIELD_MAPPINGS)
    custom_fields: Mapping[str, str] = field(default_factory=lambda: CUSTOM_FIELD_MAPPINGS)

    @classmethod
    def from_dicts(
        cls,
        leads: Optional[Dict[str, str]] = None,
        conversions: Optional[Dict[str, str]] = None,
        custom_fields: Optional[Dict[str, str]] = None,
    ) -> "FieldMappingTables":
        """Build tables from plain dictionaries (copied and frozen)."""
        return cls(
            leads=_freeze(leads),
            conversions=_freeze(conversions),
            custom_fields=_freeze(custom_fields),
        )

    def for_entity(self, entity_type: str) -> Mapping[str, str]:
        """Return the table for an entity type, empty when unknown."""
        if entity_type == "leads":
            return self.leads
        if entity_type == "conversions":
            return self.conversions
        if entity_type == "custom_fields":
            return self.custom_fields
        return MappingProxyType({})


class FieldNormalizer:
    """Normalizes legacy field keys per entity type."""

    def __init__(self, tables: Optional[FieldMappingTables] = None):
        self.tables = tables or FieldMappingTables()

    def normalize(self, field_key: str, entity_type: str) -> str:
        """
        Normalize a field key for an entity section.

        Args:
            field_key: Legacy field key
            entity_type: 'leads', 'conversions' or 'custom_fields'

        Returns:
            The mapped key, or ``field_key`` unchanged when no mapping exists
        """
        mapped = self.tables.for_entity(entity_type).get(field_key)
        return mapped if mapped else field_key


_default_normalizer = FieldNormalizer()


def normalize_field_key(field_key: str, entity_type: str) -> str:
    """Normalize using the built-in tables."""
    return _default_normalizer.normalize(field_key, entity_type)
