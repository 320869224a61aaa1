"""
Unit tests for the legacy field key tables

Tests:
- Built-in tables: known legacy keys map to canonical names
- FieldNormalizer: identity fallback, unknown entity types
- FieldMappingTables: custom tables are copied and frozen
"""

import pytest

from src.mapper.field_mappings import (
    CONVERSION_FIELD_MAPPINGS,
    LEAD_FIELD_MAPPINGS,
    FieldMappingTables,
    FieldNormalizer,
    normalize_field_key,
)


class TestBuiltInTables:
    """Tests for the shipped mapping tables"""

    def test_conversion_keys(self):
        assert normalize_field_key("conversion_name", "conversions") == "name"
        assert normalize_field_key("traffic_source_source", "conversions") == "utm_source"
        assert normalize_field_key("payload_raw_json", "conversions") == "raw_payload"

    def test_lead_level_utm_lives_in_conversion_table(self):
        assert normalize_field_key("last_traffic_source_campaign", "conversions") == "last_conversion_utm_campaign"

    def test_lead_keys(self):
        assert normalize_field_key("mobile_phone", "leads") == "phone"
        assert normalize_field_key("personal_phone", "leads") == "secondary_phone"

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            CONVERSION_FIELD_MAPPINGS["x"] = "y"
        with pytest.raises(TypeError):
            LEAD_FIELD_MAPPINGS["x"] = "y"

    def test_canonical_names_are_not_legacy_keys(self):
        """Normalizing twice is a no-op"""
        for table in (CONVERSION_FIELD_MAPPINGS, LEAD_FIELD_MAPPINGS):
            for canonical in table.values():
                assert canonical not in table


class TestFieldNormalizer:
    """Tests for FieldNormalizer"""

    def test_unknown_key_is_identity(self):
        assert normalize_field_key("email", "leads") == "email"

    def test_unknown_entity_is_identity(self):
        assert normalize_field_key("mobile_phone", "companies") == "mobile_phone"

    def test_custom_fields_table_is_empty_by_default(self):
        assert normalize_field_key("mobile_phone", "custom_fields") == "mobile_phone"

    def test_entity_tables_are_separate(self):
        """A lead key is not rewritten in the conversions section"""
        assert normalize_field_key("mobile_phone", "conversions") == "mobile_phone"

    def test_custom_tables(self):
        tables = FieldMappingTables.from_dicts(leads={"cel": "phone"}, custom_fields={"cf_1": "budget"})
        normalizer = FieldNormalizer(tables)

        assert normalizer.normalize("cel", "leads") == "phone"
        assert normalizer.normalize("cf_1", "custom_fields") == "budget"
        assert normalizer.normalize("conversion_name", "conversions") == "conversion_name"

    def test_custom_tables_are_copied(self):
        source = {"cel": "phone"}
        tables = FieldMappingTables.from_dicts(leads=source)
        source["cel"] = "other"

        assert tables.leads["cel"] == "phone"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
