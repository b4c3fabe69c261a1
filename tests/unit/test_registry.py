"""
Tests for MapperRegistry (core/registry.py).
"""

import pytest
from pydantic import BaseModel

from dynamodb_mapper.core.registry import MapperRegistry
from dynamodb_mapper.exceptions import DuplicateMappingError, MappingError, MappingErrorKind
from dynamodb_mapper.models import EntityMapping, TableMeta
from tests.helpers import AuditNote, SensorReading, TaggedAsset, UserProfile
from tests.helpers import sample_models


class NoKeys(BaseModel):
    name: str

    class Meta(TableMeta):
        table_name = "NoKeys"


class PartitionOnly(BaseModel):
    name: str

    class Meta(TableMeta):
        partition_key_template = "name"


class TestManualRegistration:
    """Test manual mapping registration."""

    def test_register_mapping(self):
        registry = MapperRegistry()

        mapping = registry.register_mapping(AuditNote, "Notes", "text", "{{text}}-row")

        assert mapping.table_name == "Notes"
        assert registry.lookup(AuditNote) is mapping
        assert AuditNote in registry
        assert len(registry) == 1

    def test_register_entity_mapping(self):
        registry = MapperRegistry()
        mapping = EntityMapping(
            entity_type=AuditNote,
            table_name="Notes",
            partition_key_template="text",
            row_key_template="text"
        )

        assert registry.register(AuditNote, mapping) is mapping

    def test_duplicate_registration_rejected(self):
        registry = MapperRegistry()
        first = registry.register_mapping(AuditNote, "Notes", "text", "text")

        with pytest.raises(DuplicateMappingError) as exc_info:
            registry.register_mapping(AuditNote, "OtherNotes", "text", "text")

        assert exc_info.value.kind == MappingErrorKind.DUPLICATE_MAPPING
        assert registry.lookup(AuditNote) is first

    def test_mismatched_entity_type(self):
        registry = MapperRegistry()
        mapping = EntityMapping(
            entity_type=UserProfile,
            table_name="Users",
            partition_key_template="contact",
            row_key_template="contact"
        )

        with pytest.raises(ValueError):
            registry.register(AuditNote, mapping)

    def test_unknown_template_property(self):
        registry = MapperRegistry()

        with pytest.raises(MappingError) as exc_info:
            registry.register_mapping(AuditNote, "Notes", "{{text}}-{{author}}", "text")

        assert exc_info.value.kind == MappingErrorKind.UNKNOWN_PROPERTY
        assert exc_info.value.property_name == "author"
        assert AuditNote not in registry

    def test_empty_template_rejected(self):
        from pydantic import ValidationError as PydanticValidationError

        with pytest.raises(PydanticValidationError):
            EntityMapping(entity_type=AuditNote, table_name="Notes", partition_key_template="", row_key_template="text")

    def test_mapping_is_immutable(self):
        mapping = EntityMapping(
            entity_type=AuditNote,
            table_name="Notes",
            partition_key_template="text",
            row_key_template="text"
        )

        with pytest.raises(Exception):
            mapping.table_name = "Other"


class TestDiscovery:
    """Test registration from capability markers."""

    def test_field_markers(self):
        registry = MapperRegistry()

        mapping = registry.register_by_discovery(UserProfile)

        assert mapping.table_name == "UserProfiles"
        assert mapping.partition_key_template == "contact"
        assert mapping.row_key_template == "contact"

    def test_virtual_templates(self):
        mapping = MapperRegistry().register_by_discovery(SensorReading)

        assert mapping.partition_key_template == "{{region}}-{{device}}"
        assert mapping.row_key_template == "{{sequence}}"

    def test_virtual_template_wins_over_field_marker(self):
        mapping = MapperRegistry().register_by_discovery(TaggedAsset)

        assert mapping.partition_key_template == "owner"
        assert mapping.row_key_template == "asset-{{asset_id}}"

    def test_table_name_defaults_to_class_name(self):
        mapping = MapperRegistry().register_by_discovery(TaggedAsset)

        assert mapping.table_name == "TaggedAsset"

    def test_not_storable(self):
        with pytest.raises(MappingError) as exc_info:
            MapperRegistry().register_by_discovery(AuditNote)

        assert exc_info.value.kind == MappingErrorKind.NOT_STORABLE

    @pytest.mark.parametrize("model_class", [NoKeys, PartitionOnly])
    def test_missing_key_source(self, model_class):
        with pytest.raises(MappingError) as exc_info:
            MapperRegistry().register_by_discovery(model_class)

        assert exc_info.value.kind == MappingErrorKind.MISSING_KEY_ATTRIBUTE

    def test_module_discovery(self):
        registry = MapperRegistry()

        mappings = registry.register_all_discoverable(sample_models)

        assert [m.entity_type for m in mappings] == [UserProfile, SensorReading, TaggedAsset]
        assert AuditNote not in registry

    def test_module_discovery_twice_fails(self):
        registry = MapperRegistry()
        registry.register_all_discoverable(sample_models)

        with pytest.raises(DuplicateMappingError):
            registry.register_all_discoverable(sample_models)


class TestLookupAndLifecycle:
    """Test lookup, freezing and copying."""

    def test_lookup_unregistered(self):
        with pytest.raises(MappingError) as exc_info:
            MapperRegistry().lookup(UserProfile)

        assert exc_info.value.kind == MappingErrorKind.NOT_REGISTERED

    def test_registered_types_in_order(self, registry):
        assert registry.registered_types() == [UserProfile, SensorReading]
        assert [m.entity_type for m in registry] == [UserProfile, SensorReading]

    def test_freeze_rejects_registration(self, registry):
        registry.freeze()

        assert registry.is_frozen
        with pytest.raises(MappingError) as exc_info:
            registry.register_by_discovery(TaggedAsset)

        assert exc_info.value.kind == MappingErrorKind.REGISTRY_FROZEN
        # Lookups still work
        assert registry.lookup(UserProfile).table_name == "UserProfiles"

    def test_copy_is_unfrozen_and_independent(self, registry):
        registry.freeze()

        child = registry.copy()
        child.register_by_discovery(TaggedAsset)

        assert not child.is_frozen
        assert TaggedAsset in child
        assert TaggedAsset not in registry
        assert child.lookup(UserProfile) is registry.lookup(UserProfile)
