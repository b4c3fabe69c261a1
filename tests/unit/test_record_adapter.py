"""
Tests for the dynamic record adapter (core/record_adapter.py).
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from boto3.dynamodb.types import Binary

from dynamodb_mapper.core.record_adapter import item_to_record, record_to_item, to_model, to_record
from dynamodb_mapper.core.registry import MapperRegistry
from dynamodb_mapper.exceptions import TemplateResolutionError, ValidationError
from dynamodb_mapper.models import StoreRecord
from tests.helpers import SensorReading, TaggedAsset, UserProfile


@pytest.fixture
def mappings():
    registry = MapperRegistry()
    registry.register_by_discovery(UserProfile)
    registry.register_by_discovery(SensorReading)
    registry.register_by_discovery(TaggedAsset)
    return registry


class TestToRecord:
    """Test model -> StoreRecord conversion."""

    def test_keys_and_properties(self, mappings):
        user = UserProfile(first_name="Ada", last_name="Lovelace", contact="ada@example.org", age=36)

        record = to_record(user, mappings.lookup(UserProfile))

        assert record.partition_key == "ada@example.org"
        assert record.row_key == "ada@example.org"
        assert record.properties == {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "contact": "ada@example.org",
            "age": 36
        }
        assert record.timestamp is None

    def test_none_values_are_omitted(self, mappings):
        user = UserProfile(first_name="Grace", last_name="Hopper", contact="grace@example.org")

        record = to_record(user, mappings.lookup(UserProfile))

        assert "age" not in record.properties

    def test_value_conversion(self, mappings):
        reading = SensorReading(
            device="d1", region="eu", sequence=3, value=1.5,
            recorded_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        )

        record = to_record(reading, mappings.lookup(SensorReading))

        assert record.partition_key == "eu-d1"
        assert record.row_key == "3"
        assert record.properties["value"] == Decimal("1.5")
        assert record.properties["recorded_at"] == "2024-05-01T12:00:00+00:00"

    def test_null_key_property(self, mappings):
        mapping = MapperRegistry().register_mapping(UserProfile, "Users", "contact", "{{age}}")
        user = UserProfile(first_name="Grace", last_name="Hopper", contact="grace@example.org")

        with pytest.raises(TemplateResolutionError):
            to_record(user, mapping)


class TestToModel:
    """Test StoreRecord -> model conversion."""

    def test_round_trip(self, mappings):
        mapping = mappings.lookup(SensorReading)
        reading = SensorReading(
            device="d1", region="eu", sequence=3, value=1.5,
            recorded_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        )

        assert to_model(to_record(reading, mapping), mapping) == reading

    def test_round_trip_keeps_naive_datetime_naive(self, mappings):
        mapping = mappings.lookup(SensorReading)
        reading = SensorReading(device="d1", region="eu", sequence=4, recorded_at=datetime(2024, 1, 1, 12))

        record = to_record(reading, mapping)
        restored = to_model(record, mapping)

        assert record.properties["recorded_at"] == "2024-01-01T12:00:00"
        assert restored.recorded_at.tzinfo is None
        assert restored == reading

    def test_round_trip_sets_binary_lists(self, mappings):
        mapping = mappings.lookup(TaggedAsset)
        asset = TaggedAsset(owner="ops", asset_id="a-1", tags={"x", "y"}, checksum=b"\x00\x01", history=[1, 2])

        record = to_record(asset, mapping)
        record.properties["checksum"] = Binary(record.properties["checksum"])

        assert to_model(record, mapping) == asset

    def test_unknown_properties_are_ignored(self, mappings):
        record = StoreRecord(
            partition_key="ada@example.org",
            row_key="ada@example.org",
            properties={"first_name": "Ada", "last_name": "Lovelace", "contact": "ada@example.org", "legacy": 1}
        )

        user = to_model(record, mappings.lookup(UserProfile))

        assert user.first_name == "Ada"
        assert not hasattr(user, "legacy")

    def test_numbers_from_decimal(self, mappings):
        record = StoreRecord(
            partition_key="eu-d1",
            row_key="3",
            properties={"device": "d1", "region": "eu", "sequence": Decimal("3"), "value": Decimal("2.25")}
        )

        reading = to_model(record, mappings.lookup(SensorReading))

        assert reading.sequence == 3
        assert reading.value == 2.25

    def test_missing_required_property(self, mappings):
        record = StoreRecord(partition_key="x", row_key="x", properties={"first_name": "Ada"})

        with pytest.raises(ValidationError) as exc_info:
            to_model(record, mappings.lookup(UserProfile))

        assert exc_info.value.original_error is not None


class TestItems:
    """Test StoreRecord <-> DynamoDB item conversion."""

    def test_record_to_item(self):
        record = StoreRecord(partition_key="p", row_key="r", properties={"a": 1})

        assert record_to_item(record) == {"PartitionKey": "p", "RowKey": "r", "a": 1}

    def test_item_to_record(self):
        item = {
            "PartitionKey": "p",
            "RowKey": "r",
            "Timestamp": "2024-05-01T12:00:00+00:00",
            "a": Decimal("1")
        }

        record = item_to_record(item)

        assert record.partition_key == "p"
        assert record.row_key == "r"
        assert record.properties == {"a": Decimal("1")}
        assert record.timestamp == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_item_to_record_preserves_timestamp_through_item(self):
        record = item_to_record({"PartitionKey": "p", "RowKey": "r", "Timestamp": "2024-05-01T12:00:00+00:00"})

        assert record_to_item(record)["Timestamp"] == "2024-05-01T12:00:00+00:00"

    def test_item_without_keys(self):
        with pytest.raises(ValidationError):
            item_to_record({"PartitionKey": "p"})
