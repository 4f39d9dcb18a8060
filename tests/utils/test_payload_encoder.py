"""Unit tests for model encoding and decoding."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

import pytest

from c8y_client.api.models import (
    Alarm,
    AlarmSeverity,
    AlarmStatus,
    ManagedObject,
    Measurement,
    MeasurementCollection,
    Operation,
    SourceReference,
)
from c8y_client.utils.errors import InvalidPayloadError
from c8y_client.utils.payload_encoder import (
    camel_case,
    decode,
    encode,
    json_field,
    wire_fields,
)


@dataclass
class Node:
    name: str | None = None
    child: "Node | None" = None


class TestNames:
    """Test JSON property naming."""

    @pytest.mark.parametrize(
        ("attribute", "expected"),
        [
            ("id", "id"),
            ("creation_time", "creationTime"),
            ("first_occurrence_time", "firstOccurrenceTime"),
            ("bulk_operation_id", "bulkOperationId"),
        ],
    )
    def test_camel_case(self, attribute: str, expected: str) -> None:
        """Verify snake_case attributes map to camelCase."""
        assert camel_case(attribute) == expected

    def test_explicit_names_win(self) -> None:
        """Verify metadata names override camelCase conversion."""
        fields = wire_fields(ManagedObject)
        assert fields["self"].name == "self_link"
        assert fields["c8y_IsDevice"].name == "c8y_is_device"
        assert "custom_fragments" not in fields
        assert "customFragments" not in fields

    def test_json_field_defaults_to_none(self) -> None:
        """Verify json_field declares an optional field."""

        @dataclass
        class Sample:
            value: str | None = json_field("v")

        assert Sample().value is None


class TestEncode:
    """Test encoding typed values into payload trees."""

    def test_alarm(self) -> None:
        """Verify field names, enum values and None omission."""
        alarm = Alarm(
            source=SourceReference(id="4711"),
            type="c8y_TemperatureAlarm",
            text="Too hot",
            severity=AlarmSeverity.MAJOR,
            status=AlarmStatus.ACTIVE,
            time="2024-01-01T00:00:00.000Z",
        )
        assert encode(alarm) == {
            "severity": "MAJOR",
            "source": {"id": "4711"},
            "status": "ACTIVE",
            "text": "Too hot",
            "time": "2024-01-01T00:00:00.000Z",
            "type": "c8y_TemperatureAlarm",
        }

    def test_enum_is_plain_string(self) -> None:
        """Verify str enums are written as their values."""
        encoded = encode({"severity": AlarmSeverity.MINOR})
        assert type(encoded["severity"]) is str

    def test_custom_fragments_written_last(self) -> None:
        """Verify fragments follow declared properties."""
        measurement = Measurement(
            source=SourceReference(id="1"),
            type="c8y_Temperature",
            custom_fragments={"c8y_Temperature": {"T": {"value": 21.5, "unit": "C"}}},
        )
        encoded = encode(measurement)
        assert list(encoded) == ["source", "type", "c8y_Temperature"]
        assert encoded["c8y_Temperature"]["T"]["value"] == 21.5

    def test_fragment_shadowing_declared_property(self) -> None:
        """Verify a fragment with a declared name replaces the property."""
        encoded = encode(Alarm(text="declared", custom_fragments={"text": "fragment"}))
        assert encoded == {"text": "fragment"}

    def test_nested_list_of_models(self) -> None:
        """Verify lists of models are encoded element-wise."""
        collection = MeasurementCollection(
            measurements=[Measurement(type="a"), Measurement(type="b")],
        )
        assert encode(collection) == {"measurements": [{"type": "a"}, {"type": "b"}]}

    def test_renamed_fields(self) -> None:
        """Verify explicitly named fields use their JSON names."""
        mo = ManagedObject(name="dev", c8y_is_device={}, self_link="http://x")
        assert encode(mo) == {"name": "dev", "self": "http://x", "c8y_IsDevice": {}}

    def test_dates(self) -> None:
        """Verify dates are written in ISO 8601."""
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert encode({"time": moment}) == {"time": "2024-01-02T03:04:05+00:00"}
        assert encode([date(2024, 1, 2)]) == ["2024-01-02"]

    def test_plain_trees_pass_through(self) -> None:
        """Verify dict/list/scalar trees are copied as-is."""
        tree = {"a": [1, 2.5, True, None, "x"], "b": {"c": {}}}
        encoded = encode(tree)
        assert encoded == tree
        assert encoded is not tree

    def test_tuple_becomes_list(self) -> None:
        """Verify tuples are written as arrays."""
        assert encode({"ids": ("1", "2")}) == {"ids": ["1", "2"]}

    def test_deeply_nested_value_rejected(self) -> None:
        """Verify nesting past the recursion limit raises InvalidPayloadError."""
        value: list = []
        for _ in range(5000):
            value = [value]
        with pytest.raises(InvalidPayloadError, match="nested too deeply"):
            encode(value)

    def test_cycle_rejected(self) -> None:
        """Verify cyclic models raise InvalidPayloadError."""
        node = Node(name="root")
        node.child = node
        with pytest.raises(InvalidPayloadError):
            encode(node)

    def test_shared_value_is_not_a_cycle(self) -> None:
        """Verify the same object may appear twice."""
        shared = {"id": "1"}
        assert encode({"a": shared, "b": [shared]}) == {"a": {"id": "1"}, "b": [{"id": "1"}]}

    def test_non_string_key_rejected(self) -> None:
        """Verify object keys must be strings."""
        with pytest.raises(InvalidPayloadError):
            encode({1: "x"})

    def test_unsupported_type_rejected(self) -> None:
        """Verify unsupported values raise InvalidPayloadError."""
        with pytest.raises(InvalidPayloadError):
            encode({"data": object()})


class TestDecode:
    """Test decoding payload trees into models."""

    def test_alarm(self) -> None:
        """Verify nested models and enums are decoded."""
        alarm = decode(
            {
                "id": "10",
                "self": "http://x/alarm/alarms/10",
                "severity": "CRITICAL",
                "source": {"id": "4711", "self": "http://x/mo/4711"},
                "count": 3,
                "c8y_Details": {"reason": "overheat"},
            },
            Alarm,
        )
        assert alarm.id == "10"
        assert alarm.self_link == "http://x/alarm/alarms/10"
        assert alarm.severity is AlarmSeverity.CRITICAL
        assert alarm.source == SourceReference(id="4711", self_link="http://x/mo/4711")
        assert alarm.count == 3
        assert alarm.custom_fragments == {"c8y_Details": {"reason": "overheat"}}

    def test_unknown_enum_value_kept(self) -> None:
        """Verify unknown enum values are kept raw."""
        operation = decode({"status": "SCHEDULED"}, Operation)
        assert operation.status == "SCHEDULED"

    def test_list_of_models(self) -> None:
        """Verify list fields decode their elements."""
        collection = decode(
            {"measurements": [{"type": "a"}, {"type": "b", "c8y_T": {}}], "next": "n"},
            MeasurementCollection,
        )
        assert collection.next == "n"
        assert [m.type for m in collection.measurements] == ["a", "b"]
        assert collection.measurements[1].custom_fragments == {"c8y_T": {}}

    def test_unknown_keys_dropped_without_fragments(self) -> None:
        """Verify models without custom_fragments ignore unknown keys."""
        assert decode({"id": "1", "extra": True}, SourceReference) == SourceReference(id="1")

    def test_round_trip_preserves_fragments(self) -> None:
        """Verify decoding then encoding keeps server data intact."""
        tree = {
            "id": "4711",
            "name": "Sensor",
            "self": "http://x",
            "c8y_IsDevice": {},
            "c8y_Position": {"lat": 1.0, "lng": 2.0},
        }
        assert encode(decode(tree, ManagedObject)) == tree

    def test_non_object_rejected(self) -> None:
        """Verify decode needs an object."""
        with pytest.raises(InvalidPayloadError):
            decode(["not", "an", "object"], Alarm)

    def test_any_typed_field(self) -> None:
        """Verify untyped fields keep their raw values."""

        @dataclass
        class Loose:
            data: Any = None
            tags: list[str] = field(default_factory=list)

        loose = decode({"data": {"a": 1}, "tags": ["x"]}, Loose)
        assert loose.data == {"a": 1}
        assert loose.tags == ["x"]
