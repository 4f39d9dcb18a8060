"""Unit tests for OpenAPI read-only rule extraction."""

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from c8y_client.utils.errors import ConfigurationError
from c8y_client.utils.field_redactor import RedactionRuleSet
from c8y_client.utils.openapi_rules import ExtractionStats, OpenAPIRuleExtractor, load_spec

MEDIA_TYPE = "application/vnd.com.nsn.cumulocity.alarm+json"


def operation(schema: dict[str, Any], operation_id: str | None = None) -> dict[str, Any]:
    op: dict[str, Any] = {
        "requestBody": {"content": {MEDIA_TYPE: {"schema": schema}}},
        "responses": {"201": {"description": "Created"}},
    }
    if operation_id:
        op["operationId"] = operation_id
    return op


@pytest.fixture
def alarm_spec() -> dict[str, Any]:
    """A small, valid OpenAPI 3.0 document with read-only alarm properties."""
    return {
        "openapi": "3.0.3",
        "info": {"title": "Alarms", "version": "1.0.0"},
        "paths": {
            "/alarm/alarms": {
                "post": operation({"$ref": "#/components/schemas/alarm"}, "postAlarms"),
                "get": {"responses": {"200": {"description": "OK"}}},
            },
        },
        "components": {
            "schemas": {
                "alarm": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string", "readOnly": True},
                        "self": {"type": "string", "format": "uri", "readOnly": True},
                        "text": {"type": "string"},
                        "source": {"$ref": "#/components/schemas/source"},
                        "tags": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {"id": {"type": "string", "readOnly": True}},
                            },
                        },
                    },
                },
                "source": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "self": {"type": "string", "readOnly": True},
                    },
                },
            },
        },
    }


class TestExtractionStats:
    """Test ExtractionStats dataclass."""

    def test_default_values(self) -> None:
        """Verify default stat values are zero."""
        assert ExtractionStats().to_dict() == {
            "operations_scanned": 0,
            "operations_with_rules": 0,
            "readonly_paths": 0,
            "unresolved_refs": [],
        }


class TestExtract:
    """Test rule extraction from request bodies."""

    def test_valid_spec(self, alarm_spec: dict[str, Any]) -> None:
        """Verify readOnly properties become rule paths, arrays are skipped."""
        extractor = OpenAPIRuleExtractor()
        rules = extractor.extract(alarm_spec)

        assert rules == {"postAlarms": RedactionRuleSet(["id", "self", "source.self"])}
        stats = extractor.get_stats()
        assert stats["operations_scanned"] == 1
        assert stats["operations_with_rules"] == 1
        assert stats["readonly_paths"] == 3

    def test_invalid_spec_rejected(self) -> None:
        """Verify validation failures raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            OpenAPIRuleExtractor().extract({"openapi": "3.0.3", "paths": {}})

    @pytest.mark.parametrize(
        "document",
        [
            {"paths": {}},
            {"swagger": "9", "info": {"title": "x", "version": "1"}, "paths": {}},
        ],
    )
    def test_unknown_version_rejected(self, document: dict[str, Any]) -> None:
        """Verify documents without a supported version raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Unsupported OpenAPI document"):
            OpenAPIRuleExtractor().extract(document)

    def test_operation_key_without_id(self) -> None:
        """Verify operations without operationId are keyed by method and path."""
        spec = {
            "paths": {
                "/inventory/managedObjects/{id}": {
                    "put": operation({"type": "object", "properties": {"id": {"readOnly": True}}}),
                },
            },
        }
        rules = OpenAPIRuleExtractor(validate_spec=False).extract(spec)
        assert list(rules) == ["PUT /inventory/managedObjects/{id}"]

    def test_all_of_merges_members(self) -> None:
        """Verify allOf members contribute their properties."""
        spec = {
            "paths": {
                "/event/events": {
                    "post": operation(
                        {
                            "allOf": [
                                {"$ref": "#/components/schemas/base"},
                                {
                                    "type": "object",
                                    "properties": {"creationTime": {"readOnly": True}},
                                },
                            ],
                        },
                        "createEvent",
                    ),
                },
            },
            "components": {
                "schemas": {
                    "base": {"type": "object", "properties": {"id": {"readOnly": True}}},
                },
            },
        }
        rules = OpenAPIRuleExtractor(validate_spec=False).extract(spec)
        assert rules["createEvent"] == RedactionRuleSet(["id", "creationTime"])

    def test_readonly_object_not_descended(self) -> None:
        """Verify a read-only object is removed as a whole."""
        schema = {
            "type": "object",
            "properties": {
                "childDevices": {
                    "type": "object",
                    "readOnly": True,
                    "properties": {"self": {"readOnly": True}},
                },
            },
        }
        spec = {"paths": {"/mo": {"post": operation(schema, "create")}}}
        rules = OpenAPIRuleExtractor(validate_spec=False).extract(spec)
        assert rules["create"].to_list() == ["childDevices"]

    def test_recursive_schema_terminates(self) -> None:
        """Verify $ref cycles stop at the first repeated schema."""
        spec = {
            "paths": {"/mo": {"post": operation({"$ref": "#/components/schemas/node"}, "create")}},
            "components": {
                "schemas": {
                    "node": {
                        "type": "object",
                        "properties": {
                            "id": {"readOnly": True},
                            "parent": {"$ref": "#/components/schemas/node"},
                        },
                    },
                },
            },
        }
        rules = OpenAPIRuleExtractor(validate_spec=False).extract(spec)
        assert rules["create"].to_list() == ["id"]

    def test_unresolved_refs_recorded(self) -> None:
        """Verify dangling and external refs are counted, not followed."""
        schema = {
            "type": "object",
            "properties": {
                "a": {"$ref": "#/components/schemas/missing"},
                "b": {"$ref": "other.yaml#/b"},
                "id": {"readOnly": True},
            },
        }
        spec = {"paths": {"/x": {"post": operation(schema, "create")}}}
        extractor = OpenAPIRuleExtractor(validate_spec=False)
        assert extractor.extract(spec)["create"].to_list() == ["id"]
        assert extractor.get_stats()["unresolved_refs"] == [
            "#/components/schemas/missing",
            "other.yaml#/b",
        ]

    def test_escaped_pointer(self) -> None:
        """Verify ~1 and ~0 escapes in JSON pointers."""
        pointer = (
            "#/paths/~1a~1b/post/requestBody/content/"
            "application~1vnd.com.nsn.cumulocity.alarm+json/schema"
        )
        spec = {
            "paths": {
                "/a/b": {
                    "post": operation({"type": "object", "properties": {"id": {"readOnly": True}}}),
                },
                "/x": {"post": operation({"$ref": pointer}, "ref")},
            },
        }
        rules = OpenAPIRuleExtractor(validate_spec=False).extract(spec)
        assert rules["ref"].to_list() == ["id"]

    def test_non_json_bodies_ignored(self) -> None:
        """Verify only JSON media types are inspected."""
        spec = {
            "paths": {
                "/binaries": {
                    "post": {
                        "operationId": "upload",
                        "requestBody": {
                            "content": {
                                "multipart/form-data": {
                                    "schema": {"properties": {"id": {"readOnly": True}}},
                                },
                            },
                        },
                    },
                },
            },
        }
        extractor = OpenAPIRuleExtractor(validate_spec=False)
        assert extractor.extract(spec) == {}
        assert extractor.get_stats()["operations_scanned"] == 1

    def test_request_body_ref(self) -> None:
        """Verify request bodies declared in components are followed."""
        spec = {
            "paths": {
                "/e": {
                    "post": {
                        "operationId": "e",
                        "requestBody": {"$ref": "#/components/requestBodies/e"},
                    },
                },
            },
            "components": {
                "requestBodies": {
                    "e": {
                        "content": {
                            "application/json; charset=UTF-8": {
                                "schema": {"properties": {"self": {"readOnly": True}}},
                            },
                        },
                    },
                },
            },
        }
        assert OpenAPIRuleExtractor(validate_spec=False).extract(spec)["e"].to_list() == ["self"]


class TestLoadSpec:
    """Test loading documents from disk."""

    def test_json_and_yaml(self, tmp_path: Path, alarm_spec: dict[str, Any]) -> None:
        """Verify both formats load to the same document."""
        json_file = tmp_path / "spec.json"
        json_file.write_text(json.dumps(alarm_spec))
        yaml_file = tmp_path / "spec.yaml"
        yaml_file.write_text(yaml.safe_dump(alarm_spec))

        assert load_spec(json_file) == alarm_spec
        assert load_spec(yaml_file) == alarm_spec
