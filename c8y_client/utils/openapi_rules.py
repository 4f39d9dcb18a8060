"""Read-only rule extraction from OpenAPI specifications.

OpenAPI 3 marks server-computed properties with ``readOnly: true``. This
module turns those annotations into per-operation redaction rule sets, so the
registry can be regenerated from the published API description instead of
being maintained by hand.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from openapi_spec_validator import validate
from openapi_spec_validator.exceptions import OpenAPISpecValidatorError
from openapi_spec_validator.validation.exceptions import OpenAPIValidationError

from .errors import ConfigurationError
from .field_redactor import RedactionRuleSet

logger = logging.getLogger(__name__)

WRITE_METHODS = ("post", "put", "patch")


@dataclass
class ExtractionStats:
    """Statistics from rule extraction."""

    operations_scanned: int = 0
    operations_with_rules: int = 0
    readonly_paths: int = 0
    unresolved_refs: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "operations_scanned": self.operations_scanned,
            "operations_with_rules": self.operations_with_rules,
            "readonly_paths": self.readonly_paths,
            "unresolved_refs": list(self.unresolved_refs),
        }


def load_spec(spec_path: Path) -> dict[str, Any]:
    """Load an OpenAPI document from a JSON or YAML file."""
    with spec_path.open() as f:
        if spec_path.suffix == ".json":
            return json.load(f)
        return yaml.safe_load(f) or {}


class OpenAPIRuleExtractor:
    """Extract redaction rules from ``readOnly`` properties of request bodies.

    Nested object properties become multi-segment paths
    (``c8y_IsBinary.length``). Arrays are not descended, and a ``$ref`` cycle
    stops descent at the first repeated schema.
    """

    def __init__(self, validate_spec: bool = True) -> None:
        """Initialize extractor.

        Args:
            validate_spec: Validate the document with openapi-spec-validator first
        """
        self.validate_spec = validate_spec
        self.stats = ExtractionStats()
        self._spec: dict[str, Any] = {}

    def extract(self, spec: dict[str, Any]) -> dict[str, RedactionRuleSet]:
        """Extract rule sets keyed by operationId.

        Args:
            spec: OpenAPI specification dictionary

        Returns:
            Rule sets for every write operation with at least one read-only path

        Raises:
            ConfigurationError: If validation is enabled and the document is invalid
        """
        self.stats = ExtractionStats()
        self._spec = spec

        if self.validate_spec:
            try:
                validate(spec)
            except OpenAPIValidationError as e:
                raise ConfigurationError(f"Invalid OpenAPI document: {e.message}") from e
            except OpenAPISpecValidatorError as e:
                raise ConfigurationError(f"Unsupported OpenAPI document: {e}") from e

        result: dict[str, RedactionRuleSet] = {}
        for path, path_item in (spec.get("paths") or {}).items():
            if not isinstance(path_item, dict):
                continue
            for method in WRITE_METHODS:
                operation = path_item.get(method)
                if not isinstance(operation, dict):
                    continue

                self.stats.operations_scanned += 1
                operation_id = operation.get("operationId") or f"{method.upper()} {path}"
                schema = self._request_schema(operation)
                if schema is None:
                    continue

                paths = self._collect(schema, (), frozenset())
                if not paths:
                    continue

                result[operation_id] = RedactionRuleSet(paths)
                self.stats.operations_with_rules += 1
                self.stats.readonly_paths += len(result[operation_id])

        return result

    def _request_schema(self, operation: dict[str, Any]) -> dict[str, Any] | None:
        """Find the JSON schema of an operation's request body."""
        body, _ = self._resolve(operation.get("requestBody"), frozenset())
        if not body:
            return None

        for media_type, content in (body.get("content") or {}).items():
            if media_type.split(";")[0].strip().endswith("json") and isinstance(content, dict):
                return content.get("schema")
        return None

    def _resolve(
        self,
        node: Any,
        seen: frozenset[str],
    ) -> tuple[dict[str, Any] | None, frozenset[str]]:
        """Follow local ``$ref`` pointers, returning the target and the refs visited."""
        while isinstance(node, dict) and "$ref" in node:
            ref = node["$ref"]
            if ref in seen:
                return None, seen
            seen = seen | {ref}
            node = self._lookup(ref)
        if not isinstance(node, dict):
            return None, seen
        return node, seen

    def _lookup(self, ref: str) -> Any:
        if not ref.startswith("#/"):
            self.stats.unresolved_refs.append(ref)
            return None

        node: Any = self._spec
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(node, dict) or part not in node:
                self.stats.unresolved_refs.append(ref)
                logger.warning("Unresolved $ref %s", ref)
                return None
            node = node[part]
        return node

    def _properties(
        self,
        schema: dict[str, Any],
        seen: frozenset[str],
    ) -> dict[str, tuple[Any, frozenset[str]]]:
        """Merge the properties of a schema and its ``allOf`` members."""
        merged: dict[str, tuple[Any, frozenset[str]]] = {}
        for member in schema.get("allOf") or []:
            resolved, member_seen = self._resolve(member, seen)
            if resolved is not None:
                merged.update(self._properties(resolved, member_seen))
        for name, prop in (schema.get("properties") or {}).items():
            merged[name] = (prop, seen)
        return merged

    def _collect(
        self,
        schema: Any,
        prefix: tuple[str, ...],
        seen: frozenset[str],
    ) -> list[tuple[str, ...]]:
        resolved, seen = self._resolve(schema, seen)
        if resolved is None or resolved.get("type") == "array":
            return []

        paths: list[tuple[str, ...]] = []
        for name, (prop, prop_seen) in self._properties(resolved, seen).items():
            target, target_seen = self._resolve(prop, prop_seen)
            if target is None:
                continue
            if target.get("readOnly") is True or (
                isinstance(prop, dict) and prop.get("readOnly") is True
            ):
                paths.append((*prefix, name))
                continue
            if target.get("properties") or target.get("allOf"):
                paths.extend(self._collect(target, (*prefix, name), target_seen))
        return paths

    def get_stats(self) -> dict[str, Any]:
        """Get extraction statistics.

        Returns:
            Dictionary with extraction metrics
        """
        return self.stats.to_dict()
