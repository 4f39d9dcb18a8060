"""Per-operation read-only property registry.

Maps each API operation (``createAlarm``, ``updateManagedObject``...) to the
field paths the server assigns and that must be stripped from the request
body. The table is resolved once, at load time, from built-in defaults and
optional overrides in ``config/readonly_properties.yaml``::

    operations:
      createAlarm:
        - id
        - self
      uploadBinary:
        - c8y_IsBinary.length
"""

import dataclasses
import logging
import types
import typing
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError
from .field_redactor import FieldPath, RedactionRuleSet
from .payload_encoder import wire_fields

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = (
    Path(__file__).parent.parent.parent / "config" / "readonly_properties.yaml"
)

_ALARM_BASE = ["firstOccurrenceTime", "lastUpdated", "creationTime", "count", "self", "id"]
_MANAGED_OBJECT = [
    "owner",
    "additionParents",
    "lastUpdated",
    "childDevices",
    "childAssets",
    "creationTime",
    "childAdditions",
    "self",
    "assetParents",
    "deviceParents",
    "id",
]
_OPERATION_BASE = ["creationTime", "self", "bulkOperationId", "failureReason", "id"]

BUILTIN_READONLY_PROPERTIES: dict[str, list[str]] = {
    "createAlarm": _ALARM_BASE,
    "updateAlarm": [*_ALARM_BASE, "source", "time", "type"],
    "updateAlarms": [*_ALARM_BASE, "severity", "source", "text", "time", "type"],
    "createEvent": ["lastUpdated", "creationTime", "self", "id"],
    "updateEvent": ["lastUpdated", "creationTime", "self", "id", "source", "time", "type"],
    "createMeasurement": ["self", "id"],
    "createMeasurements": ["next", "prev", "self", "statistics"],
    "createManagedObject": _MANAGED_OBJECT,
    "updateManagedObject": _MANAGED_OBJECT,
    "createOperation": [*_OPERATION_BASE, "status"],
    "updateOperation": [*_OPERATION_BASE, "deviceId"],
    "createExternalId": ["managedObject", "self"],
}


@dataclass(frozen=True)
class RuleFinding:
    """A declared read-only path that does not resolve against its body model."""

    operation: str
    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.operation}: {self.path} ({self.reason})"


class ReadOnlyProperties(Mapping[str, RedactionRuleSet]):
    """Registry of read-only property rule sets keyed by operation name."""

    def __init__(
        self,
        config_path: Path | None = None,
        include_builtin: bool = True,
    ) -> None:
        """Initialize registry.

        Args:
            config_path: Path to readonly_properties.yaml.
                        Defaults to config/readonly_properties.yaml.
            include_builtin: Start from the built-in table before applying the file

        Raises:
            ConfigurationError: If the file or one of its paths is malformed
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._rules: dict[str, RedactionRuleSet] = {}

        if include_builtin:
            for operation, paths in BUILTIN_READONLY_PROPERTIES.items():
                self.register(operation, paths)

        self._load_config()

    def _load_config(self) -> None:
        """Load overrides from YAML config."""
        if not self.config_path.exists():
            logger.debug("No read-only property overrides at %s", self.config_path)
            return

        try:
            with self.config_path.open() as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigurationError(f"Expected a mapping in {self.config_path}")

        operations = config.get("operations") or {}
        if not isinstance(operations, dict):
            raise ConfigurationError(f"'operations' must be a mapping in {self.config_path}")

        for operation, paths in operations.items():
            if not isinstance(paths, list):
                raise ConfigurationError(
                    f"Read-only properties for {operation} must be a list, got {paths!r}",
                )
            self.register(str(operation), paths)

        logger.info(
            "Loaded %d read-only property declarations from %s",
            len(operations),
            self.config_path,
        )

    def register(self, operation: str, paths: Any) -> RedactionRuleSet:
        """Declare (or replace) the read-only paths of an operation."""
        if not operation:
            raise ConfigurationError("Operation name must not be empty")
        rules = paths if isinstance(paths, RedactionRuleSet) else RedactionRuleSet(paths)
        self._rules[operation] = rules
        return rules

    def rules_for(self, operation: str) -> RedactionRuleSet:
        """Get the rule set of an operation.

        Raises:
            ConfigurationError: If the operation has no declaration
        """
        try:
            return self._rules[operation]
        except KeyError:
            raise ConfigurationError(f"Unknown operation: {operation}") from None

    def __getitem__(self, operation: str) -> RedactionRuleSet:
        return self._rules[operation]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def audit(self, schemas: Mapping[str, type]) -> list[RuleFinding]:
        """Check every declared path against the body model of its operation.

        Catches typos in the static declarations: a path that names no declared
        field of the model would silently never remove anything.

        Args:
            schemas: Operation name to request body model (dataclass)

        Returns:
            Findings for paths that do not resolve; empty when all do
        """
        findings: list[RuleFinding] = []
        for operation, rules in self._rules.items():
            model = schemas.get(operation)
            if model is None:
                continue
            for path in rules:
                reason = _unresolved_reason(model, path)
                if reason:
                    findings.append(RuleFinding(operation, str(path), reason))
        return findings


def _unwrap_optional(hint: Any) -> Any:
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        candidates = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(candidates) == 1:
            return candidates[0]
    return hint


def _unresolved_reason(model: type, path: FieldPath) -> str | None:
    current: Any = model
    for depth, segment in enumerate(path.segments):
        if not (isinstance(current, type) and dataclasses.is_dataclass(current)):
            if typing.get_origin(current) is dict or current is dict:
                return None
            parent = ".".join(path.segments[:depth])
            return f"'{parent}' is not an object"

        fields = wire_fields(current)
        if segment not in fields:
            return f"'{segment}' is not a property of {current.__name__}"

        hints = typing.get_type_hints(current)
        current = _unwrap_optional(hints.get(fields[segment].name, Any))
    return None
