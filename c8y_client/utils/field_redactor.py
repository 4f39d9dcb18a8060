"""Read-only field redaction for outgoing request payloads.

The platform rejects (or silently ignores) server-assigned properties such as
``id``, ``self`` or ``creationTime`` on create and update requests. Every
operation declares the properties it owns as a list of field paths, and the
redactor removes them from the payload tree just before it is serialized.

A payload tree is the neutral in-memory form of a JSON document: ``dict``
objects with ``str`` keys, ``list`` arrays and scalars. Field paths only ever
descend through object keys; arrays are never traversed.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from .errors import ConfigurationError, InvalidPayloadError

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "."


@dataclass(frozen=True)
class FieldPath:
    """A non-empty chain of object keys addressing one field in a payload tree."""

    segments: tuple[str, ...]

    def __post_init__(self) -> None:
        segments = tuple(self.segments)
        if not segments:
            raise ConfigurationError("Field path must contain at least one segment")
        for segment in segments:
            if not isinstance(segment, str) or not segment:
                raise ConfigurationError(
                    f"Invalid segment {segment!r} in field path {segments!r}",
                )
        object.__setattr__(self, "segments", segments)

    @classmethod
    def parse(cls, value: "PathLike") -> "FieldPath":
        """Build a field path from a dotted string or a sequence of segments.

        Args:
            value: ``"c8y_IsBinary.length"``, ``["c8y_IsBinary", "length"]``
                or an existing FieldPath

        Returns:
            FieldPath instance

        Raises:
            ConfigurationError: If the path is empty or has an empty segment
        """
        if isinstance(value, FieldPath):
            return value
        if isinstance(value, str):
            return cls(tuple(value.split(PATH_SEPARATOR)))
        if isinstance(value, Sequence):
            return cls(tuple(value))
        raise ConfigurationError(f"Unsupported field path declaration: {value!r}")

    @property
    def parents(self) -> tuple[str, ...]:
        """Segments leading to the object that holds the field."""
        return self.segments[:-1]

    @property
    def name(self) -> str:
        """Key removed from the parent object."""
        return self.segments[-1]

    def is_prefix_of(self, other: "FieldPath") -> bool:
        """Check whether this path addresses an ancestor of (or the same field as) other."""
        return other.segments[: len(self.segments)] == self.segments

    def __str__(self) -> str:
        return PATH_SEPARATOR.join(self.segments)


PathLike = Union[str, Sequence[str], FieldPath]


class RedactionRuleSet:
    """Immutable collection of field paths owned by the server for one operation.

    Duplicate paths are collapsed; the declaration order of first occurrence is
    kept for display, but equality ignores order.
    """

    __slots__ = ("_paths",)

    def __init__(self, paths: Iterable[PathLike] | PathLike = ()) -> None:
        if isinstance(paths, (str, FieldPath)):
            paths = [paths]
        self._paths: tuple[FieldPath, ...] = tuple(
            dict.fromkeys(FieldPath.parse(path) for path in paths),
        )

    def __iter__(self) -> Iterator[FieldPath]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, value: object) -> bool:
        try:
            return FieldPath.parse(value) in self._paths  # type: ignore[arg-type]
        except ConfigurationError:
            return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RedactionRuleSet):
            return NotImplemented
        return frozenset(self._paths) == frozenset(other._paths)

    def __hash__(self) -> int:
        return hash(frozenset(self._paths))

    def __or__(self, other: "RedactionRuleSet") -> "RedactionRuleSet":
        return RedactionRuleSet([*self._paths, *other])

    def __repr__(self) -> str:
        return f"RedactionRuleSet({[str(path) for path in self._paths]!r})"

    def to_list(self) -> list[str]:
        """Dotted string form of every path, in declaration order."""
        return [str(path) for path in self._paths]


RulesLike = Union[RedactionRuleSet, Iterable[PathLike]]


def as_rule_set(rules: RulesLike | None) -> RedactionRuleSet:
    """Normalize any accepted rule declaration into a RedactionRuleSet."""
    if rules is None:
        return RedactionRuleSet()
    if isinstance(rules, RedactionRuleSet):
        return rules
    return RedactionRuleSet(rules)


def copy_tree(node: Any) -> Any:
    """Copy the containers of a payload tree, rejecting reference cycles.

    Shared subtrees that do not form a cycle are copied once per occurrence.

    Raises:
        InvalidPayloadError: If a container (transitively) contains itself or
            the tree is nested deeper than the interpreter recursion limit
    """
    try:
        return _copy(node, set())
    except RecursionError:
        raise InvalidPayloadError("Payload tree is nested too deeply") from None


def _copy(node: Any, active: set[int]) -> Any:
    if not isinstance(node, (dict, list)):
        return node

    marker = id(node)
    if marker in active:
        raise InvalidPayloadError("Payload tree contains a reference cycle")

    active.add(marker)
    try:
        if isinstance(node, dict):
            return {key: _copy(value, active) for key, value in node.items()}
        return [_copy(item, active) for item in node]
    finally:
        active.discard(marker)


def remove_path(tree: Any, path: FieldPath) -> bool:
    """Remove the field addressed by path from tree in place.

    Returns:
        True if a key was removed, False if the rule did not resolve
    """
    node = tree
    for segment in path.parents:
        if not isinstance(node, dict):
            return False
        node = node.get(segment)

    if not isinstance(node, dict) or path.name not in node:
        return False

    del node[path.name]
    return True


def redact(payload: Any, rules: RulesLike) -> Any:
    """Return a copy of payload without the fields named by rules.

    Args:
        payload: Payload tree about to be serialized
        rules: RedactionRuleSet, or paths accepted by it

    Returns:
        Redacted copy; the input is never mutated

    Raises:
        ConfigurationError: If a rule path is malformed
        InvalidPayloadError: If the payload contains a reference cycle
    """
    rule_set = as_rule_set(rules)
    tree = copy_tree(payload)
    for path in rule_set:
        remove_path(tree, path)
    return tree


def redact_each(items: Any, rules: RulesLike) -> Any:
    """Apply the same rules to every element of a top-level array.

    A non-array payload is redacted as a single object.
    """
    rule_set = as_rule_set(rules)
    tree = copy_tree(items)
    targets = tree if isinstance(tree, list) else [tree]
    for target in targets:
        for path in rule_set:
            remove_path(target, path)
    return tree


@dataclass
class RedactionStats:
    """Statistics from payload redaction."""

    payloads_processed: int = 0
    fields_removed: int = 0
    rules_skipped: int = 0
    fields_by_name: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "payloads_processed": self.payloads_processed,
            "fields_removed": self.fields_removed,
            "rules_skipped": self.rules_skipped,
            "fields_by_name": dict(self.fields_by_name),
        }


class FieldRedactor:
    """Redactor bound to a default rule set that keeps removal statistics.

    The module-level :func:`redact` is the stateless form; this class is used by
    the request body converters so a client can report what it stripped.
    """

    def __init__(self, rules: RulesLike | None = None) -> None:
        """Initialize redactor.

        Args:
            rules: Default rules applied when a call does not pass its own
        """
        self.rules = as_rule_set(rules)
        self.stats = RedactionStats()

    def redact(self, payload: Any, rules: RulesLike | None = None) -> Any:
        """Redact a single payload, falling back to the default rules."""
        rule_set = self.rules if rules is None else as_rule_set(rules)
        tree = copy_tree(payload)
        self._apply(tree, rule_set)
        return tree

    def redact_each(self, items: Any, rules: RulesLike | None = None) -> Any:
        """Redact every element of a top-level array independently."""
        rule_set = self.rules if rules is None else as_rule_set(rules)
        tree = copy_tree(items)
        for target in tree if isinstance(tree, list) else [tree]:
            self._apply(target, rule_set)
        return tree

    def _apply(self, tree: Any, rule_set: RedactionRuleSet) -> None:
        self.stats.payloads_processed += 1
        for path in rule_set:
            if remove_path(tree, path):
                self.stats.fields_removed += 1
                key = str(path)
                self.stats.fields_by_name[key] = self.stats.fields_by_name.get(key, 0) + 1
            else:
                self.stats.rules_skipped += 1
                logger.debug("Read-only path %s not present in payload", path)

    def get_stats(self) -> dict[str, Any]:
        """Get redaction statistics.

        Returns:
            Dictionary with redaction metrics
        """
        return self.stats.to_dict()

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        self.stats = RedactionStats()
