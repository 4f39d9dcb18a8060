"""Conversion between typed request/response values and payload trees.

Models are plain dataclasses. Each field maps to a JSON property named by
``metadata["json"]`` or, when absent, by the camelCase form of the field
name. ``None`` fields are omitted on output. A ``custom_fragments`` mapping
carries arbitrary fragments (``c8y_Position``, ``c8y_IsDevice``...) that are
written after the declared fields and collected from unknown keys on input.
"""

import dataclasses
import enum
import logging
import types
import typing
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, TypeVar

from .errors import InvalidPayloadError

logger = logging.getLogger(__name__)

CUSTOM_FRAGMENTS = "custom_fragments"

T = TypeVar("T")


def json_field(name: str | None = None, **kwargs: Any) -> Any:
    """Declare an optional model field, optionally with an explicit JSON name."""
    metadata = dict(kwargs.pop("metadata", {}))
    if name is not None:
        metadata["json"] = name
    kwargs.setdefault("default", None)
    return dataclasses.field(metadata=metadata, **kwargs)


def camel_case(name: str) -> str:
    """Convert a snake_case attribute name into its camelCase JSON name."""
    head, *tail = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in tail)


def wire_name(model_field: dataclasses.Field) -> str:
    """Return the JSON property name for a dataclass field."""
    return model_field.metadata.get("json") or camel_case(model_field.name)


def wire_fields(model: type) -> dict[str, dataclasses.Field]:
    """Map JSON property names to the declared fields of a model class."""
    return {
        wire_name(f): f for f in dataclasses.fields(model) if f.name != CUSTOM_FRAGMENTS
    }


def encode(value: Any) -> Any:
    """Encode a typed value into a payload tree.

    Args:
        value: Dataclass instance, mapping, sequence, enum, date or scalar

    Returns:
        Payload tree of dicts, lists and scalars

    Raises:
        InvalidPayloadError: On reference cycles, unsupported values or
            nesting deeper than the interpreter recursion limit
    """
    try:
        return _encode(value, set())
    except RecursionError:
        raise InvalidPayloadError("Value is nested too deeply to encode") from None


def _encode(value: Any, active: set[int]) -> Any:
    if isinstance(value, enum.Enum):
        return _encode(value.value, active)
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()

    marker = id(value)
    if marker in active:
        raise InvalidPayloadError(f"Cannot encode cyclic value of type {type(value).__name__}")
    active.add(marker)
    try:
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return _encode_model(value, active)
        if isinstance(value, Mapping):
            result = {}
            for key, item in value.items():
                if not isinstance(key, str):
                    raise InvalidPayloadError(f"Object keys must be strings, got {key!r}")
                result[key] = _encode(item, active)
            return result
        if isinstance(value, (list, tuple)):
            return [_encode(item, active) for item in value]
    finally:
        active.discard(marker)

    raise InvalidPayloadError(f"Cannot encode value of type {type(value).__name__}")


def _encode_model(instance: Any, active: set[int]) -> dict[str, Any]:
    tree: dict[str, Any] = {}
    fragments: Mapping[str, Any] | None = None

    for model_field in dataclasses.fields(instance):
        value = getattr(instance, model_field.name)
        if model_field.name == CUSTOM_FRAGMENTS:
            fragments = value
            continue
        if value is None:
            continue
        tree[wire_name(model_field)] = _encode(value, active)

    if fragments:
        for key, item in fragments.items():
            if key in tree:
                logger.warning("Custom fragment %s shadows a declared property", key)
            tree[key] = _encode(item, active)

    return tree


def decode(tree: Any, model: type[T]) -> T:
    """Build a model instance from a payload tree.

    Known properties are decoded into their declared types; unknown keys go
    into ``custom_fragments`` when the model declares it and are otherwise
    dropped.

    Raises:
        InvalidPayloadError: If tree is not an object
    """
    if not isinstance(tree, dict):
        raise InvalidPayloadError(
            f"Expected an object for {model.__name__}, got {type(tree).__name__}",
        )

    hints = typing.get_type_hints(model)
    known = wire_fields(model)
    has_fragments = any(f.name == CUSTOM_FRAGMENTS for f in dataclasses.fields(model))

    kwargs: dict[str, Any] = {}
    fragments: dict[str, Any] = {}
    for key, value in tree.items():
        model_field = known.get(key)
        if model_field is None:
            fragments[key] = value
            continue
        kwargs[model_field.name] = _decode_value(value, hints.get(model_field.name, Any))

    if has_fragments:
        kwargs[CUSTOM_FRAGMENTS] = fragments
    elif fragments:
        logger.debug("Dropping unknown properties for %s: %s", model.__name__, sorted(fragments))

    return model(**kwargs)


def _decode_value(value: Any, hint: Any) -> Any:
    if value is None:
        return None

    origin = typing.get_origin(hint)
    if origin in (typing.Union, types.UnionType):
        candidates = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(candidates) == 1:
            return _decode_value(value, candidates[0])
        return value

    if origin is list and isinstance(value, list):
        (item_hint,) = typing.get_args(hint) or (Any,)
        return [_decode_value(item, item_hint) for item in value]

    if origin is None and isinstance(hint, type):
        if dataclasses.is_dataclass(hint) and isinstance(value, dict):
            return decode(value, hint)
        if issubclass(hint, enum.Enum):
            try:
                return hint(value)
            except ValueError:
                logger.warning("Unknown %s value %r", hint.__name__, value)
                return value

    return value
