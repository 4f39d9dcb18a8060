"""Query string helpers for the platform's REST API.

Several filters (``severity``, ``status``, ``ids``...) take multiple values
joined with commas rather than repeated parameters.
"""

import enum
from collections.abc import Iterable, Mapping
from typing import Any


class SeparatedQueryParameter:
    """Multi-valued query parameter rendered as a comma separated list.

    ``None`` elements are dropped.

    Example:
        >>> str(SeparatedQueryParameter("MAJOR", None, "CRITICAL"))
        'MAJOR,CRITICAL'
    """

    separator = ","

    def __init__(self, *elements: Any) -> None:
        self.elements = list(elements)

    @classmethod
    def of(cls, values: Iterable[Any]) -> "SeparatedQueryParameter":
        """Build from an existing iterable."""
        return cls(*values)

    def __str__(self) -> str:
        return self.separator.join(
            _render(element) for element in self.elements if element is not None
        )

    def __repr__(self) -> str:
        return f"SeparatedQueryParameter({', '.join(repr(e) for e in self.elements)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SeparatedQueryParameter):
            return NotImplemented
        return self.elements == other.elements

    def __bool__(self) -> bool:
        return any(element is not None for element in self.elements)


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, enum.Enum):
        return _render(value.value)
    return str(value)


def encode_query_params(params: Mapping[str, Any]) -> list[tuple[str, str]]:
    """Render query parameters in the platform's conventions.

    Args:
        params: Parameter name to value; ``None`` values are omitted

    Returns:
        List of (name, value) pairs; plain lists become repeated parameters
    """
    pairs: list[tuple[str, str]] = []
    for name, value in params.items():
        if value is None:
            continue
        if isinstance(value, SeparatedQueryParameter):
            if value:
                pairs.append((name, str(value)))
        elif isinstance(value, (list, tuple)):
            pairs.extend((name, _render(item)) for item in value if item is not None)
        else:
            pairs.append((name, _render(value)))
    return pairs
