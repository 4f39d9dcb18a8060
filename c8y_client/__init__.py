"""Cumulocity REST client with read-only property redaction."""

from .utils import (
    ConfigurationError,
    FieldPath,
    FieldRedactor,
    InvalidPayloadError,
    RedactionRuleSet,
    redact,
    redact_each,
)

__version__ = "1.0.0"

__all__ = [
    "ConfigurationError",
    "FieldPath",
    "FieldRedactor",
    "InvalidPayloadError",
    "RedactionRuleSet",
    "__version__",
    "redact",
    "redact_each",
]
