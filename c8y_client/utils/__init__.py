"""Utility modules for request payload handling."""

from .client_config import ClientConfig
from .errors import C8yClientError, ConfigurationError, InvalidPayloadError
from .field_redactor import (
    FieldPath,
    FieldRedactor,
    RedactionRuleSet,
    RedactionStats,
    redact,
    redact_each,
)
from .openapi_rules import OpenAPIRuleExtractor
from .payload_encoder import decode, encode
from .query_parameters import SeparatedQueryParameter, encode_query_params
from .readonly_properties import ReadOnlyProperties, RuleFinding

__all__ = [
    "C8yClientError",
    "ClientConfig",
    "ConfigurationError",
    "FieldPath",
    "FieldRedactor",
    "InvalidPayloadError",
    "OpenAPIRuleExtractor",
    "ReadOnlyProperties",
    "RedactionRuleSet",
    "RedactionStats",
    "RuleFinding",
    "SeparatedQueryParameter",
    "decode",
    "encode",
    "encode_query_params",
    "redact",
    "redact_each",
]
