"""Exceptions raised by the c8y client library."""


class C8yClientError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(C8yClientError, ValueError):
    """Raised for malformed static declarations (rule paths, operations, config files)."""


class InvalidPayloadError(C8yClientError, ValueError):
    """Raised when a request payload cannot be represented as a payload tree."""
