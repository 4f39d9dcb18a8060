"""Request and response body converters.

A request body goes through three steps before it reaches the wire: the
typed value is encoded into a payload tree, the operation's read-only
properties are stripped, and the tree is serialized to UTF-8 JSON.
"""

import json
import logging
from typing import Any

from ..utils.errors import InvalidPayloadError
from ..utils.field_redactor import FieldRedactor, RedactionRuleSet, RulesLike, as_rule_set
from ..utils.payload_encoder import decode, encode
from .endpoints import Endpoint

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/json; charset=UTF-8"


class RequestBodyConverter:
    """Serialize request bodies for one endpoint."""

    def __init__(
        self,
        endpoint: Endpoint,
        rules: RulesLike | None = None,
        redactor: FieldRedactor | None = None,
    ) -> None:
        """Initialize converter.

        Args:
            endpoint: Operation the bodies are sent to
            rules: Read-only paths of the operation
            redactor: Shared redactor collecting statistics (created if omitted)
        """
        self.endpoint = endpoint
        self.rules: RedactionRuleSet = as_rule_set(rules)
        self.redactor = redactor or FieldRedactor()

    @property
    def content_type(self) -> str:
        return self.endpoint.content_type or DEFAULT_CONTENT_TYPE

    def to_tree(self, value: Any) -> Any:
        """Encode and redact a value without serializing it."""
        tree = encode(value)
        if self.endpoint.bulk:
            if not isinstance(tree, list):
                raise InvalidPayloadError(
                    f"{self.endpoint.name} expects a list body, got {type(tree).__name__}",
                )
            return self.redactor.redact_each(tree, self.rules)
        return self.redactor.redact(tree, self.rules)

    def convert(self, value: Any) -> bytes:
        """Serialize a value into the request body bytes."""
        tree = self.to_tree(value)
        logger.debug(
            "Serialized %s body with %d read-only rule(s)",
            self.endpoint.name,
            len(self.rules),
        )
        return json.dumps(tree, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


class ResponseBodyConverter:
    """Parse response bodies, optionally into a model."""

    def __init__(self, model: type | None = None) -> None:
        self.model = model

    def convert(self, content: bytes | str | None) -> Any:
        """Parse a response body.

        Returns:
            None for an empty body, the model instance when a model is set and
            the body is an object, otherwise the payload tree

        Raises:
            InvalidPayloadError: If the body is not valid JSON
        """
        if not content:
            return None
        try:
            tree = json.loads(content)
        except json.JSONDecodeError as e:
            raise InvalidPayloadError(f"Response body is not valid JSON: {e}") from e

        if self.model is not None and isinstance(tree, dict):
            return decode(tree, self.model)
        return tree
