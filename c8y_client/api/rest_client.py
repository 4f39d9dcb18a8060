"""Async REST client for the declared platform operations.

Requests are prepared from the endpoint table: path placeholders are filled,
query parameters rendered, content negotiation, authentication and
processing-mode headers added, and request bodies serialized with their
read-only properties removed. Every call returns an :class:`ApiResult`;
HTTP error statuses and transport failures are reported in the result, not
raised.
"""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from ..utils.client_config import ClientConfig
from ..utils.errors import ConfigurationError, InvalidPayloadError
from ..utils.field_redactor import FieldRedactor, RedactionRuleSet
from ..utils.payload_encoder import decode
from ..utils.query_parameters import encode_query_params
from ..utils.readonly_properties import ReadOnlyProperties
from .converters import RequestBodyConverter, ResponseBodyConverter
from .endpoints import PROCESSING_MODE_HEADER, PROCESSING_MODES, Endpoint, get_endpoint
from .models import ApiError

logger = logging.getLogger(__name__)


@dataclass
class ApiResult:
    """Result of a single API call."""

    operation: str
    status_code: int
    success: bool
    body: Any = None
    error: str | None = None
    error_body: ApiError | None = None
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "operation": self.operation,
            "status_code": self.status_code,
            "success": self.success,
            "error": self.error,
            "error_body": (
                {
                    "error": self.error_body.error,
                    "message": self.error_body.message,
                    "info": self.error_body.info,
                }
                if self.error_body
                else None
            ),
            "duration_ms": round(self.duration_ms, 2),
        }


class CumulocityClient:
    """Send declared operations to a tenant.

    Usage::

        async with CumulocityClient(ClientConfig()) as c8y:
            result = await c8y.call("createAlarm", alarm)
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        readonly: ReadOnlyProperties | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize client.

        Args:
            config: Connection settings (loaded from config/client.yaml if omitted)
            readonly: Read-only property registry (built-in table plus overrides)
            http_client: Existing httpx client; when omitted one is created and
                        closed with this client
        """
        self.config = config if config is not None else ClientConfig()
        if readonly is None:
            readonly = ReadOnlyProperties(self.config.readonly_properties_path)
        self.readonly = readonly
        self.redactor = FieldRedactor()

        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient(
            timeout=self.config.timeout,
            verify=self.config.verify_ssl,
            follow_redirects=True,
        )

    async def __aenter__(self) -> CumulocityClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    def _get_auth_headers(self) -> dict[str, str]:
        """Get authentication headers (bearer token wins over basic auth)."""
        if self.config.token:
            return {"Authorization": f"Bearer {self.config.token}"}

        if self.config.username:
            user = self.config.username
            if self.config.tenant:
                user = f"{self.config.tenant}/{user}"
            credentials = base64.b64encode(f"{user}:{self.config.password}".encode()).decode()
            return {"Authorization": f"Basic {credentials}"}

        return {}

    def rules_for(self, endpoint: Endpoint) -> RedactionRuleSet:
        """Read-only rules of an endpoint; operations without a declaration strip nothing."""
        return self.readonly.get(endpoint.name, RedactionRuleSet())

    def converter_for(self, endpoint: Endpoint) -> RequestBodyConverter:
        """Build the request body converter of an endpoint from the current registry."""
        return RequestBodyConverter(endpoint, self.rules_for(endpoint), self.redactor)

    def _processing_mode(self, endpoint: Endpoint, requested: str | None) -> str | None:
        if requested is not None and not endpoint.processing_mode:
            raise ConfigurationError(f"{endpoint.name} does not accept a processing mode")

        mode = requested or (self.config.processing_mode if endpoint.processing_mode else None)
        if mode is None:
            return None

        mode = str(mode).upper()
        if mode not in PROCESSING_MODES:
            raise ConfigurationError(
                f"Invalid processing mode {mode!r}; expected one of {', '.join(PROCESSING_MODES)}",
            )
        return mode

    def build_request(
        self,
        operation: str,
        body: Any = None,
        *,
        path_params: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        processing_mode: str | None = None,
    ) -> httpx.Request:
        """Prepare the HTTP request of an operation without sending it.

        Raises:
            ConfigurationError: On unknown operations, missing path parameters,
                unsupported query parameters or a missing/unexpected body
            InvalidPayloadError: If the body cannot be encoded
        """
        endpoint = get_endpoint(operation)
        query = dict(query or {})

        unknown = sorted(set(query) - set(endpoint.query))
        if unknown:
            raise ConfigurationError(
                f"{operation} does not accept query parameter(s): {', '.join(unknown)}",
            )

        headers = {"Accept": endpoint.accept, **self._get_auth_headers()}

        mode = self._processing_mode(endpoint, processing_mode)
        if mode:
            headers[PROCESSING_MODE_HEADER] = mode

        content: bytes | None = None
        if endpoint.has_body:
            if body is None:
                raise ConfigurationError(f"{operation} requires a request body")
            converter = self.converter_for(endpoint)
            content = converter.convert(body)
            headers["Content-Type"] = converter.content_type
        elif body is not None:
            raise ConfigurationError(f"{operation} does not take a request body")

        url = f"{self.config.base_url}{endpoint.format_path(**dict(path_params or {}))}"
        return httpx.Request(
            endpoint.method,
            url,
            params=encode_query_params(query),
            headers=headers,
            content=content,
        )

    async def call(
        self,
        operation: str,
        body: Any = None,
        *,
        path_params: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        processing_mode: str | None = None,
    ) -> ApiResult:
        """Send an operation and collect its result.

        Returns:
            ApiResult; transport errors give ``status_code == 0``
        """
        endpoint = get_endpoint(operation)
        request = self.build_request(
            operation,
            body,
            path_params=path_params,
            query=query,
            processing_mode=processing_mode,
        )

        start = time.monotonic()
        try:
            response = await self._http.send(request)
        except httpx.TimeoutException:
            logger.warning("%s %s timed out", request.method, request.url)
            return ApiResult(
                operation=operation,
                status_code=0,
                success=False,
                error="Request timed out",
                duration_ms=(time.monotonic() - start) * 1000,
            )
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", request.method, request.url, e)
            return ApiResult(
                operation=operation,
                status_code=0,
                success=False,
                error=str(e) or type(e).__name__,
                duration_ms=(time.monotonic() - start) * 1000,
            )

        return self._to_result(endpoint, response, (time.monotonic() - start) * 1000)

    def _to_result(
        self,
        endpoint: Endpoint,
        response: httpx.Response,
        duration_ms: float,
    ) -> ApiResult:
        success = 200 <= response.status_code < 300
        converter = ResponseBodyConverter(endpoint.response_model if success else None)
        try:
            body = converter.convert(response.content)
        except InvalidPayloadError:
            body = response.text

        if success:
            return ApiResult(
                operation=endpoint.name,
                status_code=response.status_code,
                success=True,
                body=body,
                duration_ms=duration_ms,
            )

        error_body = decode(body, ApiError) if isinstance(body, dict) else None
        detail = (error_body and (error_body.message or error_body.error)) or response.reason_phrase
        logger.info("%s returned HTTP %d", endpoint.name, response.status_code)
        return ApiResult(
            operation=endpoint.name,
            status_code=response.status_code,
            success=False,
            body=body,
            error=f"HTTP {response.status_code}: {detail}",
            error_body=error_body,
            duration_ms=duration_ms,
        )

    def get_stats(self) -> dict[str, Any]:
        """Get read-only redaction statistics of all requests prepared so far."""
        return self.redactor.get_stats()
