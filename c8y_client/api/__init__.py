"""HTTP-facing layer: models, endpoint table, body converters and client."""

from .converters import RequestBodyConverter, ResponseBodyConverter
from .endpoints import ENDPOINTS, Endpoint, body_models, get_endpoint
from .rest_client import ApiResult, CumulocityClient

__all__ = [
    "ENDPOINTS",
    "ApiResult",
    "CumulocityClient",
    "Endpoint",
    "RequestBodyConverter",
    "ResponseBodyConverter",
    "body_models",
    "get_endpoint",
]
