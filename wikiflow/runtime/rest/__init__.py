"""REST runtime: HTTP session, API transport, admission gate and executor."""

from .admission import AdmissionGate
from .executor import RequestExecutor
from .http_client import HTTPClient, HTTPResponse
from .transport import ApiTransport, build_multipart, classify_api_error

__all__ = [
    "AdmissionGate",
    "ApiTransport",
    "HTTPClient",
    "HTTPResponse",
    "RequestExecutor",
    "build_multipart",
    "classify_api_error",
]
