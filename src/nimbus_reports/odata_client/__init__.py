"""Nimbus OData client."""

from .client import ODataClient, PageResult, parse_page
from .query import ODataExpand, ODataQuery
from .retry import call_with_retry
from .transport import HttpTransport, Transport, TransportResponse

__all__ = [
    "ODataClient",
    "PageResult",
    "parse_page",
    "ODataExpand",
    "ODataQuery",
    "call_with_retry",
    "HttpTransport",
    "Transport",
    "TransportResponse",
]
