"""
Response module

Parsing of single and multipart Web API responses.
"""

from .headers import get_header, parse_response_headers
from .parser import (
    ResponseKind,
    find_boundary,
    load_json,
    parse_batch_response,
    parse_data,
    parse_response,
    response_kind,
)

__all__ = [
    "get_header",
    "parse_response_headers",
    "ResponseKind",
    "find_boundary",
    "load_json",
    "parse_batch_response",
    "parse_data",
    "parse_response",
    "response_kind",
]
