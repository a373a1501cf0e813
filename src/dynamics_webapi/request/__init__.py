"""
Request module

Composition of URLs and headers, payload serialization and batch encoding.
"""

from .composer import compose, compose_url, encode_uri_component, strip_guid_braces
from .headers import PreferOptions, compose_headers, compose_prefer_header, set_standard_headers
from .serializer import stringify_data
from .batch import convert_to_batch

__all__ = [
    "compose",
    "compose_url",
    "encode_uri_component",
    "strip_guid_braces",
    "PreferOptions",
    "compose_headers",
    "compose_prefer_header",
    "set_standard_headers",
    "stringify_data",
    "convert_to_batch",
]
