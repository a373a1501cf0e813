"""
Response header helpers
"""

from typing import Dict, Mapping, Optional


def parse_response_headers(raw: str) -> Dict[str, str]:
    """Parse a raw ``Name: value`` header block (CRLF or LF separated)"""
    headers: Dict[str, str] = {}
    if not raw:
        return headers

    for line in raw.splitlines():
        name, separator, value = line.partition(":")
        if separator and name.strip():
            headers[name.strip()] = value.strip()
    return headers


def get_header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    """Case-insensitive header lookup"""
    if not headers:
        return None
    if name in headers:
        return headers[name]
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None
