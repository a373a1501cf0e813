"""
Payload serialization

Entity payloads are rewritten before encoding: ``@odata.bind`` and
``@odata.id`` references become canonical URIs and client-side annotation
fields are dropped. The JSON text escapes every character from U+007F up.
"""

import json
import re
from datetime import date, datetime
from typing import Any, Optional

from ..config import Settings
from ..utilities import EntityNameMap

_BRACED_GUID_REF = re.compile(r"\(\{([\w-]+)\}\)")
_ENTITY_REFERENCE = re.compile(r"([\w_]+)(\([\w-]+\))$")
_NON_ASCII = re.compile("[\u007f-\U0010ffff]")

# fields added by the response parser that must never be sent back
_ANNOTATION_PREFIXES = ("oData",)
_ANNOTATION_SUFFIXES = ("_Formatted", "_NavigationProperty", "_LogicalName")


def is_client_annotation(key: str) -> bool:
    return key.startswith(_ANNOTATION_PREFIXES) or key.endswith(_ANNOTATION_SUFFIXES)


def is_reference_key(key: str) -> bool:
    return key.endswith("@odata.bind") or key.endswith("@odata.id")


def rewrite_reference(
    key: str,
    value: str,
    config: Settings,
    entity_names: Optional[EntityNameMap] = None,
) -> str:
    """
    Canonicalize a reference value.

    ``name({guid})`` loses its braces; with ``use_entity_names`` the leading
    entity name becomes its collection name. Values not already absolute get
    a leading ``/`` (``@odata.bind``) or the full Web API URL (other keys).
    """
    value = _BRACED_GUID_REF.sub(r"(\1)", value)

    if config.use_entity_names and entity_names is not None:
        match = _ENTITY_REFERENCE.search(value)
        if match:
            collection_name = entity_names.find_collection_name(match.group(1))
            if collection_name is not None:
                value = value[:match.start()] + collection_name + match.group(2)

    if not (config.web_api_url and value.startswith(config.web_api_url)):
        if key.endswith("@odata.bind"):
            if not value.startswith("/"):
                value = "/" + value
        else:
            value = config.web_api_url + (value[1:] if value.startswith("/") else value)

    return value


def _prepare(value: Any, config: Settings, entity_names: Optional[EntityNameMap]) -> Any:
    if isinstance(value, dict):
        prepared = {}
        for key, item in value.items():
            if is_reference_key(key):
                if isinstance(item, str) and not item.startswith("$"):
                    prepared[key] = rewrite_reference(key, item, config, entity_names)
                else:
                    prepared[key] = _prepare(item, config, entity_names)
            elif is_client_annotation(key):
                continue
            else:
                prepared[key] = _prepare(item, config, entity_names)
        return prepared
    if isinstance(value, (list, tuple)):
        return [_prepare(item, config, entity_names) for item in value]
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _escape_char(match: "re.Match[str]") -> str:
    code = ord(match.group(0))
    if code <= 0xFFFF:
        return f"\\u{code:04x}"
    # surrogate pair
    code -= 0x10000
    return f"\\u{0xD800 + (code >> 10):04x}\\u{0xDC00 + (code & 0x3FF):04x}"


def stringify_data(data: Any, config: Settings, entity_names: Optional[EntityNameMap] = None) -> Optional[str]:
    """
    Serialize a payload to wire-safe JSON text.

    Args:
        data: Entity payload
        config: Client settings (``web_api_url``, ``use_entity_names``)
        entity_names: Lookup used when ``use_entity_names`` is enabled

    Returns:
        JSON text, or ``None`` when there is no payload
    """
    if data is None:
        return None

    prepared = _prepare(data, config, entity_names)
    text = json.dumps(prepared, separators=(",", ":"), ensure_ascii=False, default=_json_default)
    return _NON_ASCII.sub(_escape_char, text)
