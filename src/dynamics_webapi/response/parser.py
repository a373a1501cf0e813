"""
Response parsing

Turns raw Web API responses back into Python values. Multipart ``$batch``
responses are split into parts (change-sets recursively) and each part is
parsed like a single response.
"""

import json
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from ..errors import ParseError, TransportError
from ..models import ResponseParams
from .headers import get_header

logger = structlog.get_logger(__name__)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d*))?Z$")
_ENTITY_ID_GUID = re.compile(r"([0-9A-F]{8}-?(?:[0-9A-F]{4}-?){3}[0-9A-F]{12})\)$", re.IGNORECASE)
_REFERENCE = re.compile(r"/(\w+)\(([0-9A-F]{8}-?(?:[0-9A-F]{4}-?){3}[0-9A-F]{12})", re.IGNORECASE)
_BOUNDARY = re.compile(r"boundary=\"?([^\";\s]+)\"?", re.IGNORECASE)
_HTTP_STATUS = re.compile(r"^HTTP/?\s*[\d.]*\s+(\d{3})[ \t]*([^\r\n]*)\r?$", re.MULTILINE)
_ENTITY_ID_HEADER = re.compile(r"^OData-EntityId:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
_PLAIN_TEXT = re.compile(r"^Content-Type:\s*text/plain", re.IGNORECASE | re.MULTILINE)
_TRAILING_WORD = re.compile(r"\w+$")

_FORMATTED_ANNOTATIONS = {
    "OData.Community.Display.V1.FormattedValue": "_Formatted",
    "Microsoft.Dynamics.CRM.associatednavigationproperty": "_NavigationProperty",
    "Microsoft.Dynamics.CRM.lookuplogicalname": "_LogicalName",
}

_ODATA_ANNOTATIONS = {
    "odata.context": "oDataContext",
    "odata.count": "oDataCount",
    "odata.nextLink": "oDataNextLink",
    "odata.deltaLink": "oDataDeltaLink",
}


class ResponseKind(str, Enum):
    """Shape of a parsed response"""

    EMPTY = "empty"
    VALUE = "value"
    COUNT = "count"
    COLLECTION = "collection"
    ENTITY = "entity"
    BATCH = "batch"


def _revive_date(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    match = _ISO_DATE.match(value)
    if not match:
        return value
    year, month, day, hour, minute, second, fraction = match.groups()
    microsecond = int((fraction or "").ljust(6, "0")[:6])
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), microsecond, tzinfo=timezone.utc
    )


def _date_hook(obj: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in obj.items():
        if isinstance(value, list):
            obj[key] = [_revive_date(item) for item in value]
        else:
            obj[key] = _revive_date(value)
    return obj


def load_json(text: str) -> Any:
    """
    Decode JSON, reviving ISO-8601 UTC timestamps as aware datetimes.

    Raises:
        ParseError: If the text is not valid JSON
    """
    try:
        return json.loads(text, object_hook=_date_hook)
    except ValueError as e:
        raise ParseError(f"Response is not valid JSON: {e}", raw=text) from e


def get_formatted_key_value(key: str, value: Any) -> Tuple[Optional[str], Any]:
    """Client alias for an annotated key, e.g. ``name@...FormattedValue`` -> ``name_Formatted``"""
    if "@" not in key:
        return None, value

    field, annotation = key.split("@", 1)
    if annotation in _ODATA_ANNOTATIONS:
        if annotation == "odata.count":
            value = int(value) if value is not None else 0
        return _ODATA_ANNOTATIONS[annotation], value
    if annotation in _FORMATTED_ANNOTATIONS:
        return field + _FORMATTED_ANNOTATIONS[annotation], value
    return None, value


def convert_to_reference_object(data: Dict[str, Any]) -> Dict[str, Any]:
    match = _REFERENCE.search(data["@odata.id"])
    if match is None:
        raise ParseError("Unrecognized @odata.id reference", raw=str(data["@odata.id"]))
    return {"id": match.group(2), "collection": match.group(1), "oDataContext": data.get("@odata.context")}


def parse_data(data: Any, params: Optional[ResponseParams] = None) -> Any:
    """
    Add client aliases to a decoded response object.

    Annotations get readable aliases (``oDataCount``, ``<field>_Formatted``,
    ...) and ``alias_x002e_field`` keys are grouped under ``alias``. Nested
    objects and arrays are processed recursively.
    """
    if params is not None:
        if params.is_ref and isinstance(data, dict) and data.get("@odata.id") is not None:
            return convert_to_reference_object(data)
        if params.to_count:
            count = data.get("@odata.count") if isinstance(data, dict) else None
            return get_formatted_key_value("@odata.count", count)[1] or 0

    if not isinstance(data, dict):
        return data

    for key in list(data.keys()):
        value = data[key]
        if isinstance(value, list):
            data[key] = [parse_data(item) for item in value]
        elif isinstance(value, dict):
            parse_data(value)

        alias, alias_value = get_formatted_key_value(key, value)
        if alias:
            data[alias] = alias_value

        if "_x002e_" in key:
            group_name, field = key.split("_x002e_", 1)
            group = data.get(group_name)
            if not isinstance(group, dict):
                group = data[group_name] = {"_dwaType": "alias"}
            group[field] = value

    return data


def _empty_result(params: Optional[ResponseParams], entity_id: Optional[str], location: Optional[str]) -> Any:
    if params is not None and params.has_value_if_empty:
        return params.value_if_empty
    if entity_id:
        match = _ENTITY_ID_GUID.search(entity_id.strip())
        if match:
            return match.group(1)
    if location:
        return {"location": location}
    return None


def _plain_value(text: str) -> Any:
    stripped = text.strip()
    if stripped.lstrip("-").isdigit():
        return int(stripped)
    return text


def _param_at(params: Optional[Sequence[ResponseParams]], index: int) -> Optional[ResponseParams]:
    if params and index < len(params):
        return params[index]
    return None


def find_boundary(text: str, headers: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Boundary of a multipart batch response, from Content-Type or the body"""
    content_type = get_header(headers, "Content-Type") or ""
    if content_type.lower().startswith("multipart/mixed"):
        match = _BOUNDARY.search(content_type)
        if match:
            return match.group(1)

    if "--batchresponse_" in text:
        first_line = text.lstrip().splitlines()[0].strip()
        if first_line.startswith("--"):
            return first_line[2:]
    return None


def parse_response(
    text: str,
    headers: Optional[Mapping[str, str]] = None,
    params: Optional[Sequence[ResponseParams]] = None,
    status: Optional[int] = None,
) -> Any:
    """
    Parse a raw response body.

    Args:
        text: Response body
        headers: Response headers
        params: Parse hints, one per request (several for a batch)
        status: HTTP status code if known

    Returns:
        Parsed value: dict, list (batch), int, str or None

    Raises:
        ParseError: If a JSON body cannot be decoded
    """
    first_params = _param_at(params, 0)

    if not text or status == 204:
        return _empty_result(first_params, get_header(headers, "OData-EntityId"), get_header(headers, "Location"))

    boundary = find_boundary(text, headers)
    if boundary:
        return parse_batch_response(text, boundary, params)

    content_type = get_header(headers, "Content-Type")
    if content_type is None:
        looks_like_json = text.lstrip().startswith(("{", "["))
    else:
        looks_like_json = content_type.lower().startswith("application/json")

    if looks_like_json:
        return parse_data(load_json(text), first_params)
    return _plain_value(text)


def _split_parts(text: str, boundary: str) -> List[str]:
    delimiter = f"--{boundary}"
    chunks = text.split(delimiter)
    # preamble before the first delimiter and the closing "--" epilogue
    parts = chunks[1:]
    if parts and parts[-1].lstrip().startswith("--"):
        parts = parts[:-1]
    return [part.strip("\r\n") for part in parts]


def _parse_batch_part(part: str, params: Optional[ResponseParams]) -> Any:
    status_match = _HTTP_STATUS.search(part)
    if status_match is None:
        raise ParseError("Batch response part has no HTTP status line", raw=part)
    status = int(status_match.group(1))
    status_text = status_match.group(2).strip()

    start = part.find("{")
    end = part.rfind("}")
    if start == -1 or end < start:
        if status >= 400:
            return TransportError.from_http_error(None, status=status, status_text=status_text)
        if _PLAIN_TEXT.search(part):
            match = _TRAILING_WORD.search(part.strip())
            return _plain_value(match.group(0)) if match else None
        entity_id = _ENTITY_ID_HEADER.search(part)
        return _empty_result(params, entity_id.group(1) if entity_id else None, None)

    parsed = parse_data(load_json(part[start:end + 1]), params)
    if status >= 400:
        error = parsed.get("error", parsed) if isinstance(parsed, dict) else parsed
        return TransportError.from_http_error(error, status=status, status_text=status_text)
    return parsed


def parse_batch_response(
    text: str,
    boundary: str,
    params: Optional[Sequence[ResponseParams]] = None,
    offset: int = 0,
) -> List[Any]:
    """
    Parse a multipart ``$batch`` response.

    Failed parts (status >= 400) appear as ``TransportError`` instances in
    the result list; they are not raised.

    Args:
        text: Multipart body
        boundary: Outer boundary (without leading dashes)
        params: Parse hints indexed by request position
        offset: Index of the first part in ``params``

    Returns:
        One parsed value per request, in response order
    """
    result: List[Any] = []

    for part in _split_parts(text, boundary):
        header_block = part.replace("\r\n", "\n").split("\n\n", 1)[0]
        content_type = None
        for line in header_block.split("\n"):
            if line.lower().startswith("content-type:"):
                content_type = line.split(":", 1)[1].strip()
                break

        if content_type and content_type.lower().startswith("multipart/mixed"):
            inner = _BOUNDARY.search(content_type)
            if inner is None:
                raise ParseError("Change-set response part has no boundary", raw=part)
            result.extend(parse_batch_response(part, inner.group(1), params, offset + len(result)))
            continue

        result.append(_parse_batch_part(part, _param_at(params, offset + len(result))))

    logger.debug("Batch response parsed", parts=len(result))
    return result


def response_kind(data: Any) -> ResponseKind:
    """Classify a parsed response by shape"""
    if data is None:
        return ResponseKind.EMPTY
    if isinstance(data, list):
        return ResponseKind.BATCH
    if isinstance(data, int) and not isinstance(data, bool):
        return ResponseKind.COUNT
    if not isinstance(data, dict):
        return ResponseKind.VALUE
    if isinstance(data.get("value"), list) or "@odata.nextLink" in data:
        return ResponseKind.COLLECTION

    fields = [key for key in data if not key.startswith(("@", "oData"))]
    if "@odata.count" in data and not fields:
        return ResponseKind.COUNT
    return ResponseKind.ENTITY
