"""
Request and response models

Request descriptors are transient: built per call, consumed once by the
composer. Expand entries form a tree owned by their parent options.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Union

# camelCase names accepted by ``from_dict`` for JavaScript-shaped input
_ALIASES: Dict[str, str] = {
    "navigationProperty": "navigation_property",
    "navigationPropertyKey": "navigation_property_key",
    "metadataAttributeType": "metadata_attribute_type",
    "orderBy": "order_by",
    "savedQuery": "saved_query",
    "userQuery": "user_query",
    "fetchXml": "fetch_xml",
    "duplicateDetection": "duplicate_detection",
    "noCache": "no_cache",
    "mergeLabels": "merge_labels",
    "contentId": "content_id",
    "returnRepresentation": "return_representation",
    "includeAnnotations": "include_annotations",
    "maxPageSize": "max_page_size",
    "trackChanges": "track_changes",
    "async": "is_async",
    "_isUnboundRequest": "is_unbound_request",
    "_additionalUrl": "additional_url",
}


def _normalize_keys(cls: type, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    result: Dict[str, Any] = {}
    for key, value in data.items():
        name = _ALIASES.get(key, key)
        if name not in names:
            raise TypeError(f"{cls.__name__} got an unexpected field '{key}'")
        result[name] = value
    return result


def _expand_from_raw(expand: Any) -> Any:
    if isinstance(expand, list):
        return [Expand.from_dict(item) if isinstance(item, dict) else item for item in expand]
    return expand


@dataclass
class QueryOptions:
    """Query shaping fields shared by requests and expand entries"""

    select: Optional[List[str]] = None
    filter: Optional[str] = None
    order_by: Optional[List[str]] = None
    top: Optional[int] = None
    count: Optional[bool] = None
    apply: Optional[str] = None
    saved_query: Optional[str] = None
    user_query: Optional[str] = None
    expand: Optional[Union[str, List["Expand"]]] = None


@dataclass
class Expand(QueryOptions):
    """An ``$expand`` entry: a navigation property and its own query options"""

    property: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Expand":
        values = _normalize_keys(cls, data)
        if "expand" in values:
            values["expand"] = _expand_from_raw(values["expand"])
        return cls(**values)


@dataclass
class Request(QueryOptions):
    """Declarative description of a single Web API call"""

    collection: Optional[str] = None
    key: Optional[str] = None
    id: Optional[str] = None
    navigation_property: Optional[str] = None
    navigation_property_key: Optional[str] = None
    metadata_attribute_type: Optional[str] = None
    fetch_xml: Optional[str] = None

    ifmatch: Optional[str] = None
    ifnonematch: Optional[str] = None
    impersonate: Optional[str] = None
    token: Optional[str] = None
    duplicate_detection: Optional[bool] = None
    no_cache: Optional[bool] = None
    merge_labels: Optional[bool] = None
    content_id: Optional[str] = None
    return_representation: Optional[bool] = None
    include_annotations: Optional[str] = None
    max_page_size: Optional[int] = None
    track_changes: Optional[bool] = None
    prefer: Optional[Union[str, List[str]]] = None

    entity: Optional[Dict[str, Any]] = None
    data: Optional[Any] = None
    url: Optional[str] = None
    is_async: Optional[bool] = None
    timeout: Optional[float] = None

    # routing flags set by operation builders
    is_unbound_request: bool = False
    additional_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Request":
        """
        Build a request from a dict using either snake_case or camelCase keys.

        Raises:
            TypeError: If a key is not a known request field
        """
        values = _normalize_keys(cls, data)
        if "expand" in values:
            values["expand"] = _expand_from_raw(values["expand"])
        if isinstance(values.get("select"), tuple):
            values["select"] = list(values["select"])
        return cls(**values)

    @property
    def payload(self) -> Any:
        return self.data or self.entity


@dataclass(frozen=True)
class ConvertedRequest:
    """Composed path (with query string), headers and async flag"""

    path: str
    headers: Dict[str, str]
    is_async: bool = True


@dataclass
class BatchRequestPart:
    """One operation inside a ``$batch`` request"""

    method: str
    request: Request

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchRequestPart":
        request = data["request"]
        if isinstance(request, dict):
            request = Request.from_dict(request)
        return cls(method=data["method"].upper(), request=request)


@dataclass(frozen=True)
class BatchRequest:
    """Encoded ``$batch`` headers and multipart body"""

    headers: Dict[str, str]
    body: str


@dataclass
class ResponseParams:
    """Per-request hints for the response parser"""

    value_if_empty: Any = None
    to_count: bool = False
    is_ref: bool = False
    has_value_if_empty: bool = False

    @classmethod
    def empty_value(cls, value: Any) -> "ResponseParams":
        return cls(value_if_empty=value, has_value_if_empty=True)


@dataclass
class RequestOptions:
    """Everything the transport needs to perform one HTTP call"""

    method: str
    uri: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    is_async: bool = True
    timeout: Optional[float] = None
    response_params: List[ResponseParams] = field(default_factory=list)


@dataclass
class Response:
    """Parsed transport result"""

    data: Any
    headers: Dict[str, str]
    status: int
