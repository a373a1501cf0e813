"""
URL composition

Turns a request descriptor into a Web API path with an OData query string.
Expand entries are composed recursively with ``;`` between their options.
"""

import re
from typing import List, Optional
from urllib.parse import quote

import structlog

from ..config import Settings
from ..models import ConvertedRequest, Expand, QueryOptions, Request
from ..utilities import validation
from .headers import compose_headers

logger = structlog.get_logger(__name__)

_FILTER_GUID = re.compile(r"\{([0-9A-F]{8}-?(?:[0-9A-F]{4}-?){3}[0-9A-F]{12})\}", re.IGNORECASE)


def encode_uri_component(value: str) -> str:
    """Percent-encode like JavaScript's ``encodeURIComponent``"""
    return quote(value, safe="-_.!~*'()")


def strip_guid_braces(expression: str) -> str:
    """
    Unbrace ``{GUID}`` literals that are not inside a quoted string.

    OData filter expressions need bare GUID literals.
    """
    result: List[str] = []
    quote_char: Optional[str] = None
    position = 0

    while position < len(expression):
        char = expression[position]
        if quote_char:
            if char == quote_char:
                quote_char = None
        elif char in ("'", '"'):
            quote_char = char
        elif char == "{":
            match = _FILTER_GUID.match(expression, position)
            if match:
                result.append(match.group(1))
                position = match.end()
                continue
        result.append(char)
        position += 1

    return "".join(result)


def compose(request: Request, config: Settings, operation: str) -> ConvertedRequest:
    """
    Convert a request descriptor into path, headers and async flag.

    Args:
        request: Request descriptor; ``key`` and ``select`` may be rewritten
        config: Client settings
        operation: Operation name used in error messages

    Returns:
        Converted request

    Raises:
        ValidationError: If a field is missing or malformed
        UsageError: If mutually exclusive options are set
    """
    path = ""

    if not request.url:
        if not request.is_unbound_request and not request.collection:
            validation.parameter_check(request.collection, operation, "request.collection")

        if request.collection is not None:
            validation.string_parameter_check(request.collection, operation, "request.collection")
            path = request.collection

            if request.content_id:
                validation.string_parameter_check(request.content_id, operation, "request.contentId")
                if request.content_id.startswith("$"):
                    path = f"{request.content_id}/{path}"

            if request.key:
                request.key = validation.key_parameter_check(request.key, operation, "request.key")
            elif request.id:
                request.key = validation.guid_parameter_check(request.id, operation, "request.id")

            if request.key:
                path += f"({request.key})"

        if request.additional_url:
            if path:
                path += "/"
            path += request.additional_url

        path = compose_url(request, operation, config, "&", path)

        if request.fetch_xml:
            validation.string_parameter_check(request.fetch_xml, operation, "request.fetchXml")
            join = "?" if "?" not in path else "&"
            path += f"{join}fetchXml={encode_uri_component(request.fetch_xml)}"
    else:
        validation.string_parameter_check(request.url, operation, "request.url")
        path = request.url
        if config is not None and config.web_api_url and path.startswith(config.web_api_url):
            path = path[len(config.web_api_url):]
        path = compose_url(request, operation, config, "&", path)

    is_async = True
    if request.is_async is not None:
        validation.bool_parameter_check(request.is_async, operation, "request.async")
        is_async = request.is_async

    headers = compose_headers(request, operation, config)

    logger.debug("Request composed", operation=operation, path=path)

    return ConvertedRequest(path=path, headers=headers, is_async=is_async)


def compose_url(
    options: QueryOptions,
    operation: str,
    config: Optional[Settings] = None,
    join_symbol: str = "&",
    url: str = "",
) -> str:
    """
    Append navigation segments and query options to ``url``.

    Called once per request and once per expand entry (with ``;`` as the
    join symbol). Returns ``url`` unchanged when no query option applies.
    """
    query: List[str] = []

    if options is None:
        return url

    navigation_property = getattr(options, "navigation_property", None)
    if navigation_property:
        validation.string_parameter_check(navigation_property, operation, "request.navigationProperty")
        url += f"/{navigation_property}"

        navigation_property_key = getattr(options, "navigation_property_key", None)
        if navigation_property_key:
            navigation_key = validation.key_parameter_check(
                navigation_property_key, operation, "request.navigationPropertyKey"
            )
            url += f"({navigation_key})"

        metadata_attribute_type = getattr(options, "metadata_attribute_type", None)
        if navigation_property == "Attributes" and metadata_attribute_type:
            validation.string_parameter_check(metadata_attribute_type, operation, "request.metadataAttributeType")
            url += f"/{metadata_attribute_type}"

    if options.select:
        validation.array_parameter_check(options.select, operation, "request.select")
        if isinstance(options.select, tuple):
            options.select = list(options.select)
        select = options.select

        if operation == "retrieve" and len(select) == 1 and select[0].endswith("/$ref"):
            url += f"/{select[0]}"
        else:
            if operation == "retrieve" and select[0].startswith("/"):
                # a leading path segment is part of the address, not a field
                suffix = select.pop(0)
                if navigation_property is None:
                    url += suffix

            if select:
                query.append("$select=" + ",".join(select))

    if options.filter:
        validation.string_parameter_check(options.filter, operation, "request.filter")
        query.append("$filter=" + encode_uri_component(strip_guid_braces(options.filter)))

    if options.saved_query:
        query.append(
            "savedQuery=" + validation.guid_parameter_check(options.saved_query, operation, "request.savedQuery")
        )

    if options.user_query:
        query.append(
            "userQuery=" + validation.guid_parameter_check(options.user_query, operation, "request.userQuery")
        )

    if options.apply:
        validation.string_parameter_check(options.apply, operation, "request.apply")
        query.append(f"$apply={options.apply}")

    if options.count:
        validation.bool_parameter_check(options.count, operation, "request.count")
        query.append("$count=true")

    if options.top:
        validation.number_parameter_check(options.top, operation, "request.top")
        if options.top > 0:
            query.append(f"$top={options.top}")

    if options.order_by:
        validation.array_parameter_check(options.order_by, operation, "request.orderBy")
        query.append("$orderby=" + ",".join(options.order_by))

    if options.expand:
        validation.string_or_array_parameter_check(options.expand, operation, "request.expand")
        if isinstance(options.expand, str):
            query.append(f"$expand={options.expand}")
        else:
            expanded = [_compose_expand(item, operation, config) for item in options.expand]
            expanded = [item for item in expanded if item]
            if expanded:
                query.append("$expand=" + ",".join(expanded))

    if not query:
        return url
    # a caller-supplied url may already carry a query string
    separator = "&" if "?" in url and join_symbol == "&" else "?"
    return f"{url}{separator}{join_symbol.join(query)}"


def _compose_expand(item, operation: str, config: Optional[Settings]) -> Optional[str]:
    if isinstance(item, dict):
        item = Expand.from_dict(item)

    expand_property = getattr(item, "property", None)
    if not expand_property:
        return None

    validation.string_parameter_check(expand_property, operation, "request.expand.property")
    converted = compose_url(item, f"{operation} $expand", config, ";")
    if converted:
        # drop the leading "?"
        converted = f"({converted[1:]})"
    return expand_property + converted
