"""
Request parameter validation

Stateless predicates and checks parameterized by operation and field name.
Checks raise ``ValidationError`` tagged with both, and the normalizing
checks (GUID, key) return the normalized value.
"""

import re
from typing import Any

from ..errors import ValidationError

GUID_PATTERN = re.compile(r"[0-9A-F]{8}-?(?:[0-9A-F]{4}-?){3}[0-9A-F]{12}", re.IGNORECASE)
_BRACED_GUID = re.compile(r"^\{?([0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12})\}?$", re.IGNORECASE)
_ALTERNATE_KEY = re.compile(r"^[\w]+=(.+)$")


def _qualify(operation: str) -> str:
    return operation if operation.startswith("DynamicsWebApi.") else f"DynamicsWebApi.{operation}"


def throw_parameter_error(operation: str, parameter: str, type_name: str) -> None:
    raise ValidationError(
        operation,
        parameter,
        f"{_qualify(operation)} requires the {parameter} parameter to be of type {type_name}.",
    )


def is_guid(value: Any) -> bool:
    return isinstance(value, str) and GUID_PATTERN.search(value) is not None


def is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def parameter_check(value: Any, operation: str, parameter: str) -> None:
    """Fail when a required parameter is missing or empty"""
    if value is None or value == "":
        raise ValidationError(operation, parameter, f"{_qualify(operation)} requires a {parameter} parameter.")


def string_parameter_check(value: Any, operation: str, parameter: str) -> None:
    if not isinstance(value, str):
        throw_parameter_error(operation, parameter, "String")


def array_parameter_check(value: Any, operation: str, parameter: str) -> None:
    if not is_array(value):
        throw_parameter_error(operation, parameter, "Array")


def string_or_array_parameter_check(value: Any, operation: str, parameter: str) -> None:
    if not isinstance(value, str) and not is_array(value):
        throw_parameter_error(operation, parameter, "String or Array")


def number_parameter_check(value: Any, operation: str, parameter: str) -> None:
    if not is_number(value):
        throw_parameter_error(operation, parameter, "Number")


def bool_parameter_check(value: Any, operation: str, parameter: str) -> None:
    if not is_bool(value):
        throw_parameter_error(operation, parameter, "Boolean")


def guid_parameter_check(value: Any, operation: str, parameter: str) -> str:
    """
    Extract a GUID from ``value``.

    Surrounding braces (``{...}``) are dropped.

    Returns:
        The GUID as found in the value

    Raises:
        ValidationError: If the value does not contain a GUID
    """
    match = GUID_PATTERN.search(value) if isinstance(value, str) else None
    if match is None:
        throw_parameter_error(operation, parameter, "GUID String")
    return match.group(0)


def key_parameter_check(value: Any, operation: str, parameter: str) -> str:
    """
    Normalize a record key.

    A GUID (optionally braced) becomes the bare GUID. Anything else is read
    as an alternate key ``attr=value[,attr2=value2]``: parts are trimmed and
    double quotes become the single quotes OData expects.
    """
    if isinstance(value, str):
        match = _BRACED_GUID.match(value)
        if match:
            return match.group(1)

        alternate_keys = [part.strip().replace('"', "'") for part in value.split(",")]
        if all(_ALTERNATE_KEY.match(part) for part in alternate_keys):
            return ",".join(alternate_keys)

    throw_parameter_error(operation, parameter, "String representing GUID or Alternate Key")
    return ""
