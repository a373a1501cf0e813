"""
Header composition

Derives HTTP headers from a request descriptor and the client settings.
The ``prefer`` field may be a raw string or list of directives; it is parsed
into ``PreferOptions`` before any defaults are applied.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from ..config import Settings
from ..errors import UsageError
from ..models import Request
from ..utilities import validation


@dataclass
class PreferOptions:
    """Structured form of the ``Prefer`` header"""

    return_representation: Optional[bool] = None
    include_annotations: Optional[str] = None
    max_page_size: Optional[int] = None
    track_changes: Optional[bool] = None

    @classmethod
    def from_request(cls, request: Request, operation: str) -> "PreferOptions":
        options = cls(
            return_representation=request.return_representation,
            include_annotations=request.include_annotations,
            max_page_size=request.max_page_size,
            track_changes=request.track_changes,
        )

        if request.prefer:
            validation.string_or_array_parameter_check(request.prefer, operation, "request.prefer")
            if isinstance(request.prefer, str):
                directives = request.prefer.split(",")
            else:
                directives = list(request.prefer)
                for directive in directives:
                    validation.string_parameter_check(directive, operation, "request.prefer")
            options.merge_directives(directives)

        return options

    def merge_directives(self, directives: Iterable[str]) -> None:
        """Merge raw ``Prefer`` directives; unknown ones are ignored"""
        for directive in directives:
            item = directive.strip()
            if item == "return=representation":
                self.return_representation = True
            elif "odata.include-annotations=" in item:
                self.include_annotations = item.replace("odata.include-annotations=", "").replace('"', "")
            elif item.startswith("odata.maxpagesize="):
                size = item.replace("odata.maxpagesize=", "").replace('"', "")
                self.max_page_size = int(size) if size.isdigit() else 0
            elif "odata.track-changes" in item:
                self.track_changes = True

    def with_defaults(self, config: Optional[Settings]) -> "PreferOptions":
        if config is None:
            return self
        return PreferOptions(
            return_representation=(
                config.return_representation if self.return_representation is None else self.return_representation
            ),
            include_annotations=self.include_annotations or config.include_annotations,
            max_page_size=self.max_page_size or config.max_page_size,
            track_changes=self.track_changes,
        )

    def to_header(self, operation: str) -> str:
        """Render directives in fixed order, omitting falsy ones"""
        prefer = []

        if self.return_representation:
            validation.bool_parameter_check(self.return_representation, operation, "request.returnRepresentation")
            prefer.append("return=representation")

        if self.include_annotations:
            validation.string_parameter_check(self.include_annotations, operation, "request.includeAnnotations")
            prefer.append(f'odata.include-annotations="{self.include_annotations}"')

        if self.max_page_size:
            validation.number_parameter_check(self.max_page_size, operation, "request.maxPageSize")
            if self.max_page_size > 0:
                prefer.append(f"odata.maxpagesize={self.max_page_size}")

        if self.track_changes:
            validation.bool_parameter_check(self.track_changes, operation, "request.trackChanges")
            prefer.append("odata.track-changes")

        return ",".join(prefer)


def compose_prefer_header(request: Request, operation: str, config: Optional[Settings]) -> str:
    return PreferOptions.from_request(request, operation).with_defaults(config).to_header(operation)


def compose_headers(request: Request, operation: str, config: Optional[Settings]) -> Dict[str, str]:
    """
    Compose request-specific headers.

    Args:
        request: Request descriptor
        operation: Operation name used in error messages
        config: Client settings providing ``Prefer`` defaults

    Returns:
        Header mapping (possibly empty)

    Raises:
        UsageError: If both ``ifmatch`` and ``ifnonematch`` are set
        ValidationError: If a header field has the wrong type
    """
    headers: Dict[str, str] = {}

    prefer = compose_prefer_header(request, operation, config)
    if prefer:
        headers["Prefer"] = prefer

    if request.ifmatch is not None and request.ifnonematch is not None:
        raise UsageError(
            f"DynamicsWebApi.{operation}. Either one of request.ifmatch or request.ifnonematch "
            "parameters should be used in a call, not both."
        )

    if request.ifmatch:
        validation.string_parameter_check(request.ifmatch, operation, "request.ifmatch")
        headers["If-Match"] = request.ifmatch

    if request.ifnonematch:
        validation.string_parameter_check(request.ifnonematch, operation, "request.ifnonematch")
        headers["If-None-Match"] = request.ifnonematch

    if request.impersonate:
        validation.string_parameter_check(request.impersonate, operation, "request.impersonate")
        headers["MSCRMCallerID"] = validation.guid_parameter_check(request.impersonate, operation, "request.impersonate")

    if request.token:
        validation.string_parameter_check(request.token, operation, "request.token")
        headers["Authorization"] = f"Bearer {request.token}"

    if request.duplicate_detection:
        validation.bool_parameter_check(request.duplicate_detection, operation, "request.duplicateDetection")
        # the service expects the literal "false" whenever detection is requested
        headers["MSCRM.SuppressDuplicateDetection"] = "false"

    if request.no_cache:
        validation.bool_parameter_check(request.no_cache, operation, "request.noCache")
        headers["Cache-Control"] = "no-cache"

    if request.merge_labels:
        validation.bool_parameter_check(request.merge_labels, operation, "request.mergeLabels")
        headers["MSCRM.MergeLabels"] = "true"

    if request.content_id:
        validation.string_parameter_check(request.content_id, operation, "request.contentId")
        if not request.content_id.startswith("$"):
            headers["Content-ID"] = request.content_id

    return headers


def set_standard_headers(headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Add the headers every non-batch Web API request carries"""
    headers = headers if headers is not None else {}
    headers["Accept"] = "application/json"
    headers["OData-MaxVersion"] = "4.0"
    headers["OData-Version"] = "4.0"
    headers["Content-Type"] = "application/json; charset=utf-8"
    return headers
