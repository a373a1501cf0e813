"""
Dynamics Web API Client

Thin operation layer: every method builds a request descriptor and funnels
it through composition, serialization and the transport.
"""

import dataclasses
from typing import Any, Dict, List, Optional, Sequence

import structlog

from ..config import Settings, get_settings
from ..errors import TransportError
from ..factories import TransportFactory
from ..models import BatchRequestPart, Request, RequestOptions, Response, ResponseParams
from ..request import compose, convert_to_batch, set_standard_headers, stringify_data
from ..response import response_kind
from ..transport import ITransport
from ..utilities import EntityNameMap, validation

logger = structlog.get_logger(__name__)

# query fields cleared when following an @odata.nextLink, which already carries them
_PAGING_CLEARED_FIELDS = {
    "collection": None,
    "key": None,
    "id": None,
    "navigation_property": None,
    "select": None,
    "filter": None,
    "order_by": None,
    "top": None,
    "count": None,
    "apply": None,
    "saved_query": None,
    "user_query": None,
    "expand": None,
    "fetch_xml": None,
}


def response_params_for(method: str, request: Request) -> ResponseParams:
    """Parse hints for an operation's response"""
    method = method.upper()
    if method in ("PATCH", "PUT", "DELETE") and not request.return_representation:
        return ResponseParams.empty_value(True)
    if method == "GET" and request.select and len(request.select) == 1 and str(request.select[0]).endswith("/$ref"):
        return ResponseParams(is_ref=True)
    return ResponseParams()


class DynamicsWebApiClient:
    """Async client for the Dynamics 365 / Dataverse Web API"""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[ITransport] = None,
        entity_names: Optional[EntityNameMap] = None,
    ):
        self.config = config or get_settings()
        self.transport = transport or TransportFactory.create(self.config)
        self.entity_names = entity_names

    def with_config(self, **changes: Any) -> "DynamicsWebApiClient":
        """Client sharing transport and entity names with a replaced configuration"""
        return DynamicsWebApiClient(self.config.model_copy(update=changes), self.transport, self.entity_names)

    def _build_uri(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.config.web_api_url}{path}"

    async def execute(
        self,
        method: str,
        request: Request,
        operation: str,
        params: Optional[ResponseParams] = None,
    ) -> Response:
        """
        Compose and send a single request.

        Args:
            method: HTTP method
            request: Request descriptor
            operation: Operation name used in error messages
            params: Parse hints (derived from method and request when omitted)

        Returns:
            Transport response

        Raises:
            ValidationError: If composition fails; nothing is sent
            TransportError: If the call fails
        """
        method = method.upper()
        converted = compose(request, self.config, operation)

        headers = set_standard_headers()
        headers.update(converted.headers)

        body = None
        if method != "GET":
            body = stringify_data(request.payload, self.config, self.entity_names)

        options = RequestOptions(
            method=method,
            uri=self._build_uri(converted.path),
            headers=headers,
            body=body,
            is_async=converted.is_async,
            timeout=request.timeout if request.timeout is not None else self.config.timeout,
            response_params=[params or response_params_for(method, request)],
        )

        logger.info("Executing Web API request", operation=operation, method=method, path=converted.path)
        return await self.transport.send(options)

    async def create(self, request: Request) -> Any:
        """Create a record; returns its id, or the record with return_representation"""
        validation.parameter_check(request.payload, "create", "request.entity")
        response = await self.execute("POST", request, "create")
        return response.data

    async def retrieve(self, request: Request) -> Any:
        """Retrieve a single record, property or reference"""
        response = await self.execute("GET", request, "retrieve")
        return response.data

    async def retrieve_multiple(self, request: Request, next_page_link: Optional[str] = None) -> Dict[str, Any]:
        """Retrieve one page of records, optionally following a next page link"""
        if next_page_link:
            validation.string_parameter_check(next_page_link, "retrieveMultiple", "nextPageLink")
            request = dataclasses.replace(request, url=next_page_link, **_PAGING_CLEARED_FIELDS)

        response = await self.execute("GET", request, "retrieveMultiple")
        logger.debug("Records retrieved", kind=response_kind(response.data).value)
        return response.data

    async def retrieve_all(self, request: Request) -> Dict[str, Any]:
        """Retrieve every page of records"""
        records: List[Any] = []
        next_page_link: Optional[str] = None

        while True:
            page = await self.retrieve_multiple(dataclasses.replace(request), next_page_link)
            records.extend(page.get("value", []))
            next_page_link = page.get("oDataNextLink")
            if not next_page_link:
                result: Dict[str, Any] = {"value": records}
                if page.get("oDataDeltaLink"):
                    result["oDataDeltaLink"] = page["oDataDeltaLink"]
                return result

    async def count(self, request: Request) -> int:
        """Count records in a collection, honouring ``filter`` when set"""
        if request.filter:
            request.count = True
            response = await self.execute("GET", request, "count", ResponseParams(to_count=True))
        else:
            request.navigation_property = "$count"
            response = await self.execute("GET", request, "count")
        return int(response.data or 0)

    async def update(self, request: Request) -> Any:
        """
        Update a record with PATCH.

        ``If-Match: *`` is sent unless a conditional header is given, so a
        missing record is not created. Returns ``False`` when an explicit
        ``ifmatch`` precondition fails.
        """
        validation.parameter_check(request.payload, "update", "request.entity")
        explicit_match = request.ifmatch is not None
        if request.ifmatch is None and request.ifnonematch is None:
            request.ifmatch = "*"

        try:
            response = await self.execute("PATCH", request, "update")
        except TransportError as e:
            if explicit_match and e.status == 412:
                return False
            raise
        return response.data

    async def delete(self, request: Request) -> Any:
        """Delete a record; ``False`` when an ``ifmatch`` precondition fails"""
        try:
            response = await self.execute("DELETE", request, "delete")
        except TransportError as e:
            if request.ifmatch is not None and e.status == 412:
                return False
            raise
        return response.data

    async def execute_batch(self, parts: Sequence[BatchRequestPart], token: Optional[str] = None) -> List[Any]:
        """
        Send several operations as one ``$batch`` request.

        Args:
            parts: Operations in execution order
            token: Bearer token for the enclosing request

        Returns:
            One result per operation; failed operations appear as ``TransportError``
        """
        validation.array_parameter_check(parts, "executeBatch", "requests")
        if not parts:
            validation.parameter_check(None, "executeBatch", "requests")

        batch = convert_to_batch(parts, self.config, self.entity_names)
        headers = dict(batch.headers)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        options = RequestOptions(
            method="POST",
            uri=self._build_uri("$batch"),
            headers=headers,
            body=batch.body,
            timeout=self.config.timeout,
            response_params=[response_params_for(part.method, part.request) for part in parts],
        )

        logger.info("Executing Web API batch", parts=len(parts))
        response = await self.transport.send(options)
        return response.data if isinstance(response.data, list) else [response.data]

    async def load_entity_names(self) -> EntityNameMap:
        """Fetch entity definitions and keep the logical name to collection name map"""
        request = Request(
            collection="EntityDefinitions",
            select=["EntitySetName", "LogicalName"],
            no_cache=True,
        )
        page = await self.retrieve_all(request)
        self.entity_names = EntityNameMap.from_entity_definitions(page.get("value", []))

        logger.info("Entity names loaded", count=len(self.entity_names))
        return self.entity_names

    def get_client_info(self) -> Dict[str, Any]:
        return {
            "web_api_url": self.config.web_api_url,
            "use_entity_names": self.config.use_entity_names,
            "entity_names_loaded": self.entity_names is not None,
            "transport": self.transport.get_transport_info(),
        }
