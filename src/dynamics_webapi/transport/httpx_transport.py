"""
httpx Transport

Sends composed Web API requests with httpx and normalizes failures into
``TransportError``. Never retries.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from ..errors import ParseError, TransportError
from ..models import RequestOptions, Response
from ..response import parse_response
from .interface import ITransport

logger = structlog.get_logger(__name__)

# 204: no content, 304: not modified
SUCCESS_STATUSES = (200, 201, 204, 304)

DEFAULT_TIMEOUT = 30.0


class HttpxTransport(ITransport):
    """HTTP transport backed by ``httpx.AsyncClient``"""

    def __init__(self, timeout: Optional[float] = None, http_transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout if timeout is not None else DEFAULT_TIMEOUT
        self._http_transport = http_transport

    async def send(self, options: RequestOptions) -> Response:
        timeout = options.timeout if options.timeout is not None else self.timeout

        logger.debug("Sending Web API request", method=options.method, uri=options.uri)

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._http_transport) as client:
                response = await client.request(
                    options.method,
                    options.uri,
                    headers=options.headers,
                    content=options.body.encode("utf-8") if options.body is not None else None,
                )
        except httpx.TimeoutException as e:
            logger.error("Web API request timed out", method=options.method, uri=options.uri)
            raise TransportError("Request Timed Out") from e
        except httpx.HTTPError as e:
            logger.error("Web API request error", method=options.method, uri=options.uri, error=str(e))
            raise TransportError(str(e) or "Network Error") from e

        headers = dict(response.headers)

        if response.status_code in SUCCESS_STATUSES:
            data = parse_response(response.text, headers, options.response_params, response.status_code)
            return Response(data=data, headers=headers, status=response.status_code)

        logger.error(
            "Web API request failed",
            method=options.method,
            uri=options.uri,
            status_code=response.status_code,
            response_text=response.text,
        )
        raise self._to_error(response, headers, options)

    @staticmethod
    def _to_error(response: httpx.Response, headers: Dict[str, str], options: RequestOptions) -> TransportError:
        status_text = response.reason_phrase
        try:
            parsed = parse_response(response.text, headers, options.response_params)
        except ParseError:
            return TransportError.from_http_error(
                {"message": response.text or "Unexpected Error"}, response.status_code, status_text
            )

        if isinstance(parsed, list):
            return TransportError(
                "Batch request failed", status=response.status_code, status_text=status_text, responses=parsed
            )

        error = parsed.get("error") if isinstance(parsed, dict) else None
        if error is None:
            error = {"message": response.text or "Unexpected Error"}
        return TransportError.from_http_error(error, response.status_code, status_text)

    def get_transport_info(self) -> Dict[str, Any]:
        return {
            "type": "httpx",
            "timeout": self.timeout,
        }
