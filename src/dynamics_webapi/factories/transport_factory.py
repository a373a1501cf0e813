"""
Transport Factory

Creates transport instances based on configuration.
"""

from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional

import structlog

from ..config import Settings
from ..errors import TransportError
from ..models import RequestOptions, Response
from ..transport import HttpxTransport, ITransport

logger = structlog.get_logger(__name__)


class MockTransport(ITransport):
    """Mock transport for testing: records requests, replays queued responses"""

    def __init__(self, responses: Optional[Iterable[Any]] = None):
        self.requests: List[RequestOptions] = []
        self._responses: Deque[Any] = deque(responses or [])

    def queue(self, response: Any) -> None:
        """Queue a ``Response`` to return or a ``TransportError`` to raise"""
        self._responses.append(response)

    async def send(self, options: RequestOptions) -> Response:
        """Returns the next queued response, or an empty 204"""
        self.requests.append(options)
        if not self._responses:
            return Response(data=None, headers={}, status=204)

        response = self._responses.popleft()
        if isinstance(response, TransportError):
            raise response
        return response

    def get_transport_info(self) -> Dict[str, Any]:
        """Returns mock transport info"""
        return {
            "type": "mock",
            "recorded_requests": len(self.requests),
            "queued_responses": len(self._responses),
        }


class TransportFactory:
    """Factory for creating transports"""

    @staticmethod
    def create(settings: Settings) -> ITransport:
        """
        Create transport based on configuration.

        Args:
            settings: Client settings

        Returns:
            Configured transport instance

        Raises:
            ValueError: If transport type is not supported
        """
        transport_type = settings.transport.lower()

        logger.info("Creating transport", transport_type=transport_type)

        if transport_type == "httpx":
            return HttpxTransport(timeout=settings.timeout)
        elif transport_type == "mock":
            return MockTransport()
        else:
            raise ValueError(f"Unsupported transport: {transport_type}")

    @staticmethod
    def get_available_transports() -> list[str]:
        """Get list of available transport types"""
        return ["httpx", "mock"]
