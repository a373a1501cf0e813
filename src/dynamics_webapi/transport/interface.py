"""
Transport Interface

Defines contract for the HTTP layer the client sends composed requests through
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..models import RequestOptions, Response


class ITransport(ABC):
    """Interface for HTTP transports"""

    @abstractmethod
    async def send(self, options: RequestOptions) -> Response:
        """
        Perform one HTTP call.

        Args:
            options: Method, URI, headers, body, timeout and parse hints

        Returns:
            Parsed response data with headers and status

        Raises:
            TransportError: If the call fails or the service returns an error status
        """
        pass

    @abstractmethod
    def get_transport_info(self) -> Dict[str, Any]:
        """
        Get transport implementation information.

        Returns:
            Transport metadata (type, timeout, ...)
        """
        pass
