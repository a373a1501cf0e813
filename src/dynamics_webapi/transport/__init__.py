"""
Transport module

HTTP layer behind the Web API client.
"""

from .interface import ITransport
from .httpx_transport import HttpxTransport

__all__ = [
    "ITransport",
    "HttpxTransport",
]
