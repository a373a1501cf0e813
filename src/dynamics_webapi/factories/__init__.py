"""
Factory classes

Provides factory methods to create implementations based on configuration.
"""

from .transport_factory import MockTransport, TransportFactory

__all__ = [
    "MockTransport",
    "TransportFactory",
]
