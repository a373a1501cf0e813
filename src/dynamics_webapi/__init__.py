"""
DynamicsWebApi

Request composition, batch encoding and response parsing for the
Microsoft Dynamics 365 / Dataverse Web API.
"""

__version__ = "1.6.11"

from .config import Settings, get_settings
from .errors import DynamicsWebApiError, ParseError, TransportError, UsageError, ValidationError
from .models import BatchRequest, BatchRequestPart, ConvertedRequest, Expand, Request, Response, ResponseParams
from .utilities import EntityNameMap
from .client import DynamicsWebApiClient

__all__ = [
    "Settings",
    "get_settings",
    "DynamicsWebApiError",
    "ParseError",
    "TransportError",
    "UsageError",
    "ValidationError",
    "BatchRequest",
    "BatchRequestPart",
    "ConvertedRequest",
    "Expand",
    "Request",
    "Response",
    "ResponseParams",
    "EntityNameMap",
    "DynamicsWebApiClient",
]
