"""
Web API Client module

Async client for Dynamics 365 / Dataverse Web API operations.
"""

from .web_api_client import DynamicsWebApiClient, response_params_for

__all__ = [
    "DynamicsWebApiClient",
    "response_params_for",
]
