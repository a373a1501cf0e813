"""
Pytest configuration and fixtures for DynamicsWebApi tests
"""

import pytest

from dynamics_webapi.client import DynamicsWebApiClient
from dynamics_webapi.config import Settings
from dynamics_webapi.factories import MockTransport
from dynamics_webapi.utilities import EntityNameMap

WEB_API_URL = "https://org.api/data/v9.1/"
GUID = "00000000-0000-0000-0000-000000000001"


@pytest.fixture
def settings():
    """Settings pointing at a test organization"""
    return Settings(web_api_url=WEB_API_URL, transport="mock")


@pytest.fixture
def guid():
    return GUID


@pytest.fixture
def entity_names():
    """Entity name map as loaded from EntityDefinitions"""
    return EntityNameMap({"account": "accounts", "contact": "contacts"})


@pytest.fixture
def mock_transport():
    """Transport recording requests without network access"""
    return MockTransport()


@pytest.fixture
def client(settings, mock_transport):
    """Web API client backed by the mock transport"""
    return DynamicsWebApiClient(settings, mock_transport)
