"""
Shared pytest fixtures for Fluidinfo client tests.

Provides sessions with each kind of credential and clients pointed at a
bespoke instance whose HTTP traffic is stubbed with pytest-httpx.
"""

import pytest

from fluidinfo.api_clients.session import Session
from fluidinfo.api_clients.values_client import FluidinfoClient

BASE_URL = "https://localhost/"


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def anonymous_session() -> Session:
    return Session.create(instance=BASE_URL)


@pytest.fixture
def basic_session() -> Session:
    return Session.create(instance=BASE_URL, username="username", password="password")


@pytest.fixture
def oauth_session() -> Session:
    return Session.create(instance=BASE_URL, access_token="token-123")


@pytest.fixture
def oauth_consumer_session() -> Session:
    return Session.create(
        instance=BASE_URL,
        username="username",
        password="password",
        access_token="token-123",
    )


@pytest.fixture
def client(basic_session):
    """Authenticated client; closes its httpx clients afterwards."""
    fluidinfo_client = FluidinfoClient(basic_session)
    yield fluidinfo_client
    fluidinfo_client.close()


@pytest.fixture
def anonymous_client(anonymous_session):
    fluidinfo_client = FluidinfoClient(anonymous_session)
    yield fluidinfo_client
    fluidinfo_client.close()
