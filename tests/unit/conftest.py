"""Shared pytest fixtures for Warden operator unit tests."""

import base64

import pytest
from kubernetes import client

from warden_operator.constants import SERVICE_ACCOUNT_TOKEN_SECRET_TYPE


class MockStatus:
    """Mock status object that allows dynamic attribute assignment."""

    def __init__(self):
        self.phase = None
        self.message = None
        self.observedGeneration = None
        self.conditions = []

    def __setattr__(self, name: str, value) -> None:
        self.__dict__[name] = value

    def __getattr__(self, name: str):
        return self.__dict__.get(name)


def make_secret(
    name: str,
    data: dict[str, bytes] | None = None,
    secret_type: str = SERVICE_ACCOUNT_TOKEN_SECRET_TYPE,
) -> client.V1Secret:
    """Build a V1Secret with base64-encoded data, as the API returns it."""
    encoded = (
        {key: base64.b64encode(value).decode() for key, value in data.items()}
        if data is not None
        else None
    )
    return client.V1Secret(
        metadata=client.V1ObjectMeta(name=name), type=secret_type, data=encoded
    )


@pytest.fixture
def secret_factory():
    """Factory for token secrets carrying the given keys."""
    return make_secret


@pytest.fixture
def status():
    """Create a mock status object."""
    return MockStatus()


@pytest.fixture
def warden_body():
    """A cluster-scoped WardenConfig as kopf hands it to handlers."""
    return {
        "apiVersion": "warden.io/v1",
        "kind": "WardenConfig",
        "metadata": {"name": "warden", "uid": "1234-abcd", "generation": 3},
        "spec": {},
    }
