"""Shared fixtures for sudo-sweep tests."""

import pytest
from fakes import FakeSpawner

from sudo_sweep.models import Credentials, Host


@pytest.fixture
def credentials() -> Credentials:
    """Shared test credentials."""
    return Credentials(username="ops", password="s3cret")


@pytest.fixture
def host() -> Host:
    """A fully qualified test host."""
    return Host.parse("web01.example.com")


@pytest.fixture
def spawner() -> FakeSpawner:
    """Empty child factory; tests add children per host."""
    return FakeSpawner()
