"""Shared pytest fixtures for all tests."""
import pytest
from bridgenode.config import get_settings
from bridgenode.worker.models import NodeConfig


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """
    Reset the cached Settings singleton around each test.

    Tests that set environment variables get a fresh Settings instance.
    """
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def node_config() -> NodeConfig:
    """Node configuration used by the reference scenarios."""
    return NodeConfig(
        mqttAddress="10.0.0.5",
        mqttPort=1883,
        modbusClientAddress="10.0.0.9",
        modbusClientPort=502,
    )


@pytest.fixture
def status_log():
    """Status surface that records every status it receives."""
    return []
