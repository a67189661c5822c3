"""
Integration test fixtures for the bridge.

Provides:
- The FastAPI app built around the shared engine fixture
- A TestClient that runs the app lifespan (and so the stream pump)
"""

import pytest

from boshpush.api.main import create_app
from boshpush.config_models import BridgeConfig


@pytest.fixture
def bridge_app(engine):
    """Bridge app using the recording push channel."""
    return create_app(config=BridgeConfig(), engine=engine, configure_logging=False)


@pytest.fixture
def test_client(bridge_app):
    """Create a test client for the control plane."""
    from fastapi.testclient import TestClient

    with TestClient(bridge_app) as client:
        yield client
