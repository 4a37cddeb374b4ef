# tests/api_server/conftest.py
import pytest
from fastapi.testclient import TestClient

from api_server.main import app


@pytest.fixture
def client(store, orchestrator):
    """
    API client wired to the test store and orchestrator.

    The lifespan is not entered, so nothing is read from the environment.
    """
    app.state.store = store
    app.state.orchestrator = orchestrator
    return TestClient(app)
