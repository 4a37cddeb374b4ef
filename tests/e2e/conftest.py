# tests/e2e/conftest.py
"""E2E test configuration and fixtures."""

import os
import uuid

import pytest
import requests


class APIClient:
    """API client wrapper for E2E tests."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()

    def get(self, path: str, **kwargs):
        """GET request."""
        return self.session.get(f"{self.base_url}{path}", **kwargs)

    def post(self, path: str, **kwargs):
        """POST request."""
        return self.session.post(f"{self.base_url}{path}", **kwargs)


@pytest.fixture(scope="session")
def api_base_url() -> str:
    """Get API base URL from environment; the suite needs a running server."""
    base_url = os.getenv("API_BASE_URL")
    if not base_url:
        pytest.skip("API_BASE_URL environment variable not set")
    return base_url


@pytest.fixture(scope="session")
def api_client(api_base_url: str) -> APIClient:
    return APIClient(api_base_url)


@pytest.fixture
def unique_customer() -> str:
    """Customer id that the target server has never processed."""
    return f"e2e-{uuid.uuid4().hex[:12]}"
