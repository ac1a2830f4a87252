"""
Shared pytest fixtures for graceful-api tests.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from graceful_api.app import app
from graceful_api.shutdown import reset_drain_state


@pytest.fixture(autouse=True)
def open_gate():
    """Every test starts and ends with the request gate open."""
    reset_drain_state()
    yield
    reset_drain_state()


@pytest.fixture
def client():
    """TestClient with the application lifespan running."""
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def http_scope():
    """Factory for a minimal ASGI HTTP scope, for driving the app without a TestClient."""

    def make(path: str, method: str = "GET", headers=None) -> dict:
        return {
            "type": "http",
            "asgi": {"version": "3.0", "spec_version": "2.3"},
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": b"",
            "headers": headers or [],
            "client": ("127.0.0.1", 50000),
            "server": ("testserver", 80),
        }

    return make
