"""Fixtures for Web API tests."""

import pytest
from fastapi.testclient import TestClient

from studyreview.web.api import create_app
from studyreview.web.sessions import reset_session_manager


@pytest.fixture
def manager(mock_llm_client, store):
    """Fresh session manager with a mock LLM and a temp store."""
    return reset_session_manager(client=mock_llm_client, store=store)


@pytest.fixture
def client(manager):
    """Create test client with fresh session manager."""
    app = create_app()
    return TestClient(app)
