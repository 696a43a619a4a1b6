"""
Shared fixtures for the chat pipeline tests.

No network and no database: providers and search are served by an
httpx.MockTransport, conversations live in MemoryStore.
"""

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from app.api import chat
from app.core.orchestrator import ChatOrchestrator
from chat_fakes import MemoryStore, Upstream, make_config


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def make_client(store, upstream):
    """Lightweight app with only the chat router mounted."""

    def _make(config=None) -> TestClient:
        app = FastAPI()
        app.include_router(chat.router)
        app.state.orchestrator = ChatOrchestrator(config or make_config(), store, transport=upstream.transport)
        return TestClient(app)

    return _make
