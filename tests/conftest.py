"""Pytest configuration and fixtures."""

import os

# Must be set before the application modules read their configuration
os.environ["DOCCHAT_DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"

import pytest
from fastapi.testclient import TestClient

from backend.docchat.main import create_app
from backend.docchat.models import Document
from backend.docchat.store import MemoryKeyValueStore, Storage


class FakeAI:
    """Records every request; optionally blocks on ``gate`` or raises ``error``."""

    def __init__(self, reply: str = "Model reply"):
        self.reply = reply
        self.error = None
        self.gate = None
        self.calls = []

    async def generate(self, system_instruction, history, prompt, web_search=False):
        self.calls.append(
            {
                "system_instruction": system_instruction,
                "history": list(history),
                "prompt": prompt,
                "web_search": web_search,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def storage():
    s = Storage(MemoryKeyValueStore())
    s.init()
    return s


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def document():
    return Document(
        id="doc-1",
        name="handbook.txt",
        content="The office opens at nine.",
        instruction="Answer clearly.",
        upload_date="2026-10-18",
        type="text",
    )


@pytest.fixture
def client(storage, fake_ai):
    return TestClient(create_app(storage=storage, ai=fake_ai))


@pytest.fixture
def admin_client(client):
    resp = client.post("/api/login", json={"username": "admin", "password": "admin"})
    assert resp.status_code == 200
    return client
