from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from langchain_core.runnables import RunnableLambda

from db import KeyValueStore, get_store
from directories.candidates import CandidateDirectory
from directories.companies import CompanyDirectory
from events import ChangeNotifier


def fake_chain(result):
    """A stand-in for prompt | llm.with_structured_output(...) that returns a canned answer."""
    if callable(result):
        return RunnableLambda(result)
    return RunnableLambda(lambda _inputs: result)


def failing_chain(message: str = "backend unavailable"):
    def _fail(_inputs):
        raise RuntimeError(message)
    return RunnableLambda(_fail)


@pytest.fixture
def store(tmp_path) -> KeyValueStore:
    return KeyValueStore(str(tmp_path / "data"))


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def companies(store, notifier) -> CompanyDirectory:
    return CompanyDirectory(store, notifier)


@pytest.fixture
def candidates(store, notifier) -> CandidateDirectory:
    return CandidateDirectory(store, notifier)


@pytest.fixture
def app_client(store):
    from api import app

    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as client:
        yield app, client
    app.dependency_overrides.clear()
