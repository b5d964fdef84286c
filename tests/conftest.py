import copy
import json

import pytest
from fastapi.testclient import TestClient

from creator_growth.ai_client import AIClient
from creator_growth.config import AIProviderConfig
from creator_growth.main import app, get_pipeline, get_storage, get_transcriber, get_youtube
from creator_growth.pipeline import GrowthPipeline
from creator_growth.storage import Storage

SAMPLE_ANALYSIS = {
    "titles": [
        "Build a REST API in Go in 10 Minutes",
        "Go REST API Tutorial for Beginners",
        "From Zero to REST API with Go",
    ],
    "description": "Learn how to build a REST API in Go.\nNo frameworks, just the standard library.",
    "hashtags": ["#golang", "#restapi"],
    "tags": ["go", "rest api", "tutorial"],
    "performancePrediction": {
        "potential": "Medium",
        "confidenceScore": 72,
        "reason": "Evergreen tutorial topic with steady search demand.",
    },
    "nextVideoIdeas": [
        {"idea": "Add JWT auth to a Go API", "reason": "Natural follow-up for the same audience."},
        {"idea": "Deploy a Go API to Fly.io", "reason": "Viewers will want to ship what they built."},
    ],
}


class FakeAIClient(AIClient):
    """Returns queued replies in order; exceptions in the queue are raised."""

    def __init__(self, replies=()):
        super().__init__(AIProviderConfig(endpoint="http://ai.test"))
        self.replies = list(replies)
        self.calls = []

    async def generate(self, prompt, history=(), system=None):
        self.calls.append({"prompt": prompt, "history": list(history), "system": system})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def sample_analysis():
    return copy.deepcopy(SAMPLE_ANALYSIS)


@pytest.fixture
def sample_analysis_json(sample_analysis):
    return json.dumps(sample_analysis)


@pytest.fixture
def storage(tmp_path):
    store = Storage(f"sqlite:///{tmp_path / 'growth.db'}")
    store.init_schema()
    return store


@pytest.fixture
def make_client(storage):
    """Build a TestClient whose AI provider answers with ``replies``."""

    def _make(replies=(), youtube=None, transcriber=None):
        ai = FakeAIClient(replies)
        app.dependency_overrides[get_storage] = lambda: storage
        app.dependency_overrides[get_pipeline] = lambda: GrowthPipeline(ai, youtube)
        if youtube is not None:
            app.dependency_overrides[get_youtube] = lambda: youtube
        if transcriber is not None:
            app.dependency_overrides[get_transcriber] = lambda: transcriber
        return TestClient(app), ai

    yield _make
    app.dependency_overrides.clear()
