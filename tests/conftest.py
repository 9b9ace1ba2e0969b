"""
Shared fixtures for the quiz backend tests.

The cache, the question generator and the content API are replaced by
in-memory fakes; nothing here needs Redis or network access.
"""
import json
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from learncheck.config import Settings
from learncheck.content_client import ContentClient
from learncheck.llm_client import QuestionGenerator
from learncheck.main import create_app
from learncheck.normalize import normalize_questions
from learncheck.quiz_manager import QuizManager
from learncheck.schemas import Question

# 120 characters, just over the 100-character minimum
SAMPLE_CONTENT = (
    "React Hooks let function components hold state and run side effects. "
    "useState stores values and useEffect syncs the DOM."
)
assert len(SAMPLE_CONTENT) == 120

LONG_TUTORIAL_HTML = (
    "<h1>Pengenalan AI</h1><p>Artificial Intelligence&nbsp;adalah cabang ilmu komputer yang mempelajari "
    "bagaimana mesin dapat meniru kecerdasan manusia. Istilah ini diperkenalkan pada konferensi Dartmouth "
    "tahun 1956 &amp; terus berkembang hingga era model bahasa besar.</p>"
)


class FakeCache:
    """Dict-backed stand-in for RedisCache; records the TTL of every write."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.lists: Dict[str, List[str]] = {}
        self.ttls: Dict[str, int] = {}
        self.expires: Dict[str, float] = {}
        self.available = True

    async def get(self, key: str) -> Optional[Any]:
        if key in self.expires and self.expires[key] <= time.monotonic():
            self.store.pop(key, None)
        raw = self.store.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        self.store[key] = json.dumps(value)
        self.ttls[key] = ttl
        self.expires[key] = time.monotonic() + ttl
        return True

    async def delete(self, key: str) -> bool:
        self.store.pop(key, None)
        self.lists.pop(key, None)
        return True

    async def exists(self, key: str) -> bool:
        return key in self.store or key in self.lists

    async def append(self, key: str, value: Any) -> int:
        self.lists.setdefault(key, []).append(json.dumps(value))
        return len(self.lists[key])

    async def get_list(self, key: str) -> List[Any]:
        return [json.loads(item) for item in self.lists.get(key, [])]

    async def ping(self) -> bool:
        return self.available

    async def close(self) -> None:
        pass


def make_raw_questions(count: int, prefix: str = "Generated") -> List[Dict[str, Any]]:
    return [
        {
            "id": 99,
            "question": f"{prefix} question {i + 1}?",
            "options": [{"id": letter, "text": f"Option {letter}"} for letter in "ABCD"],
            "correctAnswer": "C",
            "explanation": f"{prefix} explanation {i + 1}",
        }
        for i in range(count)
    ]


class FakeGenerator:
    """Records every call; answers with canned questions or raises the configured error."""

    provider = "fake"

    def __init__(self, error: Optional[BaseException] = None, questions: Optional[List[Question]] = None):
        self.error = error
        self.questions = questions
        self.calls: List[Dict[str, Any]] = []

    def describe(self) -> Dict[str, Any]:
        return {"provider": self.provider, "model": "fake-model", "available": self.error is None}

    async def generate(
        self,
        content: str,
        difficulty: str,
        count: int,
        language: str = "id",
        question_type: str = "multiple-choice",
        attempt_number: int = 0,
    ) -> List[Question]:
        self.calls.append(
            {
                "content": content,
                "difficulty": difficulty,
                "count": count,
                "language": language,
                "question_type": question_type,
                "attempt_number": attempt_number,
            }
        )
        if self.error is not None:
            raise self.error
        if self.questions is not None:
            return self.questions
        return normalize_questions(make_raw_questions(count, prefix=difficulty), count, language)


def content_api_handler(tutorials: Optional[Dict[str, Dict[str, Any]]] = None) -> Callable[[httpx.Request], httpx.Response]:
    """httpx.MockTransport handler mimicking the tutorial content API."""
    tutorials = tutorials if tutorials is not None else {
        "1": {"id": "1", "title": "Pengenalan AI", "content": LONG_TUTORIAL_HTML, "category": "Artificial Intelligence"},
        "2": {"id": "2", "title": "Terlalu pendek", "content": "Singkat."},
    }
    preferences: Dict[str, Dict[str, Any]] = {"demo_user": {"theme": "light", "language": "id"}}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/health":
            return httpx.Response(200, json={"status": "healthy", "service": "mock-content-api", "tutorials_count": len(tutorials)})
        if path == "/api/tutorials":
            data = list(tutorials.values())
            category = request.url.params.get("category")
            if category:
                data = [t for t in data if category.lower() in t.get("category", "").lower()]
            return httpx.Response(200, json={"data": data, "count": len(data), "status": "success"})
        if path.startswith("/api/tutorials/"):
            tutorial = tutorials.get(path.rsplit("/", 1)[1])
            if tutorial is None:
                return httpx.Response(404, json={"error": "Tutorial not found", "status": "error"})
            return httpx.Response(200, json={"data": tutorial, "status": "success"})
        if path.startswith("/api/users/") and path.endswith("/preferences"):
            user_id = path.split("/")[3]
            if request.method == "PUT":
                update = json.loads(request.content)
                preferences[user_id] = {**preferences.get(user_id, {}), **update}
                return httpx.Response(200, json={"data": {"userId": user_id, "preferences": preferences[user_id]}, "updated": list(update)})
            prefs = preferences.get(user_id, preferences["demo_user"])
            return httpx.Response(200, json={"data": {"userId": user_id, "preferences": prefs}, "status": "success"})
        return httpx.Response(404, json={"error": "Endpoint not found"})

    return handler


@pytest.fixture
def settings() -> Settings:
    return Settings(
        content_api_url="http://content.test",
        llm_provider="ollama",
        ollama_url="http://ollama.test",
        rate_limit_enabled=False,
    )


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def content_client(settings: Settings) -> ContentClient:
    return ContentClient(settings.content_api_url, transport=httpx.MockTransport(content_api_handler()))


@pytest.fixture
def quiz_manager(fake_cache: FakeCache, fake_generator: FakeGenerator, content_client: ContentClient) -> QuizManager:
    return QuizManager(fake_cache, fake_generator, content_client, questions_ttl=3600)


@pytest.fixture
def app(settings: Settings, fake_cache: FakeCache, fake_generator: FakeGenerator, content_client: ContentClient):
    return create_app(settings=settings, cache=fake_cache, generator=fake_generator, content=content_client)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def base_request() -> Dict[str, Any]:
    return {
        "content": SAMPLE_CONTENT,
        "difficulty": "medium",
        "questionCount": 3,
        "attemptNumber": 0,
    }


@pytest.fixture
def ollama_generator_factory(settings: Settings):
    """Build a real QuestionGenerator whose HTTP calls go to the given handler."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> QuestionGenerator:
        return QuestionGenerator(settings, transport=httpx.MockTransport(handler))

    return factory
