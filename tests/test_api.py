"""HTTP-level tests for the FastAPI app, with the cache, generator and content API faked."""
import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import SAMPLE_CONTENT, FakeGenerator
from learncheck.cache import build_preferences_key
from learncheck.content_client import ContentClient
from learncheck.fallback import get_fallback_questions
from learncheck.main import AVAILABLE_ENDPOINTS, create_app

pytestmark = pytest.mark.integration


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def _client_with(settings, cache, generator, content=None) -> TestClient:
    return TestClient(create_app(settings=settings, cache=cache, generator=generator, content=content))


class TestGenerateQuestions:
    def test_returns_generated_questions(self, client, base_request) -> None:
        response = client.post("/api/llm/generate-questions", json=base_request)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["cached"] is False
        assert body["fallback"] is False
        assert body["difficulty"] == "medium"
        assert body["attemptNumber"] == 0
        questions = body["data"]["questions"]
        assert len(questions) == 3
        assert [q["id"] for q in questions] == [1, 2, 3]
        assert all([o["id"] for o in q["options"]] == ["A", "B", "C", "D"] for q in questions)
        assert questions[0]["correctAnswer"] == "C"
        assert "generatedAt" in body

    def test_second_identical_request_is_served_from_cache(self, client, fake_generator, base_request) -> None:
        client.post("/api/llm/generate-questions", json=base_request)
        response = client.post("/api/generate-questions", json=base_request)

        assert response.json()["cached"] is True
        assert len(fake_generator.calls) == 1

    def test_retry_with_high_score_is_harder(self, client, base_request) -> None:
        request = dict(base_request, attemptNumber=1, previousScore=85)
        body = client.post("/api/llm/generate-questions", json=request).json()

        assert body["difficulty"] == "hard"
        assert body["metadata"]["requestedDifficulty"] == "medium"
        assert body["metadata"]["adjustedDifficulty"] == "hard"

    def test_generator_failure_degrades_to_fallback(self, settings, fake_cache, content_client, base_request) -> None:
        generator = FakeGenerator(error=httpx.ConnectError("connection refused"))
        client = _client_with(settings, fake_cache, generator, content_client)

        response = client.post("/api/llm/generate-questions", json=dict(base_request, questionCount=5))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["fallback"] is True
        assert len(body["data"]["questions"]) == 5
        assert body["message"]

    @pytest.mark.parametrize("error", [RuntimeError("boom"), KeyError("response"), TypeError("bad")])
    def test_unexpected_generator_exception_is_not_a_500(
        self, settings, fake_cache, content_client, base_request, error
    ) -> None:
        client = _client_with(settings, fake_cache, FakeGenerator(error=error), content_client)

        response = client.post("/api/llm/generate-questions", json=base_request)

        assert response.status_code == 200
        assert response.json()["fallback"] is True

    def test_invalid_request_is_400_with_details(self, client, fake_generator) -> None:
        response = client.post(
            "/api/llm/generate-questions",
            json={"content": "short", "difficulty": "extreme", "questionCount": 0},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation error"
        fields = {line.split(":")[0] for line in body["details"]}
        assert {"content", "difficulty", "questionCount"} <= fields
        assert fake_generator.calls == []

    def test_non_object_body_is_400(self, client) -> None:
        response = client.post("/api/llm/generate-questions", json=[SAMPLE_CONTENT])
        assert response.status_code == 400
        assert response.json()["error"] == "Validation error"

    def test_models_describes_generator(self, client) -> None:
        body = client.get("/api/llm/models").json()
        assert body["data"]["provider"] == "fake"
        assert body["status"] == "success"


class TestTutorials:
    def test_list_is_cached_after_first_fetch(self, client) -> None:
        first = client.get("/api/tutorials").json()
        second = client.get("/api/tutorials").json()

        assert first["source"] == "content-api"
        assert first["count"] == 2
        assert second["source"] == "cache"
        assert second["data"] == first["data"]

    def test_list_filters_by_category(self, client) -> None:
        body = client.get("/api/tutorials", params={"category": "artificial"}).json()
        assert [t["id"] for t in body["data"]] == ["1"]

    def test_list_reports_provider_failure(self, settings, fake_cache, fake_generator) -> None:
        content = ContentClient("http://content.test", transport=httpx.MockTransport(_unreachable))
        client = _client_with(settings, fake_cache, fake_generator, content)

        response = client.get("/api/tutorials")
        assert response.status_code == 502
        assert response.json()["success"] is False

    def test_get_tutorial(self, client) -> None:
        body = client.get("/api/tutorials/1").json()
        assert body["success"] is True
        assert body["data"]["title"] == "Pengenalan AI"

    def test_missing_tutorial_is_404(self, client) -> None:
        response = client.get("/api/tutorials/404")
        assert response.status_code == 404
        assert response.json()["error"] == "Tutorial with ID 404 not found"

    def test_short_tutorial_is_400(self, client) -> None:
        response = client.get("/api/tutorials/2")
        assert response.status_code == 400
        assert "insufficient" in response.json()["error"]

    def test_generate_for_tutorial(self, client, fake_generator) -> None:
        response = client.post("/api/tutorials/1/questions", json={"questionCount": 2, "language": "en"})

        assert response.status_code == 200
        body = response.json()
        assert body["fallback"] is False
        assert len(body["data"]["questions"]) == 2
        assert body["metadata"]["tutorialTitle"] == "Pengenalan AI"
        assert fake_generator.calls[0]["language"] == "en"

    def test_generate_for_tutorial_without_body(self, client) -> None:
        body = client.post("/api/tutorials/1/questions").json()
        assert len(body["data"]["questions"]) == 3

    def test_generate_for_missing_tutorial_falls_back(self, client) -> None:
        body = client.post("/api/tutorials/404/questions").json()
        assert body["success"] is True
        assert body["fallback"] is True


class TestPreferences:
    def test_get_then_cached(self, client) -> None:
        first = client.get("/api/users/demo_user/preferences").json()
        second = client.get("/api/users/demo_user/preferences").json()

        assert first["source"] == "content-api"
        assert first["data"]["preferences"]["theme"] == "light"
        assert second["source"] == "cache"

    def test_update_invalidates_cache(self, client, fake_cache) -> None:
        client.get("/api/users/demo_user/preferences")
        assert build_preferences_key("demo_user") in fake_cache.store

        response = client.put("/api/users/demo_user/preferences", json={"theme": "dark"})
        assert response.status_code == 200
        assert response.json()["updated"] == ["theme"]
        assert build_preferences_key("demo_user") not in fake_cache.store

        body = client.get("/api/users/demo_user/preferences").json()
        assert body["source"] == "content-api"
        assert body["data"]["preferences"]["theme"] == "dark"

    def test_invalid_theme_is_400(self, client) -> None:
        response = client.put("/api/users/demo_user/preferences", json={"theme": "purple"})
        assert response.status_code == 400

    def test_unreachable_api_is_502(self, settings, fake_cache, fake_generator) -> None:
        content = ContentClient("http://content.test", transport=httpx.MockTransport(_unreachable))
        client = _client_with(settings, fake_cache, fake_generator, content)

        response = client.get("/api/users/demo_user/preferences")
        assert response.status_code == 502


class TestSubmissions:
    def _payload(self, answers, attempt=0):
        return {
            "userId": "student_123",
            "tutorialId": "react-hooks",
            "attemptNumber": attempt,
            "difficulty": "medium",
            "questions": [q.model_dump(by_alias=True) for q in get_fallback_questions(3, "en")],
            "answers": answers,
        }

    def test_submit_grades_and_suggests_next_difficulty(self, client) -> None:
        response = client.post("/api/submissions", json=self._payload({"0": "B", "1": "C", "2": "B"}))

        assert response.status_code == 201
        body = response.json()
        assert body["record"]["score"] == 3
        assert body["percentage"] == 100
        assert body["nextDifficulty"] == "hard"
        assert body["historyLength"] == 1

    def test_low_score_suggests_easier(self, client) -> None:
        body = client.post("/api/submissions", json=self._payload({"0": "A"})).json()
        assert body["percentage"] == 0
        assert body["nextDifficulty"] == "easy"

    def test_history_lists_and_clears(self, client) -> None:
        client.post("/api/submissions", json=self._payload({"0": "B"}, attempt=0))
        client.post("/api/submissions", json=self._payload({"0": "B", "1": "C"}, attempt=1))

        listed = client.get("/api/submissions/student_123", params={"tutorialId": "react-hooks"}).json()
        assert listed["count"] == 2
        assert [r["attemptNumber"] for r in listed["data"]] == [0, 1]

        assert client.delete("/api/submissions/student_123/react-hooks").json()["success"] is True
        listed = client.get("/api/submissions/student_123", params={"tutorialId": "react-hooks"}).json()
        assert listed["count"] == 0

    def test_history_requires_tutorial_id(self, client) -> None:
        assert client.get("/api/submissions/student_123").status_code == 400

    def test_unknown_answer_letter_is_rejected(self, client) -> None:
        response = client.post("/api/submissions", json=self._payload({"0": "E"}))
        assert response.status_code == 400


class TestSystem:
    def test_home(self, client) -> None:
        body = client.get("/").json()
        assert body["status"] == "running"
        assert body["health"] == "/health"

    def test_health_reports_services(self, client, fake_cache) -> None:
        fake_cache.available = False
        body = client.get("/health").json()

        assert body["status"] == "OK"
        assert body["services"]["contentApi"]["success"] is True
        assert body["services"]["cache"] == {"success": False}
        assert body["services"]["llm"]["provider"] == "fake"

    def test_unknown_endpoint_lists_available_ones(self, client) -> None:
        response = client.get("/api/nope")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Endpoint not found"
        assert body["availableEndpoints"] == AVAILABLE_ENDPOINTS
