"""Tests for the FastAPI adapter (nudge_engine/api/app.py)."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from nudge_engine.api.app import INVALID_METRICS_MESSAGE, create_app
from nudge_engine.config import AppConfig, ServerConfig
from nudge_engine.recommendations.recommender import Recommender

_METRICS = {
    "water_ml": 900,
    "steps": 4000,
    "sleep_hours": 6,
    "screen_time_min": 150,
    "mood_1to5": 2,
}
_TIME = "2023-12-20T15:00:00Z"
_DATE = "2023-12-20"
_REFERENCE_ORDER = ["screen-break-10", "sleep-winddown-15", "water-500", "steps-1k"]


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


def _recommend(client: TestClient, local_date: str = _DATE, **overrides) -> list[dict]:
    body = {"metrics": _METRICS, "currentTime": _TIME, "localDate": local_date}
    body.update(overrides)
    resp = client.post("/recommendations", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()["tasks"]


def _ids(tasks: list[dict]) -> list[str]:
    return [t["id"] for t in tasks]


class TestServiceEndpoints:
    def test_root_lists_endpoints(self, client):
        body = client.get("/").json()
        assert body["name"] == "Nudge Engine API"
        assert body["endpoints"]["recommendations"] == "POST /recommendations"

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert "timestamp" in body

    def test_unknown_route(self, client):
        resp = client.get("/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Endpoint not found", "path": "/nope", "method": "GET"}


class TestRecommendations:
    def test_reference_order(self, client):
        tasks = _recommend(client)
        assert _ids(tasks) == _REFERENCE_ORDER

    def test_reference_scores(self, client):
        scores = {t["id"]: t["score"] for t in _recommend(client)}
        assert scores["screen-break-10"] == pytest.approx(2.1918)
        assert scores["sleep-winddown-15"] == pytest.approx(2.0667)
        assert scores["water-500"] == pytest.approx(1.6784)
        assert scores["steps-1k"] == pytest.approx(1.6418)

    def test_response_shape(self, client):
        resp = client.post(
            "/recommendations",
            json={"metrics": _METRICS, "currentTime": _TIME, "localDate": _DATE},
        )
        body = resp.json()
        assert body["timestamp"] == _TIME
        assert body["localDate"] == _DATE
        first = body["tasks"][0]
        for key in (
            "id", "title", "category", "impact_weight", "effort_min",
            "score", "rationale", "urgencyContribution", "impactContribution",
            "effortContribution", "timeOfDayContribution", "ignoresPenalty",
        ):
            assert key in first

    def test_time_gate_only_for_gated_tasks(self, client):
        tasks = {t["id"]: t for t in _recommend(client)}
        assert "time_gate" not in tasks["screen-break-10"]
        assert tasks["sleep-winddown-15"]["time_gate"] == "evening"

    def test_whole_numbers_serialized_as_integers(self, client):
        resp = client.post(
            "/recommendations",
            json={"metrics": _METRICS, "currentTime": _TIME, "localDate": _DATE},
        )
        assert '"impact_weight":5,' in resp.text.replace(" ", "")
        water = next(t for t in resp.json()["tasks"] if t["id"] == "water-500")
        assert water["impact_weight"] == 4
        assert isinstance(water["effort_min"], int)

    def test_defaults_for_time_and_date(self, client):
        resp = client.post("/recommendations", json={"metrics": _METRICS})
        assert resp.status_code == 200
        assert len(resp.json()["tasks"]) == 4

    def test_missing_metrics(self, client):
        resp = client.post("/recommendations", json={"currentTime": _TIME})
        assert resp.status_code == 400
        assert resp.json() == {"error": INVALID_METRICS_MESSAGE}

    def test_missing_metric_field(self, client):
        metrics = {k: v for k, v in _METRICS.items() if k != "steps"}
        resp = client.post("/recommendations", json={"metrics": metrics})
        assert resp.status_code == 400
        assert resp.json()["error"] == INVALID_METRICS_MESSAGE

    def test_string_metric_rejected(self, client):
        resp = client.post("/recommendations", json={"metrics": dict(_METRICS, water_ml="900")})
        assert resp.status_code == 400

    @pytest.mark.parametrize("mood", [0, 6])
    def test_mood_out_of_range(self, client, mood):
        resp = client.post("/recommendations", json={"metrics": dict(_METRICS, mood_1to5=mood)})
        assert resp.status_code == 400
        assert resp.json()["error"] == INVALID_METRICS_MESSAGE

    def test_bad_current_time(self, client):
        resp = client.post(
            "/recommendations", json={"metrics": _METRICS, "currentTime": "half past three"}
        )
        assert resp.status_code == 400
        assert "currentTime" in resp.json()["error"]

    def test_bad_local_date(self, client):
        resp = client.post(
            "/recommendations", json={"metrics": _METRICS, "localDate": "20/12/2023"}
        )
        assert resp.status_code == 400
        assert "localDate" in resp.json()["error"]

    def test_malformed_body(self, client):
        resp = client.post(
            "/recommendations",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Malformed request body"}


class TestActions:
    def test_complete_hides_task(self, client):
        resp = client.post(
            "/actions/complete",
            json={"taskId": "screen-break-10", "timestamp": "2023-12-20T10:00:00Z"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Task screen-break-10 marked as completed"
        assert body["task"]["completedToday"] is True
        assert body["task"]["lastCompleteDate"] == "2023-12-20"

        assert _ids(_recommend(client)) == [
            "sleep-winddown-15", "water-500", "steps-1k", "water-250",
        ]

    def test_completion_rolls_over_next_day(self, client):
        client.post(
            "/actions/complete",
            json={"taskId": "screen-break-10", "timestamp": "2023-12-20T10:00:00Z"},
        )
        assert _ids(_recommend(client, local_date="2023-12-21")) == _REFERENCE_ORDER

    def test_dismiss_counts_ignores(self, client):
        payload = {"taskId": "water-500", "timestamp": "2023-12-20T10:00:00Z"}
        client.post("/actions/dismiss", json=payload)
        resp = client.post("/actions/dismiss", json=payload)
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Task water-500 dismissed (ignores: 2)"
        assert body["task"]["ignores"] == 2
        assert body["task"]["lastIgnoreDate"] == "2023-12-20"

    def test_three_dismissals_substitute_micro(self, client):
        payload = {"taskId": "water-500", "timestamp": "2023-12-20T10:00:00Z"}
        for _ in range(3):
            client.post("/actions/dismiss", json=payload)
        ids = _ids(_recommend(client))
        assert "water-500" not in ids
        assert ids == ["screen-break-10", "sleep-winddown-15", "steps-1k", "water-250"]

    def test_unknown_task(self, client):
        resp = client.post("/actions/complete", json={"taskId": "ghost"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Task not found"}

    def test_missing_task_id(self, client):
        resp = client.post("/actions/dismiss", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "taskId is required"}

    def test_bad_timestamp(self, client):
        resp = client.post(
            "/actions/dismiss", json={"taskId": "water-500", "timestamp": "yesterday"}
        )
        assert resp.status_code == 400


class TestAdmin:
    def test_list_tasks(self, client):
        tasks = client.get("/admin/tasks").json()["tasks"]
        assert len(tasks) == 7
        assert {"id", "ignores", "completedToday"} <= set(tasks[0])

    def test_reset_clears_counters(self, client):
        client.post("/actions/dismiss", json={"taskId": "water-500"})
        client.post("/actions/complete", json={"taskId": "steps-1k"})
        resp = client.post("/admin/reset")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Daily state reset for all tasks"
        for task in client.get("/admin/tasks").json()["tasks"]:
            assert task["ignores"] == 0
            assert task["completedToday"] is False

    def test_seed_reloads_catalog(self, client):
        client.post("/actions/dismiss", json={"taskId": "water-500"})
        resp = client.post("/admin/seed")
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Loaded 7 seed tasks"
        assert all(t["ignores"] == 0 for t in body["tasks"])


class TestConfiguration:
    def test_unseeded_app_returns_empty(self):
        config = AppConfig(server=ServerConfig(seed_on_startup=False))
        client = TestClient(create_app(config))
        assert _recommend(client) == []

    def test_injected_recommender(self):
        engine = Recommender(max_results=2)
        engine.load_seed_data()
        client = TestClient(create_app(recommender=engine))
        assert _ids(_recommend(client)) == _REFERENCE_ORDER[:2]

    def test_custom_catalog_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(
            '[{"id": "stretch-5", "title": "Stretch", "category": "movement",'
            ' "impact_weight": 3, "effort_min": 5}]'
        )
        config = AppConfig(server=ServerConfig(catalog_file=str(path)))
        client = TestClient(create_app(config))
        assert _ids(_recommend(client)) == ["stretch-5"]
