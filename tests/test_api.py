"""
Tests for the read-only violation API.
"""

import csv
import io

import pytest
from fastapi.testclient import TestClient

from conftest import ListSource, StubBackend
from models.violation import CSV_HEADER, Violation, ViolationType
from pipeline.engine import PipelineEngine
from runtime.context import create_context_from_config
from web.app import create_app
from web.state import SharedState


def _violation(vid, vtype=ViolationType.HELMETLESS):
    return Violation(
        id=vid,
        type=vtype,
        plate=f"ABC-{1000 + vid}",
        location="Camera 1",
        timestamp=1700000000.0 + vid,
        confidence=90,
    )


@pytest.fixture
def ctx(valid_config):
    return create_context_from_config(valid_config, backend=StubBackend(fail_load=True))


@pytest.fixture
def engine(ctx):
    engine = PipelineEngine(ctx)
    engine.add_camera(ListSource("Camera 1"))
    yield engine
    engine.stop_all(timeout=2.0)


@pytest.fixture
def web_state(ctx, engine):
    state = SharedState()
    state.attach(ctx, engine)
    return state


@pytest.fixture
def client(web_state):
    return TestClient(create_app(web_state))


class TestViolationsEndpoint:
    def test_empty_ledger(self, client):
        response = client.get("/api/violations")
        assert response.status_code == 200
        assert response.json() == {"violations": [], "count": 0, "capacity": 10}

    def test_newest_first(self, client, ctx):
        for i in range(1, 4):
            ctx.ledger.insert(_violation(i))

        data = client.get("/api/violations").json()

        assert [v["id"] for v in data["violations"]] == [3, 2, 1]
        assert data["violations"][0]["type"] == "helmetless"
        assert data["count"] == 3


class TestStatsEndpoint:
    def test_counts(self, client, ctx):
        ctx.ledger.insert(_violation(1, ViolationType.RED_LIGHT))
        ctx.ledger.insert(_violation(2, ViolationType.RED_LIGHT))
        ctx.ledger.insert(_violation(3, ViolationType.TRIPLE_RIDING))

        data = client.get("/api/stats").json()

        assert data["red_light"] == 2
        assert data["triple_riding"] == 1
        assert data["helmetless"] == 0
        assert data["total"] == 3


class TestStatusEndpoint:
    def test_fallback_mode_reported(self, client):
        data = client.get("/api/status").json()

        assert data["model_ready"] is False
        assert data["detection_mode"] == "fallback"
        assert "model_unavailable" in data["alerts"]
        # Workers are not started in this test
        assert data["status"] == "offline"
        assert data["active"] is False
        assert data["cameras"][0]["source_id"] == "Camera 1"

    def test_last_violation_tracked(self, client, ctx):
        ctx.ledger.insert(_violation(5))
        ctx.ledger.insert(_violation(6))

        data = client.get("/api/status").json()

        assert data["last_violation_id"] == 6
        assert data["violations_seen"] == 2

    def test_model_mode_when_ready(self, client, ctx):
        ctx.backend.fail_load = False
        ctx.backend.load_model()

        data = client.get("/api/status").json()

        assert data["model_ready"] is True
        assert data["detection_mode"] == "model"


class TestSystemControl:
    def test_start_then_stop(self, client, engine):
        source = engine.get_worker("Camera 1").source

        started = client.post("/api/system/start")

        assert started.status_code == 200
        assert started.json() == {"active": True, "cameras_running": 1}
        status = client.get("/api/status").json()
        assert status["active"] is True
        assert status["status"] == "degraded"

        stopped = client.post("/api/system/stop")

        assert stopped.json() == {"active": False, "cameras_running": 0}
        assert source.close_calls == 1
        status = client.get("/api/status").json()
        assert status["active"] is False
        assert status["status"] == "offline"

    def test_restart_after_stop(self, client, engine):
        source = engine.get_worker("Camera 1").source
        client.post("/api/system/start")
        client.post("/api/system/stop")

        again = client.post("/api/system/start").json()

        assert again["active"] is True
        assert source.open_calls == 2
        assert engine.get_worker("Camera 1").is_running

    def test_start_twice_keeps_one_worker_thread(self, client, engine):
        source = engine.get_worker("Camera 1").source

        client.post("/api/system/start")
        client.post("/api/system/start")

        assert source.open_calls == 1


class TestExportEndpoint:
    def test_csv_export(self, client, ctx):
        ctx.ledger.insert(_violation(1, ViolationType.OVERSPEEDING))
        ctx.ledger.insert(_violation(2, ViolationType.HELMETLESS))

        response = client.get("/api/violations/export.csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == CSV_HEADER
        assert rows[1][1:] == ["helmetless", "ABC-1002", "Camera 1", "90%"]
        assert rows[2][1] == "overspeeding"


class TestUninitialized:
    def test_503_without_pipeline(self):
        client = TestClient(create_app(SharedState()))
        assert client.get("/api/violations").status_code == 503

    def test_system_control_503_without_engine(self, ctx):
        state = SharedState()
        state.attach(ctx)
        client = TestClient(create_app(state))

        assert client.post("/api/system/start").status_code == 503
        assert client.post("/api/system/stop").status_code == 503
