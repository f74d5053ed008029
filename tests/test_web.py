"""Tests for the Flask bridge: config endpoints, cycle submission, cancel and auth."""

from __future__ import annotations

import asyncio
import io
import queue
import threading

import pytest

from sightline.config import Config, ConfigStore
from sightline.events import Reset
from sightline.models import ModelReply
from sightline.orchestrator import Orchestrator
from sightline.web.app import create_app

EXTRACTION = '{"problem_statement":"Add two numbers","problem_type":"coding"}'
SOLUTION = "```python\nsum(a,b)\n```"


class ScriptedBackend:
    def __init__(self, replies=()) -> None:
        self.replies = list(replies)
        self.requests = []

    async def generate(self, request):
        self.requests.append(request)
        return ModelReply(text=self.replies.pop(0))

    async def aclose(self) -> None:
        pass


class StallingBackend:
    """Never answers; signals a threading.Event once a request is in flight."""

    def __init__(self) -> None:
        self.started = threading.Event()

    async def generate(self, request):
        self.started.set()
        await asyncio.Event().wait()

    async def aclose(self) -> None:
        pass


def _wait_for(subscriber: queue.Queue, event_type: str, timeout: float = 5.0) -> dict:
    while True:
        event = subscriber.get(timeout=timeout)
        if event["type"] == event_type:
            return event


@pytest.fixture
def make_app(tmp_path, monkeypatch):
    monkeypatch.delenv("SIGHTLINE_BRIDGE_TOKEN", raising=False)
    apps = []

    def factory(backend=None, token: str | None = None):
        if token is not None:
            monkeypatch.setenv("SIGHTLINE_BRIDGE_TOKEN", token)
        store = ConfigStore(tmp_path / "config.json")
        orchestrator = Orchestrator(
            Config(api_key="test-key-123456"),
            backend=backend or ScriptedBackend(),
        )
        app = create_app(store, orchestrator, upload_dir=tmp_path / "uploads")
        app.config["TESTING"] = True
        apps.append(app)
        return app

    yield factory
    for app in apps:
        app.extensions["sightline"].runner.shutdown()


@pytest.fixture
def screenshot(tmp_path):
    path = tmp_path / "shot.png"
    path.write_bytes(b"\x89PNG fake screenshot")
    return str(path)


class TestConfigEndpoints:
    def test_get_masks_key(self, make_app):
        client = make_app().test_client()
        client.post("/config", json={"api_key": "AIzaSyA-very-secret-key"})
        data = client.get("/config").get_json()
        assert data["api_key"] == "AIza...-key"
        assert data["llm_provider"] == "gemini"

    def test_update(self, make_app):
        app = make_app()
        resp = app.test_client().post("/config", json={"language": "cpp"})
        assert resp.status_code == 200
        assert resp.get_json()["language"] == "cpp"
        assert app.extensions["sightline"].store.load().language == "cpp"

    def test_update_reaches_orchestrator(self, make_app):
        app = make_app()
        app.test_client().post("/config", json={"language": "java"})
        runner = app.extensions["sightline"].runner
        runner.snapshot()  # drains pending loop callbacks
        assert runner.orchestrator.config.language == "java"

    def test_update_coerces_numeric_strings(self, make_app):
        resp = make_app().test_client().post("/config", json={"truncation_retries": "3"})
        assert resp.status_code == 200
        assert resp.get_json()["truncation_retries"] == 3

    @pytest.mark.parametrize("body", [
        {},
        {"api_key": "short"},
        {"api_key": 123},
        {"unknown_field": 1},
        {"llm_provider": "azure"},
        {"truncation_retries": "several"},
    ])
    def test_rejects_bad_updates(self, make_app, body):
        resp = make_app().test_client().post("/config", json=body)
        assert resp.status_code == 400
        assert "error" in resp.get_json()


class TestCycles:
    def test_process_json_paths(self, make_app, screenshot):
        app = make_app(ScriptedBackend([EXTRACTION, SOLUTION]))
        subscriber = app.extensions["sightline"].events.subscribe()
        client = app.test_client()

        resp = client.post("/process", json={"images": [screenshot]})

        assert resp.status_code == 202
        assert resp.get_json()["images"] == [screenshot]
        event = _wait_for(subscriber, "solution_ready")
        assert event["solution"]["code"] == "sum(a,b)"
        _wait_for(subscriber, "progress")  # the 100% checkpoint follows

        state = client.get("/state").get_json()
        assert state["problem"]["problem_statement"] == "Add two numbers"
        assert state["solution"]["code"] == "sum(a,b)"

    def test_process_multipart_upload(self, make_app, tmp_path):
        backend = ScriptedBackend([EXTRACTION, SOLUTION])
        app = make_app(backend)
        subscriber = app.extensions["sightline"].events.subscribe()

        resp = app.test_client().post(
            "/process",
            data={"images": [
                (io.BytesIO(b"\x89PNG upload"), "shot one.png"),
                (io.BytesIO(b"not an image"), "notes.txt"),
            ]},
            content_type="multipart/form-data",
        )

        assert resp.status_code == 202
        paths = resp.get_json()["images"]
        assert len(paths) == 1
        assert paths[0].endswith("_shot_one.png")
        assert paths[0].startswith(str((tmp_path / "uploads").resolve()))
        _wait_for(subscriber, "solution_ready")
        assert len(backend.requests[0].images) == 1

    def test_process_without_images(self, make_app):
        client = make_app().test_client()
        assert client.post("/process", json={}).status_code == 400
        assert client.post("/process", json={"images": "x.png"}).status_code == 400

    def test_failure_is_reported_as_event(self, make_app, tmp_path):
        app = make_app()
        subscriber = app.extensions["sightline"].events.subscribe()
        resp = app.test_client().post("/process", json={"images": [str(tmp_path / "missing.png")]})
        assert resp.status_code == 202
        event = _wait_for(subscriber, "error")
        assert event["kind"] == "input"
        assert event["phase"] == "solve"

    def test_debug_without_problem(self, make_app, screenshot):
        app = make_app()
        subscriber = app.extensions["sightline"].events.subscribe()
        resp = app.test_client().post("/debug", json={"images": [screenshot]})
        assert resp.status_code == 202
        event = _wait_for(subscriber, "error")
        assert event["phase"] == "debug"

    def test_cancel(self, make_app, screenshot):
        backend = StallingBackend()
        app = make_app(backend)
        subscriber = app.extensions["sightline"].events.subscribe()
        client = app.test_client()

        client.post("/process", json={"images": [screenshot]})
        assert backend.started.wait(5.0)
        assert client.get("/state").get_json()["busy"] is True

        assert client.post("/cancel").get_json() == {"cancelled": True}
        assert _wait_for(subscriber, "reset")["reason"] == "cancelled"
        state = client.get("/state").get_json()
        assert state["busy"] is False
        assert state["problem"] is None

    def test_cancel_when_idle(self, make_app):
        assert make_app().test_client().post("/cancel").get_json() == {"cancelled": False}


def test_event_stream(make_app):
    app = make_app()
    broadcaster = app.extensions["sightline"].events
    resp = app.test_client().get("/events")
    assert resp.mimetype == "text/event-stream"

    chunks = resp.iter_encoded()
    assert next(chunks) == b": connected\n\n"

    broadcaster.emit(Reset(reason="cancelled"))
    chunk = next(chunks)
    assert chunk.startswith(b"data: ")
    assert b'"type": "reset"' in chunk
    resp.close()


class TestAuth:
    def test_missing_token(self, make_app):
        client = make_app(token="s3cret").test_client()
        assert client.get("/config").status_code == 401
        assert client.post("/cancel").status_code == 401

    def test_header_token(self, make_app):
        client = make_app(token="s3cret").test_client()
        assert client.get("/config", headers={"X-Sightline-Token": "s3cret"}).status_code == 200

    def test_query_token(self, make_app):
        client = make_app(token="s3cret").test_client()
        assert client.get("/state?token=s3cret").status_code == 200
        assert client.get("/state?token=wrong").status_code == 401

    def test_open_without_configured_token(self, make_app):
        assert make_app().test_client().get("/config").status_code == 200
