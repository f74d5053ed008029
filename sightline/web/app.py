"""Flask bridge between an overlay UI and the Sightline orchestrator."""

from __future__ import annotations

import json
import os
import queue
import uuid
from dataclasses import dataclass
from pathlib import Path

from flask import Flask, Response, current_app, jsonify, request, stream_with_context
from werkzeug.utils import secure_filename

from sightline.config import ConfigStore, is_valid_api_key_format
from sightline.events import BroadcastSink
from sightline.orchestrator import Orchestrator
from sightline.web.auth import token_required
from sightline.web.runner import CycleRunner

ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"}
KEEPALIVE_SECONDS = 15.0


@dataclass
class BridgeState:
    store: ConfigStore
    events: BroadcastSink
    runner: CycleRunner
    upload_dir: Path


def create_app(
    store: ConfigStore | None = None,
    orchestrator: Orchestrator | None = None,
    upload_dir: str | Path | None = None,
) -> Flask:
    app = Flask(__name__)
    app.config["BRIDGE_TOKEN"] = os.environ.get("SIGHTLINE_BRIDGE_TOKEN", "")

    store = store or ConfigStore()
    events = BroadcastSink()
    if orchestrator is None:
        orchestrator = Orchestrator(store.load(), events=events)
    else:
        orchestrator.events = events
    runner = CycleRunner(orchestrator)
    store.subscribe(runner.apply_config)

    uploads = Path(upload_dir) if upload_dir is not None else store.path.parent / "uploads"
    app.extensions["sightline"] = BridgeState(
        store=store, events=events, runner=runner, upload_dir=uploads
    )
    _register_routes(app)
    return app


def _state() -> BridgeState:
    return current_app.extensions["sightline"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _save_uploaded_images(upload_dir: Path) -> list[str]:
    """Save uploaded image files and return their absolute paths."""
    files = request.files.getlist("images")
    if not files:
        return []
    upload_dir.mkdir(parents=True, exist_ok=True)
    saved: list[str] = []
    for f in files:
        if not f.filename:
            continue
        ext = Path(f.filename).suffix.lower()
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            continue
        safe_name = secure_filename(f.filename) or f"screenshot{ext}"
        dest = upload_dir / f"{uuid.uuid4().hex[:8]}_{safe_name}"
        f.save(str(dest))
        saved.append(str(dest.resolve()))
    return saved


def _collect_image_paths() -> list[str]:
    """Image paths from a JSON body ({"images": [...]}) or from multipart uploads."""
    if request.files:
        return _save_uploaded_images(_state().upload_dir)
    body = request.get_json(silent=True) or {}
    images = body.get("images") if isinstance(body, dict) else None
    if not isinstance(images, list):
        return []
    return [str(p) for p in images if isinstance(p, str) and p.strip()]


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def _register_routes(app: Flask) -> None:
    @app.route("/process", methods=["POST"])
    @token_required
    def process():
        paths = _collect_image_paths()
        if not paths:
            return jsonify({"error": "No screenshots provided."}), 400
        _state().runner.submit_process(paths)
        return jsonify({"status": "accepted", "images": paths}), 202

    @app.route("/debug", methods=["POST"])
    @token_required
    def debug():
        paths = _collect_image_paths()
        if not paths:
            return jsonify({"error": "No screenshots provided."}), 400
        _state().runner.submit_debug(paths)
        return jsonify({"status": "accepted", "images": paths}), 202

    @app.route("/cancel", methods=["POST"])
    @token_required
    def cancel():
        return jsonify({"cancelled": _state().runner.cancel()})

    @app.route("/state")
    @token_required
    def state():
        return jsonify(_state().runner.snapshot())

    @app.route("/config", methods=["GET"])
    @token_required
    def get_config():
        return jsonify(_state().store.load().public_dict())

    @app.route("/config", methods=["POST"])
    @token_required
    def update_config():
        body = request.get_json(silent=True)
        if not isinstance(body, dict) or not body:
            return jsonify({"error": "Expected a JSON object of config fields."}), 400
        api_key = body.get("api_key")
        if api_key is not None and (not isinstance(api_key, str) or not is_valid_api_key_format(api_key)):
            return jsonify({"error": "Invalid API key format."}), 400
        try:
            config = _state().store.update(**body)
        except (TypeError, ValueError) as e:
            return jsonify({"error": str(e)}), 400
        return jsonify(config.public_dict())

    @app.route("/events")
    @token_required
    def events():
        broadcaster = _state().events
        subscriber = broadcaster.subscribe()

        def generate():
            try:
                yield ": connected\n\n"
                while True:
                    try:
                        msg = subscriber.get(timeout=KEEPALIVE_SECONDS)
                    except queue.Empty:
                        yield ": keep-alive\n\n"
                        continue
                    yield f"data: {json.dumps(msg)}\n\n"
            finally:
                broadcaster.unsubscribe(subscriber)

        return Response(
            stream_with_context(generate()),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )
