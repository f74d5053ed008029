"""Shared-token auth for the local bridge."""

from __future__ import annotations

import hmac
from functools import wraps

from flask import current_app, jsonify, request


def request_token() -> str:
    """Token from the X-Sightline-Token header, or ?token= for EventSource clients."""
    return request.headers.get("X-Sightline-Token") or request.args.get("token", "")


def token_required(f):
    """Reject the request with 401 unless it carries the configured bridge token."""

    @wraps(f)
    def decorated(*args, **kwargs):
        expected = current_app.config.get("BRIDGE_TOKEN") or ""
        if expected and not hmac.compare_digest(request_token(), expected):
            return jsonify({"error": "unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated
