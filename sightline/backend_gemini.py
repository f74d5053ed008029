"""Gemini REST backend (generateContent) over httpx."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from sightline.errors import RemoteTimeout, TransientNetworkError, error_for_status
from sightline.models import FinishReason, ModelReply, ModelRequest

# Gemini finishReason values
_FINISH_NORMAL = {"STOP"}
_FINISH_TRUNCATED = {"MAX_TOKENS"}
_FINISH_BLOCKED = {
    "SAFETY",
    "RECITATION",
    "BLOCKLIST",
    "PROHIBITED_CONTENT",
    "SPII",
    "IMAGE_SAFETY",
}

_HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


@dataclass
class GeminiConfig:
    api_key: str
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: float = 60.0


class GeminiBackend:
    """Calls ``models/{model}:generateContent`` with inline base64 images."""

    def __init__(self, config: GeminiConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=config.timeout,
            transport=transport,
        )

    async def generate(self, request: ModelRequest) -> ModelReply:
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self._config.api_key,
        }
        try:
            resp = await self._client.post(
                f"/models/{request.model}:generateContent",
                json=build_payload(request),
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            raise RemoteTimeout() from exc
        except httpx.TransportError as exc:
            raise TransientNetworkError() from exc

        if resp.status_code >= 400:
            raise error_for_status(resp.status_code, _error_detail(resp))

        try:
            data = resp.json()
        except ValueError:
            data = {}
        return parse_reply(data)

    async def aclose(self) -> None:
        await self._client.aclose()


def build_payload(request: ModelRequest) -> dict:
    parts: list[dict] = [{"text": request.prompt}]
    for image in request.images:
        parts.append({"inlineData": {"mimeType": image.mime_type, "data": image.data}})
    settings = request.settings
    return {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": {
            "temperature": settings.temperature,
            "maxOutputTokens": settings.max_output_tokens,
            "topP": settings.top_p,
            "topK": settings.top_k,
        },
        "safetySettings": [
            {"category": category, "threshold": settings.safety_threshold}
            for category in _HARM_CATEGORIES
        ],
    }


def parse_reply(data: object) -> ModelReply:
    """Build a ModelReply from a generateContent body; any field may be missing."""
    if not isinstance(data, dict):
        return ModelReply(text="", finish_reason=FinishReason.UNKNOWN)

    feedback = data.get("promptFeedback") or {}
    block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None

    candidates = data.get("candidates") or []
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        finish = FinishReason.BLOCKED if block_reason else FinishReason.UNKNOWN
        return ModelReply(text="", finish_reason=finish, block_reason=block_reason)

    candidate = candidates[0]
    raw_finish = str(candidate.get("finishReason") or "")
    content = candidate.get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    texts = [
        p["text"] for p in (parts or [])
        if isinstance(p, dict) and isinstance(p.get("text"), str) and not p.get("thought")
    ]

    if block_reason or raw_finish in _FINISH_BLOCKED:
        finish = FinishReason.BLOCKED
    elif raw_finish in _FINISH_TRUNCATED:
        finish = FinishReason.TRUNCATED
    elif raw_finish in _FINISH_NORMAL:
        finish = FinishReason.NORMAL
    else:
        finish = FinishReason.UNKNOWN

    return ModelReply(
        text="".join(texts),
        finish_reason=finish,
        block_reason=block_reason,
        raw_finish_reason=raw_finish,
    )


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", ""))
    return ""
