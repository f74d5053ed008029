"""OpenAI-compatible chat completions backend (OpenAI or a local Ollama server)."""

from __future__ import annotations

import openai
from openai import AsyncOpenAI

from sightline.errors import RemoteTimeout, TransientNetworkError, error_for_status
from sightline.models import FinishReason, ModelReply, ModelRequest

_FINISH_MAP = {
    "stop": FinishReason.NORMAL,
    "length": FinishReason.TRUNCATED,
    "content_filter": FinishReason.BLOCKED,
}


class OpenAIBackend:
    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        # Truncation retries happen in the solver; no SDK-level retries.
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def generate(self, request: ModelRequest) -> ModelReply:
        settings = request.settings
        try:
            response = await self._client.chat.completions.create(
                model=request.model,
                messages=[{"role": "user", "content": build_content(request)}],
                temperature=settings.temperature,
                top_p=settings.top_p,
                max_tokens=settings.max_output_tokens,
            )
        except openai.APITimeoutError as exc:
            raise RemoteTimeout() from exc
        except openai.APIConnectionError as exc:
            raise TransientNetworkError() from exc
        except openai.APIStatusError as exc:
            raise error_for_status(exc.status_code, str(exc.message)) from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            return ModelReply(text="", finish_reason=FinishReason.UNKNOWN)
        choice = choices[0]
        raw_finish = choice.finish_reason or ""
        message = choice.message
        text = (message.content if message is not None else None) or ""
        refusal = getattr(message, "refusal", None) if message is not None else None
        finish = _FINISH_MAP.get(raw_finish, FinishReason.UNKNOWN)
        if refusal and not text:
            finish = FinishReason.BLOCKED
        return ModelReply(
            text=text,
            finish_reason=finish,
            block_reason=refusal,
            raw_finish_reason=raw_finish,
        )

    async def aclose(self) -> None:
        await self._client.close()


def build_content(request: ModelRequest) -> str | list[dict]:
    """Text-only requests send a plain string; images become data-URL parts."""
    if not request.images:
        return request.prompt
    parts: list[dict] = [{"type": "text", "text": request.prompt}]
    for image in request.images:
        parts.append({
            "type": "image_url",
            "image_url": {"url": f"data:{image.mime_type};base64,{image.data}"},
        })
    return parts
