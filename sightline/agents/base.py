"""Base agent with shared model calling logic."""

from __future__ import annotations

from sightline.backend_base import ModelBackend
from sightline.config import Config
from sightline.errors import BlockedResponse, ResponseEmpty, TruncatedResponse
from sightline.models import EncodedImage, FinishReason, ModelReply, ModelRequest


class BaseAgent:
    def __init__(self, config: Config, backend: ModelBackend) -> None:
        self.config = config
        self._backend = backend

    async def _call_llm(
        self,
        prompt: str,
        model: str,
        images: list[EncodedImage] | None = None,
    ) -> str:
        request = ModelRequest(
            model=model,
            prompt=prompt,
            images=list(images or []),
            settings=self.config.generation_settings(),
        )
        reply = await self._backend.generate(request)
        return reply_text(reply)


def reply_text(reply: ModelReply) -> str:
    """Return the reply text, or raise the ResponseEmpty subclass that explains why not."""
    if reply.finish_reason is FinishReason.TRUNCATED:
        raise TruncatedResponse()
    if reply.text.strip():
        return reply.text
    if reply.finish_reason is FinishReason.BLOCKED or reply.block_reason:
        reason = reply.block_reason or reply.raw_finish_reason
        message = BlockedResponse.default_message
        if reason:
            message += f" Reason: {reason}."
        raise BlockedResponse(message)
    raise ResponseEmpty()
