"""Abstract interface for remote model backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sightline.models import ModelReply, ModelRequest


@runtime_checkable
class ModelBackend(Protocol):
    async def generate(self, request: ModelRequest) -> ModelReply: ...

    async def aclose(self) -> None: ...
