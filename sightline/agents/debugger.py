"""Debugger agent: analyzes follow-up screenshots (errors, failing tests) for a known problem."""

from __future__ import annotations

from sightline.agents.base import BaseAgent
from sightline.models import DebugResult, EncodedImage, ProblemInfo
from sightline.parsing import parse_debug_text
from sightline.prompts import debug_prompt


class DebuggerAgent(BaseAgent):
    async def debug(self, problem: ProblemInfo, images: list[EncodedImage]) -> DebugResult:
        raw = await self._call_llm(
            prompt=debug_prompt(problem, self.config.language),
            model=self.config.debugging_model,
            images=images,
        )
        return parse_debug_text(raw)
