"""Extractor agent: transcribes and classifies a problem from screenshots."""

from __future__ import annotations

from sightline.agents.base import BaseAgent
from sightline.models import EncodedImage, ProblemInfo
from sightline.parsing import parse_problem_info
from sightline.prompts import extraction_prompt


class ExtractorAgent(BaseAgent):
    async def extract(self, images: list[EncodedImage]) -> ProblemInfo:
        raw = await self._call_llm(
            prompt=extraction_prompt(self.config.language),
            model=self.config.extraction_model,
            images=images,
        )
        # A malformed extraction is not retried; ParseError goes straight to the caller.
        return parse_problem_info(raw)
