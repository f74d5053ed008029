"""Solver agent: produces a solution or answer from an extracted problem."""

from __future__ import annotations

import sys

from sightline.agents.base import BaseAgent
from sightline.errors import TruncatedResponse
from sightline.models import ProblemInfo, SolutionResult
from sightline.parsing import parse_solution_text
from sightline.prompts import SolvingPlan, select_solving_plan


class SolverAgent(BaseAgent):
    def plan(self, problem: ProblemInfo) -> SolvingPlan:
        return select_solving_plan(
            problem.problem_type, problem.complexity, self.config.model_tiers()
        )

    async def solve(self, problem: ProblemInfo) -> SolutionResult:
        """Run the solving call, retrying truncated replies with the terse template."""
        plan = self.plan(problem)
        max_retries = max(0, self.config.truncation_retries)
        terse = False
        for attempt in range(max_retries + 1):
            prompt = plan.template.render(problem, self.config.language, terse=terse)
            try:
                raw = await self._call_llm(prompt=prompt, model=plan.model)
            except TruncatedResponse:
                if attempt >= max_retries:
                    raise
                print(
                    f"Attempt {attempt + 1} truncated, retrying with a shorter prompt...",
                    file=sys.stderr,
                )
                terse = True
                continue
            return parse_solution_text(raw, problem.problem_type)
        raise TruncatedResponse()
