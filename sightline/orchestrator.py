"""Extract -> solve cycle driver with single-flight cancellation."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine, Sequence
from typing import Any, TypeVar

from sightline.agents.debugger import DebuggerAgent
from sightline.agents.extractor import ExtractorAgent
from sightline.agents.solver import SolverAgent
from sightline.backend_base import ModelBackend
from sightline.backend_factory import create_backend
from sightline.config import Config
from sightline.errors import Cancelled, ConfigError, InputError, ProcessingError
from sightline.events import (
    DebugReady,
    Error,
    Event,
    EventSink,
    NullSink,
    ProblemExtracted,
    Progress,
    Reset,
    SolutionReady,
)
from sightline.images import load_images
from sightline.models import DebugResult, ProblemInfo, SolutionResult

T = TypeVar("T")


class Orchestrator:
    """Runs processing cycles against a model backend and reports through an event sink.

    At most one solve cycle and one debug cycle are in flight at a time; starting a
    new one cancels its predecessor. All methods must be called from the event loop
    thread that runs the cycles.
    """

    def __init__(
        self,
        config: Config,
        backend: ModelBackend | None = None,
        events: EventSink | None = None,
    ) -> None:
        self.config = config
        self.events: EventSink = events or NullSink()
        self._backend = backend
        self._owns_backend = backend is None
        self._retired_backends: list[ModelBackend] = []

        self.problem: ProblemInfo | None = None
        self.solution: SolutionResult | None = None
        self.debug_result: DebugResult | None = None

        self._solve_task: asyncio.Task | None = None
        self._debug_task: asyncio.Task | None = None
        self._solve_cycle = 0
        self._debug_cycle = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process(self, image_paths: Sequence[str]) -> SolutionResult:
        """Extract the problem from screenshots and solve it.

        Raises a ProcessingError subclass on failure, or Cancelled if this cycle is
        cancelled or superseded by a newer call.
        """
        self._solve_cycle += 1
        cycle = self._solve_cycle
        previous = self._solve_task
        if previous is not None and not previous.done():
            self._log("New processing request; cancelling the previous cycle.")
            previous.cancel()
        task = asyncio.create_task(self._run_solve(cycle, list(image_paths)))
        self._solve_task = task
        return await self._await_cycle(task)

    async def debug(
        self,
        image_paths: Sequence[str],
        problem: ProblemInfo | None = None,
    ) -> DebugResult:
        """Analyze follow-up screenshots against the current (or given) problem."""
        self._debug_cycle += 1
        cycle = self._debug_cycle
        previous = self._debug_task
        if previous is not None and not previous.done():
            previous.cancel()
        task = asyncio.create_task(self._run_debug(cycle, list(image_paths), problem))
        self._debug_task = task
        return await self._await_cycle(task)

    def cancel(self) -> bool:
        """Cancel any in-flight cycles and clear the current problem and solution."""
        cancelled = False
        for task in (self._solve_task, self._debug_task):
            if task is not None and not task.done():
                task.cancel()
                cancelled = True
        self._solve_task = None
        self._debug_task = None
        # Invalidate the cycle ids so nothing from the cancelled cycles is published.
        self._solve_cycle += 1
        self._debug_cycle += 1
        self._reset_state()
        self.debug_result = None
        if cancelled:
            self._log("Processing cancelled.")
            self.events.emit(Reset(reason="cancelled"))
        return cancelled

    def apply_config(self, config: Config) -> None:
        """Install a new configuration; the backend is rebuilt on the next cycle.

        The replaced backend is closed by ``release_retired_backends`` once idle.
        """
        self.config = config
        if self._owns_backend and self._backend is not None:
            self._retired_backends.append(self._backend)
            self._backend = None

    async def release_retired_backends(self) -> None:
        """Close backends replaced by apply_config once no other cycle can still use them."""
        current = asyncio.current_task()
        for task in (self._solve_task, self._debug_task):
            if task is not None and task is not current and not task.done():
                return
        backends = self._retired_backends
        self._retired_backends = []
        for backend in backends:
            await backend.aclose()

    @property
    def busy(self) -> bool:
        return any(t is not None and not t.done() for t in (self._solve_task, self._debug_task))

    async def aclose(self) -> None:
        """Close backends created by this orchestrator."""
        backends = self._retired_backends
        self._retired_backends = []
        if self._owns_backend and self._backend is not None:
            backends.append(self._backend)
            self._backend = None
        for backend in backends:
            await backend.aclose()

    def process_sync(self, image_paths: Sequence[str]) -> SolutionResult:
        return self._run_sync(self.process(image_paths))

    def debug_sync(self, image_paths: Sequence[str], problem: ProblemInfo | None = None) -> DebugResult:
        return self._run_sync(self.debug(image_paths, problem))

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def _run_solve(self, cycle: int, paths: list[str]) -> SolutionResult:
        try:
            return await self._solve(cycle, paths)
        except ProcessingError as exc:
            self._log(f"Processing failed ({exc.kind}): {exc}")
            if self._is_current_solve(cycle):
                self._reset_state()
                self.events.emit(Error(kind=exc.kind, message=exc.message, phase="solve"))
            raise

    async def _solve(self, cycle: int, paths: list[str]) -> SolutionResult:
        config = self.config
        if not config.has_api_key():
            raise ConfigError()
        if not paths:
            raise InputError("No screenshots to process.")

        images = await load_images(paths)
        if not images:
            raise InputError()
        self._log(f"Loaded {len(images)}/{len(paths)} screenshot(s).")

        await self.release_retired_backends()
        backend = self._get_backend()
        self._emit_solve(cycle, Progress("analyzing", "Analyzing problem from screenshots...", 20))
        problem = await ExtractorAgent(config, backend).extract(images)
        self._log(f"Extracted {problem.problem_type.value} problem ({problem.complexity.value} complexity).")

        if self._is_current_solve(cycle):
            self.problem = problem
            self.solution = None
        self._emit_solve(cycle, ProblemExtracted(problem))
        self._emit_solve(
            cycle,
            Progress("extracted", "Problem analyzed successfully. Generating solution...", 40),
        )

        solver = SolverAgent(config, backend)
        plan = solver.plan(problem)
        self._log(f"Solving with the {plan.template.name} template on {plan.model}.")
        self._emit_solve(cycle, Progress("generating", "Generating solution...", 60))
        solution = await solver.solve(problem)

        if self._is_current_solve(cycle):
            self.solution = solution
        self._emit_solve(cycle, SolutionReady(solution))
        self._emit_solve(cycle, Progress("complete", "Solution generated successfully", 100))
        return solution

    async def _run_debug(
        self,
        cycle: int,
        paths: list[str],
        problem: ProblemInfo | None,
    ) -> DebugResult:
        try:
            return await self._debug(cycle, paths, problem)
        except ProcessingError as exc:
            self._log(f"Debug failed ({exc.kind}): {exc}")
            if cycle == self._debug_cycle:
                self.events.emit(Error(kind=exc.kind, message=exc.message, phase="debug"))
            raise

    async def _debug(self, cycle: int, paths: list[str], problem: ProblemInfo | None) -> DebugResult:
        config = self.config
        problem = problem or self.problem
        if problem is None:
            raise InputError("No problem to debug. Process the problem screenshots first.")
        if not config.has_api_key():
            raise ConfigError()

        images = await load_images(paths)
        if not images:
            raise InputError()

        await self.release_retired_backends()
        backend = self._get_backend()
        self._emit_debug(cycle, Progress("debug_loading", "Processing debug screenshots...", 30))
        self._emit_debug(cycle, Progress("debug_analyzing", "Analyzing debug information...", 60))
        result = await DebuggerAgent(config, backend).debug(problem, images)

        if cycle == self._debug_cycle:
            self.debug_result = result
        self._emit_debug(cycle, DebugReady(result))
        self._emit_debug(cycle, Progress("debug_complete", "Debug analysis complete", 100))
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _await_cycle(task: asyncio.Task[T]) -> T:
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # Our caller is being cancelled, not just the cycle.
                raise
            raise Cancelled() from None

    def _run_sync(self, coro: Coroutine[Any, Any, T]) -> T:
        async def run() -> T:
            try:
                return await coro
            finally:
                await self.aclose()

        return asyncio.run(run())

    def _get_backend(self) -> ModelBackend:
        if self._backend is None:
            self._backend = create_backend(self.config)
        return self._backend

    def _is_current_solve(self, cycle: int) -> bool:
        return cycle == self._solve_cycle

    def _emit_solve(self, cycle: int, event: Event) -> None:
        if self._is_current_solve(cycle):
            self.events.emit(event)

    def _emit_debug(self, cycle: int, event: Event) -> None:
        if cycle == self._debug_cycle:
            self.events.emit(event)

    def _reset_state(self) -> None:
        self.problem = None
        self.solution = None

    def _log(self, message: str) -> None:
        print(message, file=sys.stderr)
