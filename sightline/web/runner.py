"""Background event loop that owns the orchestrator for the Flask bridge."""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
import threading
from collections.abc import Coroutine
from typing import Any

from sightline.config import Config
from sightline.errors import Cancelled, ProcessingError
from sightline.events import Error
from sightline.orchestrator import Orchestrator


class CycleRunner:
    """Runs every orchestrator call on one dedicated loop thread.

    Flask handlers run on arbitrary threads; marshalling onto this loop keeps the
    orchestrator's active-cycle slots single-threaded.
    """

    def __init__(self, orchestrator: Orchestrator) -> None:
        self.orchestrator = orchestrator
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name="sightline-cycles", daemon=True)
        self._thread.start()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def submit_process(self, paths: list[str]) -> concurrent.futures.Future:
        return self._submit(self.orchestrator.process(paths))

    def submit_debug(self, paths: list[str]) -> concurrent.futures.Future:
        return self._submit(self.orchestrator.debug(paths))

    def cancel(self, timeout: float = 5.0) -> bool:
        return self._call(self.orchestrator.cancel, timeout)

    def apply_config(self, config: Config) -> None:
        async def apply() -> None:
            self.orchestrator.apply_config(config)
            await self.orchestrator.release_retired_backends()

        asyncio.run_coroutine_threadsafe(apply(), self._loop)

    def snapshot(self, timeout: float = 5.0) -> dict:
        def read() -> dict:
            orch = self.orchestrator
            return {
                "busy": orch.busy,
                "problem": orch.problem.to_dict() if orch.problem else None,
                "solution": orch.solution.to_dict() if orch.solution else None,
                "debug": orch.debug_result.to_dict() if orch.debug_result else None,
            }

        return self._call(read, timeout)

    def shutdown(self, timeout: float = 5.0) -> None:
        if not self._loop.is_running():
            return

        async def close() -> None:
            self.orchestrator.cancel()
            await self.orchestrator.aclose()

        asyncio.run_coroutine_threadsafe(close(), self._loop).result(timeout)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)

    def _submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
        return asyncio.run_coroutine_threadsafe(self._guard(coro), self._loop)

    async def _guard(self, coro: Coroutine[Any, Any, Any]) -> Any:
        try:
            return await coro
        except (ProcessingError, Cancelled):
            # Already reported to subscribers through the event sink.
            return None
        except Exception as exc:
            print(f"Unexpected processing error: {exc!r}", file=sys.stderr)
            self.orchestrator.events.emit(
                Error(kind="internal", message=f"{type(exc).__name__}: {exc}")
            )
            raise

    def _call(self, fn, timeout: float):
        async def run():
            return fn()

        return asyncio.run_coroutine_threadsafe(run(), self._loop).result(timeout)
