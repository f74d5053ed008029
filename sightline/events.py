"""Outbound events for the presentation layer, and the sinks that deliver them."""

from __future__ import annotations

import queue
import sys
import threading
from dataclasses import dataclass
from typing import ClassVar, Protocol, Union

from sightline.models import DebugResult, ProblemInfo, SolutionResult


@dataclass(frozen=True)
class Progress:
    type: ClassVar[str] = "progress"
    stage: str
    message: str
    progress: int  # 0-100, advisory

    def to_dict(self) -> dict:
        return {"type": self.type, "stage": self.stage, "message": self.message, "progress": self.progress}


@dataclass(frozen=True)
class ProblemExtracted:
    type: ClassVar[str] = "problem_extracted"
    problem: ProblemInfo

    def to_dict(self) -> dict:
        return {"type": self.type, "problem": self.problem.to_dict()}


@dataclass(frozen=True)
class SolutionReady:
    type: ClassVar[str] = "solution_ready"
    solution: SolutionResult

    def to_dict(self) -> dict:
        return {"type": self.type, "solution": self.solution.to_dict()}


@dataclass(frozen=True)
class DebugReady:
    type: ClassVar[str] = "debug_ready"
    debug: DebugResult

    def to_dict(self) -> dict:
        return {"type": self.type, "debug": self.debug.to_dict()}


@dataclass(frozen=True)
class Error:
    type: ClassVar[str] = "error"
    kind: str
    message: str
    phase: str = "solve"  # "solve" or "debug"

    def to_dict(self) -> dict:
        return {"type": self.type, "kind": self.kind, "message": self.message, "phase": self.phase}


@dataclass(frozen=True)
class Reset:
    type: ClassVar[str] = "reset"
    reason: str

    def to_dict(self) -> dict:
        return {"type": self.type, "reason": self.reason}


Event = Union[Progress, ProblemExtracted, SolutionReady, DebugReady, Error, Reset]


class EventSink(Protocol):
    def emit(self, event: Event) -> None: ...


class NullSink:
    def emit(self, event: Event) -> None:
        pass


class QueueSink:
    """Puts each event's dict form on a queue, for a consumer on another thread."""

    def __init__(self, event_queue: queue.Queue | None = None) -> None:
        self.queue: queue.Queue = event_queue if event_queue is not None else queue.Queue()

    def emit(self, event: Event) -> None:
        self.queue.put(event.to_dict())


class StderrSink:
    """Prints progress and errors for terminal use."""

    def emit(self, event: Event) -> None:
        if isinstance(event, Progress):
            print(f"[{event.progress:3d}%] {event.message}", file=sys.stderr)
        elif isinstance(event, Error):
            print(f"Error ({event.kind}): {event.message}", file=sys.stderr)
        elif isinstance(event, ProblemExtracted):
            print(f"Problem type: {event.problem.problem_type.value}", file=sys.stderr)


class BroadcastSink:
    """Fans events out to any number of subscriber queues (one per SSE client)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[queue.Queue] = []

    def subscribe(self) -> queue.Queue:
        q: queue.Queue = queue.Queue()
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    def emit(self, event: Event) -> None:
        payload = event.to_dict()
        with self._lock:
            subscribers = list(self._subscribers)
        for q in subscribers:
            q.put(payload)
