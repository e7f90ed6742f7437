from __future__ import annotations

import enum
from contextlib import contextmanager
from typing import Dict, Iterator


class GuardState(enum.Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


class Pipeline(str, enum.Enum):
    COUNT = "count"
    HANDLE = "handle"
    INFO = "info"
    PLANT = "plant"
    GROW = "grow"
    MATURE = "mature"
    DECRYPT = "decrypt"


REFRESH_PIPELINES = (Pipeline.COUNT, Pipeline.HANDLE, Pipeline.INFO)


class OperationGuards:
    """
    One single-flight flag per pipeline, owned by a controller session.

    `hold()` is the only way to take a guard: it refuses (yields False) when
    the pipeline is already in flight, and always resets the guard on exit.
    Re-entrant calls are dropped, never queued.
    """

    def __init__(self) -> None:
        self._states: Dict[Pipeline, GuardState] = {p: GuardState.IDLE for p in Pipeline}

    def state(self, pipeline: Pipeline) -> GuardState:
        return self._states[pipeline]

    def in_flight(self, pipeline: Pipeline) -> bool:
        return self._states[pipeline] is GuardState.IN_FLIGHT

    def refreshing(self) -> bool:
        return any(self.in_flight(p) for p in REFRESH_PIPELINES)

    @contextmanager
    def hold(self, pipeline: Pipeline) -> Iterator[bool]:
        if self.in_flight(pipeline):
            yield False
            return
        self._states[pipeline] = GuardState.IN_FLIGHT
        try:
            yield True
        finally:
            self._states[pipeline] = GuardState.IDLE


__all__ = ["GuardState", "OperationGuards", "Pipeline", "REFRESH_PIPELINES"]
