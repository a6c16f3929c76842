"""Choice flow recorder: bounded, thread-safe history of how segment choices were decided."""
from __future__ import annotations

import threading
from collections import deque
from typing import Any

from backend.app.constants import CHOICE_FLOW_CAPACITY_DEFAULT
from backend.app.models.choices import ChoiceFlow, ChoiceMeta


class ChoiceFlowRecorder:
    """Ring buffer of the newest ChoiceFlow records plus per-segment ChoiceMeta.

    Injected into the integration layer; one instance per app (or per test).
    """

    def __init__(self, capacity: int = CHOICE_FLOW_CAPACITY_DEFAULT) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._lock = threading.Lock()
        self._flows: deque[ChoiceFlow] = deque(maxlen=capacity)
        self._meta: dict[str, ChoiceMeta] = {}

    def record(self, flow: ChoiceFlow) -> None:
        with self._lock:
            self._flows.appendleft(flow)
            if flow.segment_id:
                self._meta[flow.segment_id] = ChoiceMeta(
                    source=flow.source,
                    engine_version=flow.engine_version,
                    choices=list(flow.final_choices),
                )

    def flows(self) -> list[ChoiceFlow]:
        """Recorded flows, newest first."""
        with self._lock:
            return list(self._flows)

    def meta_for(self, segment_id: str) -> ChoiceMeta | None:
        with self._lock:
            return self._meta.get(segment_id)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "capacity": self.capacity,
                "flows": [f.model_dump() for f in self._flows],
                "meta": {k: v.model_dump() for k, v in self._meta.items()},
            }

    def clear(self) -> None:
        with self._lock:
            self._flows.clear()
            self._meta.clear()
