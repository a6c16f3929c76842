"""Choice flow recorder: bounded history, newest first, safe under concurrent writers."""
from __future__ import annotations

import threading
import time

import pytest

from backend.app.core.choices.flow_recorder import ChoiceFlowRecorder
from backend.app.models.choices import ChoiceFlow


def _flow(segment_id: str | None, source: str = "server", passed: bool = True) -> ChoiceFlow:
    return ChoiceFlow(
        timestamp=time.time(),
        segment_id=segment_id,
        source=source,
        engine_version="test",
        original_choices=["a", "b", "c"],
        final_choices=["Talk to Elena", "Examine the key", "Explore the castle"],
        validation_passed=passed,
    )


def test_keeps_newest_flows_up_to_capacity():
    recorder = ChoiceFlowRecorder(capacity=3)
    for i in range(5):
        recorder.record(_flow(f"s{i}"))
    assert [f.segment_id for f in recorder.flows()] == ["s4", "s3", "s2"]


def test_meta_tracks_every_segment():
    recorder = ChoiceFlowRecorder(capacity=1)
    recorder.record(_flow("s0"))
    recorder.record(_flow("s1", source="client-template-patched", passed=False))
    assert recorder.meta_for("s0").source == "server"
    meta = recorder.meta_for("s1")
    assert meta.source == "client-template-patched"
    assert meta.choices == ["Talk to Elena", "Examine the key", "Explore the castle"]
    assert recorder.meta_for("missing") is None


def test_flows_without_segment_id_have_no_meta():
    recorder = ChoiceFlowRecorder()
    recorder.record(_flow(None))
    assert len(recorder.flows()) == 1
    assert recorder.snapshot()["meta"] == {}


def test_snapshot_and_clear():
    recorder = ChoiceFlowRecorder(capacity=2)
    recorder.record(_flow("s1"))
    snap = recorder.snapshot()
    assert snap["capacity"] == 2
    assert snap["flows"][0]["segment_id"] == "s1"
    assert snap["meta"]["s1"]["engine_version"] == "test"
    recorder.clear()
    assert recorder.flows() == []
    assert recorder.meta_for("s1") is None


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        ChoiceFlowRecorder(capacity=0)


def test_concurrent_writers_never_exceed_capacity():
    recorder = ChoiceFlowRecorder(capacity=3)
    start = threading.Barrier(8)
    errors: list[Exception] = []

    def worker(n: int) -> None:
        try:
            start.wait()
            for j in range(50):
                recorder.record(_flow(f"t{n}-{j}"))
                assert len(recorder.flows()) <= 3
        except Exception as e:  # surfaced below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(recorder.flows()) == 3
    assert len(recorder.snapshot()["meta"]) == 400
