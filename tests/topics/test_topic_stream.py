from __future__ import annotations

import asyncio
import json

from app.core.ledger.errors import MirrorNodeError
from app.core.ledger.mirror import TopicMessage
from app.topics import stream as stream_module
from app.topics.stream import HEARTBEAT, format_event, topic_event_stream


class _ScriptedMirror:
    """Returns one scripted result per poll; exceptions are raised."""

    def __init__(self, script: list):
        self.script = script
        self.cursors: list[int | None] = []

    async def list_messages(self, *, topic_id, limit, after_sequence=None, order="asc"):
        self.cursors.append(after_sequence)
        step = self.script.pop(0) if self.script else []
        if isinstance(step, Exception):
            raise step
        return step


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _collect(gen, count: int) -> list[str]:
    async def run() -> list[str]:
        frames: list[str] = []
        async for frame in gen:
            frames.append(frame)
            if len(frames) == count:
                break
        await gen.aclose()
        return frames

    return asyncio.run(run())


def _no_sleep(monkeypatch, clock: _FakeClock | None = None, step: float = 0.0) -> None:
    async def fake_sleep(seconds: float) -> None:
        if clock is not None:
            clock.now += step

    monkeypatch.setattr(stream_module.asyncio, "sleep", fake_sleep)


def test_format_event() -> None:
    assert format_event({"type": "message", "content": "é"}) == (
        'data: {"type": "message", "content": "é"}\n\n'
    )


def test_messages_become_data_frames_and_cursor_advances(monkeypatch) -> None:
    _no_sleep(monkeypatch)
    mirror = _ScriptedMirror(
        [[TopicMessage(3, "t3", "a"), TopicMessage(4, "t4", "b")], [TopicMessage(5, "t5", "c")]]
    )
    gen = topic_event_stream(
        mirror, topic_id="0.0.1", poll_seconds=1.0, heartbeat_seconds=60.0, after_sequence=2
    )

    frames = _collect(gen, 3)

    assert [json.loads(f[len("data: ") :])["sequence_number"] for f in frames] == [3, 4, 5]
    assert mirror.cursors == [2, 4]


def test_mirror_failure_emits_error_frame_and_keeps_streaming(monkeypatch) -> None:
    _no_sleep(monkeypatch)
    mirror = _ScriptedMirror(
        [MirrorNodeError("Mirror node request timed out"), [TopicMessage(1, "t1", "x")]]
    )
    gen = topic_event_stream(mirror, topic_id="0.0.1", poll_seconds=1.0, heartbeat_seconds=60.0)

    frames = _collect(gen, 2)

    assert json.loads(frames[0][len("data: ") :]) == {
        "type": "error",
        "error": "Mirror node request timed out",
    }
    assert json.loads(frames[1][len("data: ") :])["content"] == "x"


def test_idle_stream_sends_heartbeats(monkeypatch) -> None:
    clock = _FakeClock()
    _no_sleep(monkeypatch, clock=clock, step=5.0)
    mirror = _ScriptedMirror([])
    gen = topic_event_stream(
        mirror,
        topic_id="0.0.1",
        poll_seconds=5.0,
        heartbeat_seconds=15.0,
        clock=clock,
    )

    frames = _collect(gen, 2)

    assert frames == [HEARTBEAT, HEARTBEAT]
    # Heartbeats fire on the 4th and 7th idle polls (15s apart on the fake clock).
    assert len(mirror.cursors) == 7
