"""Server-Sent Events feed of a topic, backed by mirror node polling."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Callable
from typing import Any

from app.core.ledger.errors import MirrorNodeError
from app.core.ledger.mirror import MirrorNodeClient

logger = logging.getLogger("app.topics.stream")

HEARTBEAT = ": ping\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


async def topic_event_stream(
    mirror: MirrorNodeClient,
    *,
    topic_id: str,
    poll_seconds: float,
    heartbeat_seconds: float,
    after_sequence: int | None = None,
    batch_size: int = 25,
    clock: Callable[[], float] = time.monotonic,
) -> AsyncIterator[str]:
    """
    Yield SSE frames: one `data:` frame per topic message, an `error` frame per failed
    poll (the stream keeps going), and a comment heartbeat when idle.
    """

    cursor = after_sequence
    last_frame = clock()
    while True:
        try:
            messages = await mirror.list_messages(
                topic_id=topic_id, limit=batch_size, after_sequence=cursor
            )
        except MirrorNodeError as exc:
            logger.warning("Topic poll failed", extra={"topic_id": topic_id, "outcome": "error"})
            messages = []
            yield format_event({"type": "error", "error": str(exc)})
            last_frame = clock()

        for message in messages:
            cursor = message.sequence_number
            yield format_event(message.as_event())
            last_frame = clock()

        if clock() - last_frame >= heartbeat_seconds:
            yield HEARTBEAT
            last_frame = clock()

        if len(messages) < batch_size:
            await asyncio.sleep(poll_seconds)
