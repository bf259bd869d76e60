from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from fastapi.responses import StreamingResponse

from app.core.ledger.deps import get_ledger_client, get_mirror_client
from app.core.ledger.errors import LedgerError, LedgerUnavailableError, MirrorNodeError
from app.core.ledger.mirror import MirrorNodeClient
from app.core.metrics import record_ledger_submission
from app.core.settings import get_settings
from app.domain.exceptions import BusinessValidationError
from app.privacy.redaction import deep_sanitize
from app.submissions.service import encode_record
from app.topics.schemas import (
    TOPIC_ID_PATTERN,
    MessageOrder,
    PublishIn,
    PublishOut,
    TopicMessageOut,
    TopicMessagesOut,
)
from app.topics.stream import SSE_HEADERS, topic_event_stream

router = APIRouter(prefix="/topics", tags=["topics"])
logger = logging.getLogger("app.topics")

TopicIdPath = Annotated[
    str, Path(pattern=TOPIC_ID_PATTERN, description="Topic id (shard.realm.num).")
]


@router.post(
    "/{topic_id}/messages",
    response_model=PublishOut,
    summary="Publish a JSON payload to a topic",
)
async def publish_message(
    topic_id: TopicIdPath,
    body: PublishIn,
    request: Request,
    ledger_client=Depends(get_ledger_client),
) -> PublishOut:
    if body.payload is None:
        raise BusinessValidationError("payload is required")
    if ledger_client is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Ledger service unavailable"
        )

    message = encode_record(deep_sanitize(body.payload))
    try:
        receipt = await ledger_client.submit_message(
            topic_id=topic_id, message=message, fee_workflow=body.fee_workflow
        )
    except LedgerUnavailableError as exc:
        record_ledger_submission(source="topic_api", outcome="error")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from None
    except LedgerError:
        record_ledger_submission(source="topic_api", outcome="error")
        logger.info(
            "Topic publish failed",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "topic_id": topic_id,
                "outcome": "ledger_error",
            },
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Ledger submission failed"
        ) from None

    record_ledger_submission(source="topic_api", outcome="success")
    return PublishOut(
        ok=receipt.status == "SUCCESS",
        status=receipt.status,
        transaction_id=receipt.transaction_id,
        topic_id=receipt.topic_id,
    )


@router.get(
    "/{topic_id}/messages",
    response_model=TopicMessagesOut,
    summary="List topic messages",
    description="Reads decoded messages from the mirror node (oldest first by default).",
)
async def list_topic_messages(
    topic_id: TopicIdPath,
    limit: int = Query(default=5, ge=1, le=100),
    order: MessageOrder = Query(default="asc"),
    mirror: MirrorNodeClient = Depends(get_mirror_client),
) -> TopicMessagesOut:
    try:
        messages = await mirror.list_messages(topic_id=topic_id, limit=limit, order=order)
    except MirrorNodeError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Mirror node unavailable"
        ) from None

    return TopicMessagesOut(
        topic_id=topic_id,
        items=[
            TopicMessageOut(
                sequence_number=m.sequence_number,
                consensus_timestamp=m.consensus_timestamp,
                content=m.content,
            )
            for m in messages
        ],
    )


@router.get(
    "/{topic_id}/stream",
    summary="Stream topic messages (SSE)",
    description=(
        "Server-Sent Events: one `data:` frame per message, `{\"type\": \"error\"}` frames "
        "when the mirror node fails, and `: ping` comments to keep the connection open."
    ),
    response_class=StreamingResponse,
)
async def stream_topic(
    topic_id: TopicIdPath,
    after_sequence: int | None = Query(default=None, ge=0),
    mirror: MirrorNodeClient = Depends(get_mirror_client),
) -> StreamingResponse:
    settings = get_settings()
    events = topic_event_stream(
        mirror,
        topic_id=topic_id,
        poll_seconds=float(settings.stream_poll_seconds),
        heartbeat_seconds=float(settings.stream_heartbeat_seconds),
        after_sequence=after_sequence,
    )
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)
