"""Read-side access to Hedera topics through the mirror node REST API."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import httpx

from app.core.ledger.errors import MirrorNodeError

logger = logging.getLogger("app.ledger.mirror")


@dataclass(frozen=True)
class TopicMessage:
    sequence_number: int
    consensus_timestamp: str
    content: str

    def as_event(self) -> dict[str, Any]:
        return {
            "type": "message",
            "content": self.content,
            "consensus_timestamp": self.consensus_timestamp,
            "sequence_number": self.sequence_number,
        }


def _decode_message(raw: str | None) -> str:
    if not raw:
        return ""
    try:
        return base64.b64decode(raw, validate=True).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        # Not base64; mirror nodes always encode, but keep the payload readable.
        return raw


class MirrorNodeClient:
    """
    Thin async client over the mirror node REST API.

    Mirror nodes are public and read-only; no credentials are sent.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(url, params=params)
        except httpx.TimeoutException as exc:
            raise MirrorNodeError("Mirror node request timed out") from exc
        except httpx.HTTPError as exc:
            raise MirrorNodeError("Mirror node request failed") from exc

        if resp.status_code == 404:
            raise MirrorNodeError("Mirror node resource not found")
        if resp.status_code != 200:
            raise MirrorNodeError(f"Mirror node returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise MirrorNodeError("Mirror node response was not valid JSON") from exc
        if not isinstance(data, dict):
            raise MirrorNodeError("Mirror node response JSON must be an object")
        return data

    async def resolve_account_id(self, evm_address: str) -> str:
        """Map an EVM address (0x...) to its `shard.realm.num` account id."""

        data = await self._get_json(f"/api/v1/accounts/{evm_address}")
        account = data.get("account")
        if not isinstance(account, str) or not account:
            raise MirrorNodeError("Mirror node did not return an account id")
        return account

    async def list_messages(
        self,
        *,
        topic_id: str,
        limit: int = 5,
        after_sequence: int | None = None,
        order: str = "asc",
    ) -> list[TopicMessage]:
        params: dict[str, Any] = {"limit": limit, "order": order}
        if after_sequence is not None:
            params["sequencenumber"] = f"gt:{after_sequence}"

        data = await self._get_json(f"/api/v1/topics/{topic_id}/messages", params=params)
        out: list[TopicMessage] = []
        for item in data.get("messages") or []:
            out.append(
                TopicMessage(
                    sequence_number=int(item.get("sequence_number", 0)),
                    consensus_timestamp=str(item.get("consensus_timestamp", "")),
                    content=_decode_message(item.get("message")),
                )
            )
        return out


async def follow_topic(
    mirror: MirrorNodeClient,
    *,
    topic_id: str,
    poll_seconds: float,
    after_sequence: int | None = None,
    batch_size: int = 25,
) -> AsyncIterator[TopicMessage]:
    """Yield topic messages in sequence order forever, polling when caught up.

    A failed poll is logged and retried after `poll_seconds` from the same cursor.
    """

    cursor = after_sequence
    while True:
        try:
            messages = await mirror.list_messages(
                topic_id=topic_id, limit=batch_size, after_sequence=cursor
            )
        except MirrorNodeError:
            logger.warning(
                "Topic poll failed; retrying",
                extra={"topic_id": topic_id, "sequence_number": cursor, "outcome": "error"},
            )
            messages = []
        for message in messages:
            cursor = message.sequence_number
            yield message
        if len(messages) < batch_size:
            await asyncio.sleep(poll_seconds)
