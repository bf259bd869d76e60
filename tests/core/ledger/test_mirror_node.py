from __future__ import annotations

import asyncio
import base64
import logging

import httpx
import pytest

from app.core.ledger import mirror as mirror_module
from app.core.ledger.errors import MirrorNodeError
from app.core.ledger.mirror import MirrorNodeClient, TopicMessage, follow_topic


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _mirror(handler) -> MirrorNodeClient:
    return MirrorNodeClient(base_url="https://mirror.test/", transport=httpx.MockTransport(handler))


def test_list_messages_decodes_and_passes_query() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "messages": [
                    {
                        "sequence_number": 7,
                        "consensus_timestamp": "1700000000.000000001",
                        "message": _b64('{"consent": true}'),
                    }
                ]
            },
        )

    messages = asyncio.run(
        _mirror(handler).list_messages(topic_id="0.0.42", limit=10, after_sequence=6, order="desc")
    )

    assert seen["path"] == "/api/v1/topics/0.0.42/messages"
    assert seen["params"] == {"limit": "10", "order": "desc", "sequencenumber": "gt:6"}
    assert messages == [
        TopicMessage(
            sequence_number=7,
            consensus_timestamp="1700000000.000000001",
            content='{"consent": true}',
        )
    ]
    assert messages[0].as_event() == {
        "type": "message",
        "content": '{"consent": true}',
        "consensus_timestamp": "1700000000.000000001",
        "sequence_number": 7,
    }


def test_list_messages_handles_empty_page() -> None:
    messages = asyncio.run(
        _mirror(lambda r: httpx.Response(200, json={"messages": []})).list_messages(topic_id="0.0.1")
    )
    assert messages == []


def test_non_base64_message_is_kept_verbatim() -> None:
    body = {"messages": [{"sequence_number": 1, "consensus_timestamp": "1", "message": "not base64!"}]}
    messages = asyncio.run(
        _mirror(lambda r: httpx.Response(200, json=body)).list_messages(topic_id="0.0.1")
    )
    assert messages[0].content == "not base64!"


def test_resolve_account_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/accounts/0xabc"
        return httpx.Response(200, json={"account": "0.0.5005"})

    assert asyncio.run(_mirror(handler).resolve_account_id("0xabc")) == "0.0.5005"


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (httpx.Response(404, json={}), "not found"),
        (httpx.Response(503, text="down"), "HTTP 503"),
        (httpx.Response(200, text="<html>"), "not valid JSON"),
        (httpx.Response(200, json=[1]), "must be an object"),
        (httpx.Response(200, json={"account": None}), "did not return an account id"),
    ],
)
def test_resolve_account_id_errors(response: httpx.Response, message: str) -> None:
    with pytest.raises(MirrorNodeError, match=message):
        asyncio.run(_mirror(lambda r: response).resolve_account_id("0xabc"))


def test_transport_failure_is_mirror_node_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(MirrorNodeError, match="request failed"):
        asyncio.run(_mirror(handler).list_messages(topic_id="0.0.1"))


class _PagedMirror:
    def __init__(self, pages: list[list[TopicMessage]]):
        self.pages = pages
        self.calls: list[int | None] = []

    async def list_messages(self, *, topic_id, limit, after_sequence=None, order="asc"):
        self.calls.append(after_sequence)
        return self.pages.pop(0) if self.pages else []


def test_follow_topic_advances_cursor_and_sleeps_when_caught_up(monkeypatch) -> None:
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    monkeypatch.setattr(mirror_module.asyncio, "sleep", fake_sleep)
    first = [TopicMessage(1, "t1", "a"), TopicMessage(2, "t2", "b")]
    second = [TopicMessage(3, "t3", "c")]
    fake = _PagedMirror([first, [], second])

    async def collect() -> list[int]:
        seen: list[int] = []
        async for message in follow_topic(fake, topic_id="0.0.1", poll_seconds=0.5, batch_size=2):
            seen.append(message.sequence_number)
            if len(seen) == 3:
                break
        return seen

    assert asyncio.run(collect()) == [1, 2, 3]
    # A full page is followed immediately; the empty page waits one poll interval.
    assert fake.calls == [None, 2, 2]
    assert sleeps == [0.5]


class _FlakyMirror:
    def __init__(self) -> None:
        self.calls: list[int | None] = []

    async def list_messages(self, *, topic_id, limit, after_sequence=None, order="asc"):
        self.calls.append(after_sequence)
        if len(self.calls) == 1:
            raise MirrorNodeError("Mirror node returned HTTP 503")
        return [TopicMessage(5, "t5", "after outage")]


def test_follow_topic_retries_failed_poll_from_same_cursor(monkeypatch, caplog) -> None:
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    monkeypatch.setattr(mirror_module.asyncio, "sleep", fake_sleep)
    caplog.set_level(logging.WARNING, logger="app.ledger.mirror")
    fake = _FlakyMirror()

    async def first() -> TopicMessage:
        async for message in follow_topic(
            fake, topic_id="0.0.1", poll_seconds=2.0, after_sequence=4
        ):
            return message
        raise AssertionError("stream ended")

    message = asyncio.run(first())

    assert message.content == "after outage"
    assert fake.calls == [4, 4]
    assert sleeps == [2.0]
    records = [r for r in caplog.records if r.name == "app.ledger.mirror"]
    assert len(records) == 1
    assert records[0].__dict__["topic_id"] == "0.0.1"
    assert records[0].__dict__["outcome"] == "error"
