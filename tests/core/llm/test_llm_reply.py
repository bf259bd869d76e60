from __future__ import annotations

import pytest

from app.core.llm.reply import ParsedReply, UnparsedReply, parse_reply


def test_bare_json_object_is_parsed() -> None:
    reply = parse_reply('{"status": "IN_PROGRESS", "next_question": "When?"}')
    assert reply == ParsedReply(data={"status": "IN_PROGRESS", "next_question": "When?"})
    assert reply.status == "IN_PROGRESS"


@pytest.mark.parametrize("text", [None, ""])
def test_empty_content_is_an_empty_object(text) -> None:
    reply = parse_reply(text)
    assert reply == ParsedReply(data={})
    assert reply.status is None


def test_last_fenced_json_block_wins() -> None:
    text = (
        "Here is what I found.\n"
        '```json\n{"status": "DRAFT"}\n```\n'
        "And the final record:\n"
        '```json\n{"status": "OK", "standardized_data": {"diagnosis": "x"}}\n```'
    )
    reply = parse_reply(text)
    assert isinstance(reply, ParsedReply)
    assert reply.status == "OK"
    assert reply.data["standardized_data"] == {"diagnosis": "x"}


def test_prose_without_json_is_unparsed() -> None:
    reply = parse_reply("I cannot help with that.")
    assert reply == UnparsedReply(raw_text="I cannot help with that.")


def test_json_array_is_not_an_object() -> None:
    assert isinstance(parse_reply("[1, 2, 3]"), UnparsedReply)


def test_non_string_status_is_ignored() -> None:
    assert parse_reply('{"status": 3}').status is None
