from __future__ import annotations

import asyncio
import io
import json

import pytest

from app import cli
from app.core.ledger.client import SubmitReceipt
from app.core.ledger.errors import LedgerSubmitError
from app.core.llm.reply import ParsedReply


class _FakeLedger:
    def __init__(self, fail_on: set[str] | None = None):
        self.fail_on = fail_on or set()
        self.calls: list[dict] = []

    async def submit_message(self, *, topic_id, message, fee_workflow=False):
        self.calls.append({"topic_id": topic_id, "message": message, "fee_workflow": fee_workflow})
        if message in self.fail_on:
            raise LedgerSubmitError("Ledger submission failed: BUSY")
        return SubmitReceipt(status="SUCCESS", transaction_id="tx", topic_id=topic_id)


def _lines(*values: str):
    queue = list(values)

    def read_line(prompt: str) -> str:
        if not queue:
            raise EOFError
        return queue.pop(0)

    return read_line


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_parser_rejects_unknown_variant() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["submit", "text", "--variant", "poetry"])


def test_agent_defaults_to_validator() -> None:
    args = cli.build_parser().parse_args(["agent", "0.0.5"])
    assert args.variant == "validator"
    assert args.output_topic is None


def test_redact_argument(capsys) -> None:
    assert cli.main(["redact", "write to jane@example.com"]) == 0
    assert capsys.readouterr().out == "write to [email]\n"


def test_redact_reads_stdin(capsys, monkeypatch) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("SSN 123-45-6789"))
    assert cli.main(["redact"]) == 0
    assert capsys.readouterr().out == "SSN [ssn]\n"


def test_publish_loop_rejects_empty_and_stops_on_exit() -> None:
    ledger = _FakeLedger()
    output: list[str] = []

    sent = asyncio.run(
        cli.run_publish_loop(
            ledger,
            topic_id="0.0.7",
            read_line=_lines("", "  ", "started tea, call 555-123-4567", "EXIT", "never sent"),
            write=output.append,
        )
    )

    assert sent == 1
    assert output.count("Message cannot be empty.") == 2
    assert ledger.calls == [
        {"topic_id": "0.0.7", "message": "started tea, call [phone]", "fee_workflow": False}
    ]
    assert output[-1] == "Exiting message loop..."


def test_publish_loop_reports_failures_and_continues() -> None:
    ledger = _FakeLedger(fail_on={"first"})
    output: list[str] = []

    sent = asyncio.run(
        cli.run_publish_loop(
            ledger,
            topic_id="0.0.7",
            fee_workflow=True,
            read_line=_lines("first", "second"),
            write=output.append,
        )
    )

    assert sent == 1
    assert "Failed to submit message: Ledger submission failed: BUSY" in output
    assert all(call["fee_workflow"] is True for call in ledger.calls)


def test_submit_without_api_key_is_a_config_error(capsys) -> None:
    assert cli.main(["submit", "hello"]) == 2
    assert "OPENAI_API_KEY is not configured" in capsys.readouterr().err


def test_create_topic_without_credentials_is_a_config_error(capsys) -> None:
    assert cli.main(["create-topic", "--memo", "amoca"]) == 2
    assert "credentials are not configured" in capsys.readouterr().err


def test_submit_prints_result(capsys, monkeypatch) -> None:
    class _FakeLLM:
        async def generate_json(self, **kwargs):
            return ParsedReply(data={"status": "IN_PROGRESS", "next_question": "When?"})

    monkeypatch.setattr(cli, "_require_llm", lambda settings: _FakeLLM())

    assert cli.main(["submit", "diagnosed in 2023", "--variant", "conversational"]) == 0

    body = json.loads(capsys.readouterr().out)
    assert body["status"] == "IN_PROGRESS"
    assert body["published"] is False
    assert body["latest_response"]["next_question"] == "When?"
