"""
Command-line entry points (`amoca ...`).

Results go to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable
from typing import Any

from app.agent import TopicAgent
from app.core.ledger.client import HieroLedgerClient
from app.core.ledger.deps import ledger_config_from_settings, mirror_client_from_settings
from app.core.ledger.errors import LedgerError
from app.core.ledger.mirror import TopicMessage
from app.core.llm.deps import openai_config_from_settings
from app.core.llm.openai_client import OpenAIClient, OpenAIError
from app.core.logging import setup_logging
from app.core.metrics import record_ledger_submission
from app.core.settings import Settings, get_settings
from app.domain.exceptions import BusinessValidationError, ConfigurationError
from app.privacy.redaction import sanitize_text
from app.prompts.variants import DEFAULT_VARIANT, PROMPT_VARIANTS, get_variant
from app.submissions.schemas import SubmissionOut, SubmissionPayload
from app.submissions.service import LedgerClient, SubmissionService, UnparseableReplyError

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="amoca",
        description="Redact, structure and publish health data to Hedera topics",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    redact = sub.add_parser("redact", help="Print the redacted form of TEXT (or stdin)")
    redact.add_argument("text", nargs="?", help="Text to redact (default: read stdin)")

    submit = sub.add_parser("submit", help="Run TEXT through a prompt variant")
    submit.add_argument("text", help="Free-text health narrative")
    submit.add_argument(
        "--variant",
        default=DEFAULT_VARIANT,
        choices=sorted(PROMPT_VARIANTS),
        help=f"Prompt variant (default: {DEFAULT_VARIANT})",
    )
    submit.add_argument("--topic", help="Topic id (default: DEFAULT_TOPIC_ID)")
    submit.add_argument("--output-topic", help="Publish the result to this topic instead")
    submit.add_argument("--user", help="Optional user label")
    submit.add_argument(
        "--no-consent",
        action="store_true",
        help="Mark the submission as not consented (nothing is sent to the LLM)",
    )
    submit.add_argument(
        "--fee-workflow",
        action="store_true",
        help="Require the dedicated payer account when publishing",
    )

    agent = sub.add_parser("agent", help="Follow a topic and validate each message")
    agent.add_argument("topic_id", help="Topic to follow, e.g. 0.0.1234")
    agent.add_argument(
        "--variant",
        default="validator",
        choices=sorted(PROMPT_VARIANTS),
        help="Prompt variant (default: validator)",
    )
    agent.add_argument("--output-topic", help="Republish redacted results to this topic")
    agent.add_argument(
        "--after-sequence",
        type=int,
        default=None,
        help="Skip messages up to and including this sequence number",
    )
    agent.add_argument("--max-messages", type=int, default=None, help=argparse.SUPPRESS)

    publish = sub.add_parser("publish", help="Interactively publish messages to a topic")
    publish.add_argument("topic_id", help="Topic id, e.g. 0.0.1234")
    publish.add_argument(
        "--fee-workflow",
        action="store_true",
        help="Sign with the dedicated payer account (topics with custom token fees)",
    )

    create = sub.add_parser("create-topic", help="Create a new topic and print its id")
    create.add_argument("--memo", default="", help="Topic memo")

    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _ledger_client(settings: Settings) -> HieroLedgerClient | None:
    config = ledger_config_from_settings(settings)
    if config is None:
        return None
    return HieroLedgerClient(config=config, mirror=mirror_client_from_settings(settings))


def _require_llm(settings: Settings) -> OpenAIClient:
    config = openai_config_from_settings(settings)
    if config is None:
        raise ConfigurationError("OPENAI_API_KEY is not configured")
    return OpenAIClient(config=config)


def _require_ledger(settings: Settings) -> HieroLedgerClient:
    client = _ledger_client(settings)
    if client is None:
        raise ConfigurationError("Ledger operator or payer credentials are not configured")
    return client


def cmd_redact(args: argparse.Namespace) -> int:
    text = args.text if args.text is not None else sys.stdin.read()
    print(sanitize_text(text) or "")
    return EXIT_OK


async def cmd_submit(args: argparse.Namespace, settings: Settings) -> int:
    service = SubmissionService(
        llm_client=_require_llm(settings),
        ledger_client=_ledger_client(settings),
        default_topic_id=settings.default_topic_id,
        source="cli",
    )
    payload = SubmissionPayload(
        consent=False if args.no_consent else True,
        data=args.text,
        user=args.user,
    )
    result = await service.submit(
        payload=payload,
        variant=get_variant(args.variant),
        topic_id=args.topic,
        output_topic=args.output_topic,
        fee_workflow=args.fee_workflow,
    )
    _print_json(result.model_dump())
    return EXIT_FAILURE if result.ledger_status == "ERROR" else EXIT_OK


async def cmd_agent(args: argparse.Namespace, settings: Settings) -> int:
    ledger = _require_ledger(settings) if args.output_topic else None
    service = SubmissionService(llm_client=_require_llm(settings), ledger_client=ledger, source="agent")
    agent = TopicAgent(
        service=service,
        variant=get_variant(args.variant),
        mirror=mirror_client_from_settings(settings),
        poll_seconds=float(settings.stream_poll_seconds),
        output_topic=args.output_topic,
    )

    def on_result(message: TopicMessage, result: SubmissionOut) -> None:
        _print_json({"sequence_number": message.sequence_number, **result.model_dump()})

    print(f"Following topic {args.topic_id} (Ctrl+C to stop)...", file=sys.stderr)
    await agent.run(
        topic_id=args.topic_id,
        on_result=on_result,
        after_sequence=args.after_sequence,
        max_messages=args.max_messages,
    )
    return EXIT_OK


async def run_publish_loop(
    ledger: LedgerClient,
    *,
    topic_id: str,
    fee_workflow: bool = False,
    read_line: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> int:
    """Read lines until `exit`/EOF, publishing each (redacted) line. Returns the count sent."""

    sent = 0
    write('Message submission started. Type "exit" to finish.')
    while True:
        try:
            line = read_line('Enter message (or "exit"): ')
        except EOFError:
            break

        message = line.strip()
        if not message:
            write("Message cannot be empty.")
            continue
        if message.lower() == "exit":
            break

        try:
            receipt = await ledger.submit_message(
                topic_id=topic_id,
                message=sanitize_text(message) or "",
                fee_workflow=fee_workflow,
            )
        except LedgerError as exc:
            record_ledger_submission(source="cli", outcome="error")
            write(f"Failed to submit message: {exc}")
            continue

        record_ledger_submission(source="cli", outcome="success")
        sent += 1
        write(f"Submitted message -> topic {topic_id} (status: {receipt.status})")

    write("Exiting message loop...")
    return sent


async def cmd_publish(args: argparse.Namespace, settings: Settings) -> int:
    await run_publish_loop(
        _require_ledger(settings), topic_id=args.topic_id, fee_workflow=args.fee_workflow
    )
    return EXIT_OK


async def cmd_create_topic(args: argparse.Namespace, settings: Settings) -> int:
    topic_id = await _require_ledger(settings).create_topic(memo=args.memo)
    _print_json({"topic_id": topic_id})
    return EXIT_OK


_ASYNC_COMMANDS = {
    "submit": cmd_submit,
    "agent": cmd_agent,
    "publish": cmd_publish,
    "create-topic": cmd_create_topic,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, stream="ext://sys.stderr")

    if args.command == "redact":
        return cmd_redact(args)

    settings = get_settings()
    try:
        return asyncio.run(_ASYNC_COMMANDS[args.command](args, settings))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_OK
    except (ConfigurationError, BusinessValidationError) as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return EXIT_CONFIG
    except (OpenAIError, UnparseableReplyError, LedgerError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
