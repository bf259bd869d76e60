from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from app.core.ledger.client import SubmitReceipt
from app.core.ledger.errors import LedgerError
from app.core.llm.openai_client import OpenAIUnavailableError
from app.core.llm.reply import LLMReply, UnparsedReply
from app.core.metrics import record_ledger_submission, record_llm_reply
from app.domain.exceptions import ConfigurationError
from app.privacy.redaction import deep_sanitize, sanitize_text
from app.prompts.variants import PromptVariant
from app.submissions.schemas import SubmissionOut, SubmissionPayload

logger = logging.getLogger("app.submissions")


class LLMClient(Protocol):
    async def generate_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.5,
        json_mode: bool = True,
    ) -> LLMReply: ...


class LedgerClient(Protocol):
    async def submit_message(
        self, *, topic_id: str, message: str, fee_workflow: bool = False
    ) -> SubmitReceipt: ...


class UnparseableReplyError(Exception):
    """Raised when the LLM answered, but not with a JSON object."""

    def __init__(self, reply: UnparsedReply):
        super().__init__("LLM response was not valid JSON")
        self.reply = reply


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def encode_record(record: Any) -> str:
    """Serialize a (sanitized) record as the topic message body."""

    return json.dumps(record, ensure_ascii=False, default=str)


class SubmissionService:
    """
    Runs one submission: consent gate, redaction, prompt, LLM, optional publish.

    Both collaborators are injected; `None` means "not configured". A missing LLM
    is an error, a missing ledger is reported in the result like any ledger failure.
    """

    def __init__(
        self,
        *,
        llm_client: LLMClient | None,
        ledger_client: LedgerClient | None,
        default_topic_id: str | None = None,
        source: str = "submission",
        clock: Callable[[], str] = _utc_now_iso,
    ):
        self._llm = llm_client
        self._ledger = ledger_client
        self._default_topic_id = default_topic_id
        self._source = source
        self._clock = clock

    async def submit(
        self,
        *,
        payload: SubmissionPayload,
        variant: PromptVariant,
        topic_id: str | None = None,
        output_topic: str | None = None,
        fee_workflow: bool = False,
        publish: bool = True,
    ) -> SubmissionOut:
        if payload.consent is False:
            logger.info(
                "Submission declined (consent missing)",
                extra={"variant": variant.name, "outcome": "consent_missing"},
            )
            return SubmissionOut(status="CONSENT_MISSING", consent=False, variant=variant.name)

        if self._llm is None:
            raise OpenAIUnavailableError("LLM service is not configured")

        user_input = sanitize_text(payload.data) or ""
        system_prompt = variant.render_system_prompt(
            collected_data=deep_sanitize(payload.collected_data),
            conversation_history=deep_sanitize(payload.conversation_history),
        )
        user_prompt = variant.build_user_content(
            data=user_input, consent=payload.consent, user=payload.user
        )

        reply = await self._llm.generate_json(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=variant.temperature,
            json_mode=variant.json_mode,
        )
        if isinstance(reply, UnparsedReply):
            record_llm_reply(variant=variant.name, outcome="unparsed")
            raise UnparseableReplyError(reply)
        record_llm_reply(variant=variant.name, outcome="parsed")

        result = SubmissionOut(
            status=reply.status,
            variant=variant.name,
            consent=payload.consent,
            latest_response=reply.data,
        )
        if not (publish and variant.should_publish(reply.status)):
            logger.info(
                "Submission in progress",
                extra={"variant": variant.name, "outcome": "not_published"},
            )
            return result

        target = output_topic or topic_id or self._default_topic_id
        if not target:
            raise ConfigurationError("Ledger topic ID is not configured")

        record = deep_sanitize(
            variant.build_record(reply=reply.data, user_input=user_input, timestamp=self._clock())
        )
        return await self._publish(
            result=result, record=record, target=target, fee_workflow=fee_workflow
        )

    async def _publish(
        self,
        *,
        result: SubmissionOut,
        record: dict[str, Any],
        target: str,
        fee_workflow: bool,
    ) -> SubmissionOut:
        result.published = True
        result.topic_id = target

        if self._ledger is None:
            record_ledger_submission(source=self._source, outcome="error")
            result.ledger_status = "ERROR"
            result.ledger_error = "Ledger credentials are not configured"
            logger.warning(
                "Ledger submission skipped (not configured)",
                extra={"variant": result.variant, "outcome": "ledger_unavailable", "topic_id": target},
            )
            return result

        try:
            receipt = await self._ledger.submit_message(
                topic_id=target, message=encode_record(record), fee_workflow=fee_workflow
            )
        except LedgerError as exc:
            record_ledger_submission(source=self._source, outcome="error")
            result.ledger_status = "ERROR"
            result.ledger_error = str(exc)
            logger.warning(
                "Ledger submission failed",
                extra={"variant": result.variant, "outcome": "ledger_error", "topic_id": target},
            )
            return result

        record_ledger_submission(source=self._source, outcome="success")
        result.ledger_status = receipt.status
        result.transaction_id = receipt.transaction_id
        logger.info(
            "Submission published",
            extra={
                "variant": result.variant,
                "outcome": "published",
                "topic_id": target,
                "transaction_id": receipt.transaction_id,
            },
        )
        return result
